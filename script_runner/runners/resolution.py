"""
Effective launch-parameter resolution.

The language policy always decides first: a run's override only applies when
the policy grants the matching permission.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..core.exceptions import ConfigurationError
from ..languages import Argument, ArgumentKind, LanguagePolicy
from ..run_config import ExecutionPath, RunConfiguration


def resolve_effective_detached(policy: LanguagePolicy, run: RunConfiguration) -> bool:
    if not policy.permissions.can_override_detached:
        return policy.default_detached
    if not run.detached_override.override:
        return policy.default_detached
    if run.detached_override.value is None:
        raise ConfigurationError(
            "run configuration should override detached, but detached is undefined in run configuration"
        )
    return run.detached_override.value


def resolve_effective_arguments(policy: LanguagePolicy, run: RunConfiguration) -> list[Argument]:
    defaults = list(policy.default_arguments)
    if not policy.permissions.can_override_arguments:
        return defaults

    overrides = run.argument_overrides
    if not overrides.override:
        # Non-exclusive: the run's arguments are appended to the defaults
        if not overrides.value:
            return defaults
        return defaults + list(overrides.value)

    if overrides.value is None:
        raise ConfigurationError(
            "run configuration should override command line arguments, "
            "but command line arguments are undefined in run configuration"
        )
    return list(overrides.value)


def resolve_effective_execution_path(policy: LanguagePolicy, run: RunConfiguration) -> ExecutionPath:
    if not policy.permissions.can_specify_execution_directory:
        return ExecutionPath()
    return run.execution_path


def serialize_argument(argument: Argument) -> list[str]:
    if argument.kind is ArgumentKind.SINGLE_VALUE:
        if not argument.value:
            raise ConfigurationError("Argument value may not be empty")
        return [argument.value]
    if argument.kind is ArgumentKind.KEY_VALUE:
        if not argument.value:
            raise ConfigurationError("Argument value may not be empty")
        if not argument.key:
            raise ConfigurationError("Argument key may not be empty")
        return [argument.key, argument.value]
    raise ConfigurationError(f"Undefined argument kind: {argument.kind!r}")


def serialize_arguments(arguments: Iterable[Argument]) -> list[str]:
    tokens: list[str] = []
    for argument in arguments:
        tokens.extend(serialize_argument(argument))
    return tokens
