"""
Runner factory.
"""

from __future__ import annotations

from ..core.exceptions import ConfigurationError
from ..host import HostContext
from ..languages import ExecutionStrategy, Language, LanguagePolicyRegistry
from ..run_config import RunConfiguration
from .base import ProcessSpawner, ScriptRunner
from .external import ExternalInterpreterRunner
from .in_process import InProcessRunner

RUNNER_STRATEGIES: dict[ExecutionStrategy, type[ScriptRunner]] = {
    ExecutionStrategy.EXTERNAL_INTERPRETER: ExternalInterpreterRunner,
    ExecutionStrategy.IN_PROCESS: InProcessRunner,
}

_DEFAULT_REGISTRY = LanguagePolicyRegistry()


def create_runner(
    language: Language,
    host: HostContext,
    run_configuration: RunConfiguration,
    *,
    registry: LanguagePolicyRegistry | None = None,
    spawner: ProcessSpawner | None = None,
) -> ScriptRunner:
    """Create the runner for ``language`` from its policy's execution strategy."""
    if language is Language.UNDEFINED:
        raise ConfigurationError(f"no script runner for language {language.value}")
    if run_configuration.language is not language:
        raise ConfigurationError(
            f"run configuration {run_configuration.uuid} is for language "
            f"{run_configuration.language.value}, not {language.value}"
        )

    policy = (registry or _DEFAULT_REGISTRY).policy_for(language)
    runner_cls = RUNNER_STRATEGIES.get(policy.strategy)
    if runner_cls is None:
        raise ConfigurationError(f"no script runner for language {language.value}")
    return runner_cls(policy, run_configuration, host, spawner=spawner)
