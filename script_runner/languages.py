"""
Language policy registry.

One immutable ``LanguagePolicy`` per supported language: default launch
parameters plus the permission matrix that bounds what a block may override.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .core.exceptions import ConfigurationError, LanguageParseError


class Language(Enum):
    """Languages a block can be written in."""

    JS = "js"
    PYTHON = "python"
    SHELL = "bash"
    OCTAVE = "matlab"
    UNDEFINED = "undefined"


class ArgumentKind(Enum):
    SINGLE_VALUE = "single_value"
    KEY_VALUE = "key_value"


@dataclass(frozen=True, slots=True)
class Argument:
    """
    One command-line argument.

    ``SINGLE_VALUE`` serializes to ``[value]``, ``KEY_VALUE`` to
    ``[key, value]``. Validation happens at serialization time so that a
    persisted record with a bad argument surfaces as a run error instead of a
    load error.
    """

    kind: ArgumentKind
    value: str
    key: str | None = None

    @classmethod
    def single(cls, value: str) -> "Argument":
        return cls(kind=ArgumentKind.SINGLE_VALUE, value=value)

    @classmethod
    def key_value(cls, key: str, value: str) -> "Argument":
        return cls(kind=ArgumentKind.KEY_VALUE, value=value, key=key)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Argument":
        try:
            kind = ArgumentKind(data.get("kind", ArgumentKind.SINGLE_VALUE.value))
        except ValueError as exc:
            raise ConfigurationError(f"Undefined argument kind: {data.get('kind')!r}") from exc
        return cls(kind=kind, value=str(data.get("value") or ""), key=data.get("key"))


class ExecutionStrategy(Enum):
    """How a language's code is executed."""

    EXTERNAL_INTERPRETER = "external_interpreter"
    IN_PROCESS = "in_process"


@dataclass(frozen=True, slots=True)
class LanguagePermissions:
    can_terminate: bool
    can_send_input: bool
    can_specify_execution_directory: bool
    can_override_arguments: bool
    can_override_detached: bool


@dataclass(frozen=True, slots=True)
class LanguagePolicy:
    """Static defaults and capabilities for one language."""

    language: Language
    comment_prefix: str
    file_extension: str
    interpreter_command: str
    default_detached: bool
    default_arguments: tuple[Argument, ...]
    permissions: LanguagePermissions
    strategy: ExecutionStrategy = ExecutionStrategy.EXTERNAL_INTERPRETER


PYTHON_POLICY = LanguagePolicy(
    language=Language.PYTHON,
    comment_prefix="#",
    file_extension="py",
    interpreter_command="py",
    default_detached=False,
    default_arguments=(Argument.single("-u"),),
    permissions=LanguagePermissions(
        can_terminate=True,
        can_send_input=True,
        can_specify_execution_directory=True,
        can_override_arguments=True,
        can_override_detached=True,
    ),
)

OCTAVE_POLICY = LanguagePolicy(
    language=Language.OCTAVE,
    comment_prefix="%",
    file_extension="m",
    interpreter_command="octave",
    default_detached=True,
    default_arguments=(Argument.single("--persist"),),
    permissions=LanguagePermissions(
        can_terminate=False,
        can_send_input=False,
        can_specify_execution_directory=True,
        can_override_arguments=True,
        can_override_detached=False,
    ),
)

SHELL_POLICY = LanguagePolicy(
    language=Language.SHELL,
    comment_prefix="#",
    file_extension="sh",
    interpreter_command="bash",
    default_detached=False,
    default_arguments=(),
    permissions=LanguagePermissions(
        can_terminate=True,
        can_send_input=False,
        can_specify_execution_directory=True,
        can_override_arguments=True,
        can_override_detached=True,
    ),
)

JS_POLICY = LanguagePolicy(
    language=Language.JS,
    comment_prefix="//",
    file_extension="js",
    interpreter_command="",
    default_detached=False,
    default_arguments=(Argument.single("-u"),),
    permissions=LanguagePermissions(
        can_terminate=False,
        can_send_input=False,
        can_specify_execution_directory=False,
        can_override_arguments=False,
        can_override_detached=False,
    ),
    strategy=ExecutionStrategy.IN_PROCESS,
)

DEFAULT_POLICIES: dict[Language, LanguagePolicy] = {
    Language.PYTHON: PYTHON_POLICY,
    Language.OCTAVE: OCTAVE_POLICY,
    Language.SHELL: SHELL_POLICY,
    Language.JS: JS_POLICY,
}

# Code block info strings are "<tag>-runner"
BLOCK_SUFFIX = "-runner"
LANGUAGE_TAGS: dict[str, Language] = {
    "js": Language.JS,
    "py": Language.PYTHON,
    "octave": Language.OCTAVE,
    "cmd": Language.SHELL,
    "sh": Language.SHELL,
    "bash": Language.SHELL,
}


class LanguagePolicyRegistry:
    """
    Lookup table from ``Language`` to ``LanguagePolicy``.

    User-configured interpreter commands replace the defaults; everything else
    in a policy is fixed.
    """

    def __init__(
        self,
        policies: Mapping[Language, LanguagePolicy] | None = None,
        interpreters: Mapping[str, str] | None = None,
    ):
        self._policies = dict(DEFAULT_POLICIES if policies is None else policies)
        for language_value, command in (interpreters or {}).items():
            language = Language(language_value)
            policy = self._policies.get(language)
            if policy is None:
                raise ConfigurationError(
                    f"Can not configure an interpreter for language {language.value}, it has no policy"
                )
            self._policies[language] = replace(policy, interpreter_command=command)

    def policy_for(self, language: Language) -> LanguagePolicy:
        policy = self._policies.get(language)
        if policy is None:
            raise ConfigurationError(f"No language policy defined for language {language.value}")
        return policy

    def languages(self) -> list[Language]:
        return list(self._policies)


_DEFAULT_REGISTRY = LanguagePolicyRegistry()


def policy_for(language: Language) -> LanguagePolicy:
    """Default policy for ``language``; raises ``ConfigurationError`` when none exists."""
    return _DEFAULT_REGISTRY.policy_for(language)


def parse_block_language(info_string: str) -> Language:
    """Parse a ``<tag>-runner`` code block info string."""
    info = (info_string or "").strip()
    if not info:
        raise LanguageParseError("code block language is undefined or empty")
    if not info.endswith(BLOCK_SUFFIX):
        raise LanguageParseError(f"code block language does not end with '{BLOCK_SUFFIX}'")
    tag = info[: -len(BLOCK_SUFFIX)]
    if not tag:
        raise LanguageParseError("code block language too short")
    return LANGUAGE_TAGS.get(tag, Language.UNDEFINED)
