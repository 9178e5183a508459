"""
Per-block run configuration records.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .console import LogEntry
from .core.exceptions import ConfigurationError
from .languages import Argument, Language


class ScriptKind(Enum):
    INLINE = "inline"
    EXTERNAL_FILE = "external_file"


@dataclass(slots=True)
class ScriptSource:
    """Where a block's code comes from: its own text, or a file on disk."""

    kind: ScriptKind = ScriptKind.INLINE
    content: str | None = None

    @classmethod
    def inline(cls, content: str) -> "ScriptSource":
        return cls(kind=ScriptKind.INLINE, content=content)

    @classmethod
    def external_file(cls) -> "ScriptSource":
        return cls(kind=ScriptKind.EXTERNAL_FILE)

    @property
    def is_inline(self) -> bool:
        return self.kind is ScriptKind.INLINE


class PathMode(Enum):
    DOCUMENT_RELATIVE = "document_relative"
    ROOT_RELATIVE = "root_relative"
    ABSOLUTE = "absolute"


@dataclass(frozen=True, slots=True)
class ExecutionPath:
    mode: PathMode = PathMode.DOCUMENT_RELATIVE
    offset: str = ""

    @classmethod
    def document_relative(cls, offset: str = "") -> "ExecutionPath":
        return cls(PathMode.DOCUMENT_RELATIVE, offset)

    @classmethod
    def root_relative(cls, offset: str = "") -> "ExecutionPath":
        return cls(PathMode.ROOT_RELATIVE, offset)

    @classmethod
    def absolute(cls, offset: str) -> "ExecutionPath":
        return cls(PathMode.ABSOLUTE, offset)


@dataclass(slots=True)
class ArgumentOverrides:
    """``override=False`` appends ``value`` to the defaults; ``True`` replaces them."""

    override: bool = False
    value: list[Argument] | None = None


@dataclass(slots=True)
class DetachedOverride:
    override: bool = False
    value: bool | None = None


@dataclass(slots=True)
class RunConfiguration:
    """Execution settings and console history of one code block."""

    uuid: str
    language: Language
    script_source: ScriptSource = field(default_factory=ScriptSource)
    execution_path: ExecutionPath = field(default_factory=ExecutionPath)
    argument_overrides: ArgumentOverrides = field(default_factory=ArgumentOverrides)
    detached_override: DetachedOverride = field(default_factory=DetachedOverride)
    script_arguments: list[Argument] = field(default_factory=list)
    console_history: list[LogEntry] = field(default_factory=list)

    @classmethod
    def default_for(cls, uuid: str, language: Language, content: str) -> "RunConfiguration":
        """Record created the first time a block is seen."""
        return cls(uuid=uuid, language=language, script_source=ScriptSource.inline(content))

    def clear_console(self) -> None:
        self.console_history = []

    def to_dict(self) -> dict[str, Any]:
        overrides = self.argument_overrides
        return {
            "uuid": self.uuid,
            "language": self.language.value,
            "script_source": {
                "kind": self.script_source.kind.value,
                "content": self.script_source.content,
            },
            "execution_path": {
                "mode": self.execution_path.mode.value,
                "offset": self.execution_path.offset,
            },
            "argument_overrides": {
                "override": overrides.override,
                "value": None if overrides.value is None else [a.to_dict() for a in overrides.value],
            },
            "detached_override": {
                "override": self.detached_override.override,
                "value": self.detached_override.value,
            },
            "script_arguments": [a.to_dict() for a in self.script_arguments],
            "console_history": [entry.to_dict() for entry in self.console_history],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RunConfiguration":
        try:
            source = data.get("script_source") or {}
            path = data.get("execution_path") or {}
            arg_overrides = data.get("argument_overrides") or {}
            detached = data.get("detached_override") or {}
            raw_override_args = arg_overrides.get("value")
            return cls(
                uuid=str(data["uuid"]),
                language=Language(data.get("language", Language.UNDEFINED.value)),
                script_source=ScriptSource(
                    kind=ScriptKind(source.get("kind", ScriptKind.INLINE.value)),
                    content=source.get("content"),
                ),
                execution_path=ExecutionPath(
                    mode=PathMode(path.get("mode", PathMode.DOCUMENT_RELATIVE.value)),
                    offset=str(path.get("offset") or ""),
                ),
                argument_overrides=ArgumentOverrides(
                    override=bool(arg_overrides.get("override", False)),
                    value=None
                    if raw_override_args is None
                    else [Argument.from_dict(a) for a in raw_override_args],
                ),
                detached_override=DetachedOverride(
                    override=bool(detached.get("override", False)),
                    value=detached.get("value"),
                ),
                script_arguments=[Argument.from_dict(a) for a in data.get("script_arguments") or []],
                console_history=[LogEntry.from_dict(e) for e in data.get("console_history") or []],
            )
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise ConfigurationError(f"Invalid run configuration record: {exc}") from exc
