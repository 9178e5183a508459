"""
Structured console log channel.

A ``LogChannel`` turns ``trace/info/warn/error`` calls into ``LogEntry`` records
and hands them to every subscribed sink. It has no notion of where entries end
up; the runner binds it to a block's console history, and in-process scripts
receive one as their ``console``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class LogLevel(Enum):
    """Console severities, lowest first."""

    TRACE = "trace"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One line (or chunk) of console output."""

    level: LogLevel
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level.value, "message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        return cls(level=LogLevel(data["level"]), message=str(data.get("message", "")))


LogSink = Callable[[LogEntry], None]


def format_log_message(parts: tuple[Any, ...]) -> str:
    """Join log arguments, rendering non-strings as indented JSON."""
    rendered = []
    for part in parts:
        if isinstance(part, str):
            rendered.append(part)
        else:
            rendered.append(json.dumps(part, indent=4, default=str))
    return " ".join(rendered)


class LogChannel:
    """
    Callback-driven logging sink with four severities.

    Every subscriber sees every entry, in call order. ``add_newline`` appends a
    trailing newline to each message, which is how in-process script output
    matches the line-oriented output of external interpreters.
    """

    def __init__(self, add_newline: bool = False):
        self.add_newline = add_newline
        self._sinks: list[LogSink] = []

    def subscribe(self, sink: LogSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unsubscribe(self, sink: LogSink) -> None:
        self._sinks = [item for item in self._sinks if item != sink]

    def log_entry(self, entry: LogEntry) -> LogEntry:
        for sink in list(self._sinks):
            sink(entry)
        return entry

    def _emit(self, level: LogLevel, parts: tuple[Any, ...]) -> LogEntry:
        message = format_log_message(parts)
        if self.add_newline:
            message += "\n"
        return self.log_entry(LogEntry(level=level, message=message))

    def trace(self, *parts: Any) -> LogEntry:
        return self._emit(LogLevel.TRACE, parts)

    def debug(self, *parts: Any) -> LogEntry:
        return self._emit(LogLevel.TRACE, parts)

    def info(self, *parts: Any) -> LogEntry:
        return self._emit(LogLevel.INFO, parts)

    def log(self, *parts: Any) -> LogEntry:
        return self._emit(LogLevel.INFO, parts)

    def warn(self, *parts: Any) -> LogEntry:
        return self._emit(LogLevel.WARN, parts)

    warning = warn

    def error(self, *parts: Any) -> LogEntry:
        return self._emit(LogLevel.ERROR, parts)
