"""
Runner lifecycle events.

Each runner owns a ``RunnerEventBus``. Listeners accumulate: subscribing a
second callback for the same event type adds to the first instead of
replacing it, so host glue and test harnesses can observe the same runner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .core.logging import get_logger

logger = get_logger(__name__)


class RunnerEventType(Enum):
    """Lifecycle events emitted by a script runner."""

    EXECUTE_REQUESTED = "execute_requested"
    SCRIPT_START = "script_start"
    CONSOLE_LOG = "console_log"
    SEND_INPUT = "send_input"
    TERMINATE_REQUESTED = "terminate_requested"
    SCRIPT_END = "script_end"
    EXECUTION_ERROR = "execution_error"


@dataclass(slots=True)
class RunnerEvent:
    """
    One event emitted by a runner.

    Payload keys by type:
        CONSOLE_LOG: ``entry`` (LogEntry)
        SEND_INPUT: ``data`` (str)
        TERMINATE_REQUESTED: ``reason`` (str | BaseException)
        SCRIPT_END: ``exit_code`` (int | None)
        EXECUTION_ERROR: ``error`` (BaseException)
    """

    event_type: RunnerEventType
    script_id: str
    timestamp: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "event_type": self.event_type.value,
            "script_id": self.script_id,
            "timestamp": self.timestamp,
        }
        if self.payload:
            result["payload"] = {key: _jsonable(value) for key, value in self.payload.items()}
        return result


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return value


RunnerEventCallback = Callable[[RunnerEvent], None]


class RunnerEventBus:
    """
    In-process pub/sub bus for runner events.

    Listeners are kept in one table keyed by event type; the ``None`` key holds
    the listeners that receive every event.
    """

    def __init__(self, script_id: str = ""):
        self.script_id = script_id
        self._listeners: dict[RunnerEventType | None, list[RunnerEventCallback]] = {}

    def _add(self, key: RunnerEventType | None, callback: RunnerEventCallback) -> None:
        listeners = self._listeners.setdefault(key, [])
        if callback not in listeners:
            listeners.append(callback)

    def subscribe(self, callback: RunnerEventCallback) -> None:
        """Subscribe to all events."""
        self._add(None, callback)

    def subscribe_to_type(self, event_type: RunnerEventType, callback: RunnerEventCallback) -> None:
        """Subscribe to one event type."""
        self._add(event_type, callback)

    def unsubscribe(self, callback: RunnerEventCallback) -> None:
        """Remove ``callback`` wherever it is subscribed."""
        for listeners in self._listeners.values():
            while callback in listeners:
                listeners.remove(callback)

    def emit(self, event_type: RunnerEventType, **payload: Any) -> RunnerEvent:
        """Emit an event to type listeners first, then catch-all listeners."""
        event = RunnerEvent(
            event_type=event_type,
            script_id=self.script_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            payload=payload,
        )

        listeners = [*self._listeners.get(event_type, ()), *self._listeners.get(None, ())]

        for callback in listeners:
            try:
                callback(event)
            except Exception:
                # A broken listener must not stop the remaining ones or the run
                logger.exception(
                    "Listener %r failed on %s for script %s",
                    callback,
                    event_type.value,
                    self.script_id,
                )
        return event


class RunnerEventCollector:
    """Collects runner events for later inspection."""

    def __init__(self):
        self._events: list[RunnerEvent] = []

    def collect(self, event: RunnerEvent) -> None:
        self._events.append(event)

    def get_events(self) -> list[RunnerEvent]:
        return list(self._events)

    def get_events_by_type(self, event_type: RunnerEventType) -> list[RunnerEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def event_types(self) -> list[RunnerEventType]:
        return [e.event_type for e in self._events]

    def clear(self) -> None:
        self._events = []
