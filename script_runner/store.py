"""
Run configuration repositories.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from .core.exceptions import ConfigurationError, RunnerIOError
from .core.logging import get_logger
from .run_config import RunConfiguration

logger = get_logger(__name__)

STORE_FORMAT_VERSION = 1


class RunConfigurationStore(Protocol):
    """Repository of run configurations, keyed by block UUID."""

    def get(self, uuid: str) -> RunConfiguration | None:
        """Return the stored record for ``uuid``, if any."""

    def upsert(self, record: RunConfiguration) -> None:
        """Insert or replace the record with the same UUID."""


class InMemoryRunConfigurationStore:
    """Store that keeps records for the life of the process only."""

    def __init__(self, records: list[RunConfiguration] | None = None):
        self._records: dict[str, RunConfiguration] = {r.uuid: r for r in records or []}

    def get(self, uuid: str) -> RunConfiguration | None:
        return self._records.get(uuid)

    def upsert(self, record: RunConfiguration) -> None:
        self._records[record.uuid] = record

    def all(self) -> list[RunConfiguration]:
        return list(self._records.values())


class JsonRunConfigurationStore(InMemoryRunConfigurationStore):
    """
    Store persisted as a single JSON document.

    The whole blob is loaded once on construction and rewritten after every
    upsert. Records are never removed automatically.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug("No run configuration store at %s, starting empty", self.path)
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except OSError as exc:
            raise RunnerIOError(f"Failed to read run configurations: {exc}", str(self.path)) from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Run configuration store {self.path} is corrupted: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Run configuration store {self.path} must hold a JSON object")

        for raw in data.get("run_configurations", []):
            record = RunConfiguration.from_dict(raw)
            self._records[record.uuid] = record
        logger.debug("Loaded %d run configurations from %s", len(self._records), self.path)

    def upsert(self, record: RunConfiguration) -> None:
        super().upsert(record)
        self.flush()

    def flush(self) -> None:
        payload = {
            "version": STORE_FORMAT_VERSION,
            "run_configurations": [r.to_dict() for r in self._records.values()],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            raise RunnerIOError(f"Failed to save run configurations: {exc}", str(self.path)) from exc
