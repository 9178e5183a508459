"""
Configuration management for Script Runner.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


@dataclass
class InterpreterConfig:
    """User-configurable interpreter commands, keyed by language."""

    python: str = "py"
    octave: str = "octave"
    shell: str = "bash"

    def as_language_map(self) -> dict[str, str]:
        """Map language values (as used in policies) to interpreter commands."""
        return {
            "python": self.python,
            "matlab": self.octave,
            "bash": self.shell,
        }


@dataclass
class ScriptRunnerConfig:
    """Main Script Runner configuration."""

    root_directory: str = "."
    store_path: str = ".script-runner/run_configurations.json"
    log_level: str = "INFO"
    rich_logging: bool = True
    interpreters: InterpreterConfig = field(default_factory=InterpreterConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "ScriptRunnerConfig":
        """Load configuration from file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                if config_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScriptRunnerConfig":
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        interpreter_data = data.get("interpreters") or {}
        if not isinstance(interpreter_data, dict):
            raise ConfigurationError("'interpreters' must be a mapping of language to command")
        known_interpreters = {f.name for f in fields(InterpreterConfig)}
        unknown = sorted(set(interpreter_data) - known_interpreters)
        if unknown:
            raise ConfigurationError(f"Unknown interpreter entries: {', '.join(unknown)}")

        # Filter out any keys that aren't valid config fields
        valid_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}
        filtered_data["interpreters"] = InterpreterConfig(
            **{k: str(v) for k, v in interpreter_data.items()}
        )
        return cls(**filtered_data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            if config_path.suffix.lower() == ".json":
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def resolve_root(self, project_root: Path) -> Path:
        root = Path(self.root_directory).expanduser()
        if not root.is_absolute():
            root = project_root / root
        return root.resolve()

    def resolve_store_path(self, project_root: Path) -> Path:
        store = Path(self.store_path).expanduser()
        if not store.is_absolute():
            store = self.resolve_root(project_root) / store
        return store


class ConfigManager:
    """Manages Script Runner configuration."""

    CONFIG_FILENAME = "script_runner.yaml"
    JSON_CONFIG_FILENAME = "script_runner.json"

    def __init__(self, project_root: Path | None = None):
        self.project_root = project_root or Path.cwd()
        self.config_path = self._resolve_config_path()
        self._config: ScriptRunnerConfig | None = None

    def _resolve_config_path(self) -> Path:
        primary = self.project_root / self.CONFIG_FILENAME
        alternative = self.project_root / self.JSON_CONFIG_FILENAME
        if not primary.exists() and alternative.exists():
            return alternative
        return primary

    @property
    def config(self) -> ScriptRunnerConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load_config()
        return self._config

    def load_config(self) -> ScriptRunnerConfig:
        """Load configuration from file, falling back to defaults."""
        self.config_path = self._resolve_config_path()
        if self.config_path.exists():
            self._config = ScriptRunnerConfig.load_from_file(self.config_path)
        else:
            self._config = ScriptRunnerConfig()
        return self._config

    def save_config(self) -> None:
        if self._config is None:
            raise ConfigurationError("No configuration to save")
        self._config.save_to_file(self.config_path)

    def update_config(self, **kwargs) -> None:
        """Update configuration with new values."""
        config = self.config

        for key, value in kwargs.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                raise ConfigurationError(f"Unknown configuration key: {key}")

        self.save_config()

    @property
    def root_directory(self) -> Path:
        return self.config.resolve_root(self.project_root)

    @property
    def store_path(self) -> Path:
        return self.config.resolve_store_path(self.project_root)
