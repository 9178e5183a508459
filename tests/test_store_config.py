"""Tests for run configuration persistence and the configuration file layer."""

import json

import pytest

from script_runner.console import LogEntry, LogLevel
from script_runner.core.config import ConfigManager, InterpreterConfig, ScriptRunnerConfig
from script_runner.core.exceptions import ConfigurationError
from script_runner.languages import Argument, Language
from script_runner.run_config import (
    ArgumentOverrides,
    DetachedOverride,
    ExecutionPath,
    RunConfiguration,
    ScriptKind,
    ScriptSource,
)
from script_runner.store import InMemoryRunConfigurationStore, JsonRunConfigurationStore


def _record(uuid="11111111-2222-3333-4444-555555555555"):
    return RunConfiguration(
        uuid=uuid,
        language=Language.PYTHON,
        script_source=ScriptSource.inline("# script-id: x\nprint(1)\n"),
        execution_path=ExecutionPath.root_relative("scratch/"),
        argument_overrides=ArgumentOverrides(override=True, value=[Argument.single("-B")]),
        detached_override=DetachedOverride(override=True, value=False),
        script_arguments=[Argument.key_value("--name", "demo")],
        console_history=[LogEntry(LogLevel.INFO, "1\n")],
    )


class TestRunConfiguration:
    def test_default_for_is_inline_document_relative(self):
        record = RunConfiguration.default_for("abc", Language.SHELL, "echo hi")

        assert record.script_source.kind is ScriptKind.INLINE
        assert record.script_source.content == "echo hi"
        assert record.execution_path == ExecutionPath()
        assert record.argument_overrides.override is False
        assert record.argument_overrides.value is None
        assert record.console_history == []

    def test_dict_round_trip_preserves_fields(self):
        record = _record()
        assert RunConfiguration.from_dict(record.to_dict()) == record

    def test_from_dict_rejects_bad_language(self):
        data = _record().to_dict()
        data["language"] = "cobol"
        with pytest.raises(ConfigurationError, match="Invalid run configuration"):
            RunConfiguration.from_dict(data)

    def test_from_dict_requires_uuid(self):
        with pytest.raises(ConfigurationError):
            RunConfiguration.from_dict({"language": "python"})


class TestStores:
    def test_in_memory_upsert_replaces(self):
        store = InMemoryRunConfigurationStore()
        first = _record()
        second = RunConfiguration.default_for(first.uuid, Language.PYTHON, "print(2)")

        store.upsert(first)
        store.upsert(second)

        assert store.get(first.uuid) is second
        assert len(store.all()) == 1
        assert store.get("missing") is None

    def test_json_store_persists_across_instances(self, tmp_path):
        path = tmp_path / "state" / "runs.json"
        store = JsonRunConfigurationStore(path)
        store.upsert(_record())

        reloaded = JsonRunConfigurationStore(path)

        assert reloaded.get(_record().uuid) == _record()
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["version"] == 1
        assert len(payload["run_configurations"]) == 1
        assert not path.with_suffix(".json.tmp").exists()

    def test_json_store_missing_file_starts_empty(self, tmp_path):
        store = JsonRunConfigurationStore(tmp_path / "nope.json")
        assert store.all() == []

    def test_corrupted_store_is_a_configuration_error(self, tmp_path):
        path = tmp_path / "runs.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="corrupted"):
            JsonRunConfigurationStore(path)

    @pytest.mark.parametrize("content", ["[]", "3", "\"runs\""])
    def test_store_root_must_be_an_object(self, tmp_path, content):
        path = tmp_path / "runs.json"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError, match="must hold a JSON object"):
            JsonRunConfigurationStore(path)


class TestScriptRunnerConfig:
    def test_defaults(self):
        config = ScriptRunnerConfig()
        assert config.interpreters.as_language_map() == {
            "python": "py",
            "matlab": "octave",
            "bash": "bash",
        }

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "script_runner.yaml"
        path.write_text(
            "log_level: DEBUG\n"
            "store_path: runs.json\n"
            "interpreters:\n"
            "  python: python3\n"
            "unrelated: ignored\n",
            encoding="utf-8",
        )

        config = ScriptRunnerConfig.load_from_file(path)

        assert config.log_level == "DEBUG"
        assert config.interpreters.python == "python3"
        assert config.interpreters.octave == "octave"

    def test_unknown_interpreter_is_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown interpreter entries: ruby"):
            ScriptRunnerConfig.from_dict({"interpreters": {"ruby": "ruby"}})

    def test_non_mapping_root_is_rejected(self):
        with pytest.raises(ConfigurationError, match="mapping"):
            ScriptRunnerConfig.from_dict(["python"])

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "script_runner.yaml"
        path.write_text("interpreters: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Failed to load"):
            ScriptRunnerConfig.load_from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ScriptRunnerConfig.load_from_file(tmp_path / "absent.yaml")

    def test_save_and_reload(self, tmp_path):
        config = ScriptRunnerConfig(interpreters=InterpreterConfig(python="python3.12"))
        path = tmp_path / "conf" / "script_runner.yaml"

        config.save_to_file(path)

        assert ScriptRunnerConfig.load_from_file(path) == config


class TestConfigManager:
    def test_defaults_when_no_file(self, tmp_path):
        manager = ConfigManager(tmp_path)
        assert manager.config == ScriptRunnerConfig()
        assert manager.root_directory == tmp_path.resolve()
        assert manager.store_path == tmp_path.resolve() / ".script-runner" / "run_configurations.json"

    def test_json_config_is_used_when_yaml_is_absent(self, tmp_path):
        (tmp_path / "script_runner.json").write_text(
            json.dumps({"root_directory": "vault"}), encoding="utf-8"
        )

        manager = ConfigManager(tmp_path)

        assert manager.root_directory == (tmp_path / "vault").resolve()

    def test_update_config_saves(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.update_config(log_level="WARNING")

        assert ConfigManager(tmp_path).config.log_level == "WARNING"

    def test_update_unknown_key(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown configuration key"):
            ConfigManager(tmp_path).update_config(colour="blue")
