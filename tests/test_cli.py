"""Tests for the script-runner command line."""

import json
import logging
import re
import sys
import textwrap

import pytest
from rich.logging import RichHandler

from script_runner.cli import main
from script_runner.core.logging import ROOT_LOGGER_NAME, get_logger, setup_logging

SCRIPT_ID = "5b8f3c1e-2d4a-4e6b-9c7d-0a1b2c3d4e5f"


@pytest.fixture
def project(tmp_path, monkeypatch):
    # Keep Rich from wrapping ids in narrow captured output
    monkeypatch.setenv("COLUMNS", "200")
    (tmp_path / "script_runner.yaml").write_text(
        textwrap.dedent(
            f"""\
            log_level: WARNING
            rich_logging: false
            interpreters:
              python: {json.dumps(sys.executable)}
            """
        ),
        encoding="utf-8",
    )
    notes = tmp_path / "notes"
    notes.mkdir()
    (notes / "doc.md").write_text(
        textwrap.dedent(
            f"""\
            # Analysis

            ```py-runner
            # script-id: {SCRIPT_ID}
            name = input()
            print('hello ' + name)
            ```

            ```py-runner
            print('no id')
            ```
            """
        ),
        encoding="utf-8",
    )
    return tmp_path


def test_new_id(capsys):
    assert main(["new-id"]) == 0
    out = capsys.readouterr().out.strip()
    assert re.fullmatch(r"[0-9a-f-]{36}", out)


def test_new_id_with_language(capsys):
    assert main(["new-id", "--language", "octave"]) == 0
    assert capsys.readouterr().out.startswith("% script-id: ")


def test_new_id_with_unknown_language(capsys):
    assert main(["new-id", "--language", "ruby"]) == 2
    assert "No language policy" in capsys.readouterr().err


def test_list(project, capsys):
    assert main(["--project", str(project), "list", str(project / "notes" / "doc.md")]) == 0
    out = capsys.readouterr().out
    assert SCRIPT_ID in out
    assert "not a comment" in out


def test_run_streams_output_and_persists(project, capsys):
    exit_code = main(
        [
            "--project",
            str(project),
            "run",
            str(project / "notes" / "doc.md"),
            "--id",
            SCRIPT_ID,
            "--input",
            "world",
        ]
    )

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "hello world" in out
    assert "Script exited with code 0" in out

    store = json.loads(
        (project / ".script-runner" / "run_configurations.json").read_text(encoding="utf-8")
    )
    [record] = store["run_configurations"]
    assert record["uuid"] == SCRIPT_ID
    assert {"level": "info", "message": "hello world\n"} in record["console_history"]


def test_run_unknown_id(project, capsys):
    assert main(["--project", str(project), "run", str(project / "notes" / "doc.md"), "--id", "nope"]) == 1
    assert "No runnable blocks" in capsys.readouterr().out


def test_document_outside_root(project, tmp_path_factory, capsys):
    outside = tmp_path_factory.mktemp("elsewhere") / "doc.md"
    outside.write_text("", encoding="utf-8")

    assert main(["--project", str(project), "list", str(outside)]) == 2
    assert "outside the root directory" in capsys.readouterr().err


class TestLogging:
    def test_get_logger_namespaces(self):
        assert get_logger("runners").name == f"{ROOT_LOGGER_NAME}.runners"
        assert get_logger(f"{ROOT_LOGGER_NAME}.store").name == f"{ROOT_LOGGER_NAME}.store"

    def test_setup_logging_replaces_handlers(self):
        logger = setup_logging("debug")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

        logger = setup_logging("WARNING", rich_output=False)
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0], RichHandler)
        assert logger.propagate is False

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging("chatty", rich_output=False).level == logging.INFO
