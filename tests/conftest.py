"""
Pytest configuration and fixtures for Script Runner tests.
"""

import asyncio
import os
import sys
import uuid
from pathlib import Path

import pytest
from hypothesis import Verbosity, settings

from script_runner.host import FilesystemHost
from script_runner.languages import Language, LanguagePolicyRegistry
from script_runner.run_config import RunConfiguration
from script_runner.runners.base import spawn_process

# Configure hypothesis settings for property-based testing
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class RecordingSpawner:
    """
    Spawner that records each call, snapshots the script file, and then
    starts the real interpreter (or ``replacement`` when given).
    """

    def __init__(self, replacement: list[str] | None = None):
        self.calls: list[dict] = []
        self.replacement = replacement

    async def __call__(self, command, args, *, detached, use_shell, cwd=None):
        script_path = Path(args[-1]) if args else None
        self.calls.append(
            {
                "command": command,
                "args": list(args),
                "detached": detached,
                "use_shell": use_shell,
                "cwd": cwd,
                "script_exists": bool(script_path and script_path.exists()),
                "script_content": script_path.read_text(encoding="utf-8")
                if script_path and script_path.is_file()
                else None,
            }
        )
        if self.replacement is not None:
            return await asyncio.create_subprocess_exec(
                *self.replacement,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        return await spawn_process(command, args, detached=detached, use_shell=use_shell, cwd=cwd)


@pytest.fixture
def script_id():
    return str(uuid.uuid4())


@pytest.fixture
def host(tmp_path):
    """Filesystem host rooted at tmp_path with an open document in notes/."""
    return FilesystemHost(tmp_path, active_document="notes/doc.md")


@pytest.fixture
def registry():
    """Policies with the Python interpreter pointed at the running interpreter."""
    return LanguagePolicyRegistry(interpreters={"python": sys.executable})


@pytest.fixture
def spawner():
    return RecordingSpawner()


@pytest.fixture
def python_run_config(script_id):
    def _make(content: str = 'print("hi")') -> RunConfiguration:
        return RunConfiguration.default_for(script_id, Language.PYTHON, content)

    return _make


@pytest.fixture
def make_spawner():
    """Factory for spawners that launch ``replacement`` instead of the interpreter."""
    return RecordingSpawner
