"""
In-process strategy: evaluate a block directly in the host interpreter.

The evaluated code sees only the bindings listed in ``build_bindings``
(plus builtins). This is scoping, not isolation: the code runs with the full
privileges of the host process, on the host's event loop.
"""

from __future__ import annotations

import ast
import asyncio
import builtins
import inspect
from typing import Any

from ..console import LogChannel
from ..core.exceptions import ConfigurationError, ScriptRunnerError
from ..core.ids import ID_FIELD_NAME
from ..core.logging import get_logger
from ..events import RunnerEventType
from ..languages import ExecutionStrategy
from .base import RunnerState, ScriptRunner

logger = get_logger(__name__)

ASYNC_MARKER = "await"


def strip_id_comment(content: str, comment_prefix: str) -> str:
    """Blank out a leading identifier comment so line numbers stay intact."""
    first_line, newline, rest = content.partition("\n")
    stripped = first_line.strip()
    if stripped.startswith(comment_prefix) and stripped[len(comment_prefix):].strip().startswith(
        ID_FIELD_NAME
    ):
        return newline + rest
    return content


def needs_async(code: str) -> bool:
    """Textual check for top-level awaiting constructs."""
    return ASYNC_MARKER in code


def system_exit_code(exc: SystemExit) -> int:
    """Exit status the way the interpreter derives it from ``SystemExit``."""
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    return 1


class InProcessRunner(ScriptRunner):
    strategy = ExecutionStrategy.IN_PROCESS

    def build_bindings(self, console: LogChannel) -> dict[str, Any]:
        def script_print(*values: Any, sep: str = " ", end: str = "\n", **_: Any) -> None:
            self.info(sep.join(str(value) for value in values) + end)

        return {
            "__builtins__": builtins,
            "__name__": "__script__",
            "asyncio": asyncio,
            "console": console,
            "print": script_print,
            "host": self.host,
            "file": self.host.active_document,
        }

    async def execute_script(self) -> None:
        source = self.run_configuration.script_source
        language = self.policy.language.value

        if not source.is_inline:
            raise ConfigurationError(f"can not run a {language} script from file")
        if not source.content:
            raise ConfigurationError(f"script content can not be empty for language {language}")

        code = strip_id_comment(source.content, self.policy.comment_prefix)
        is_async = needs_async(code)
        flags = ast.PyCF_ALLOW_TOP_LEVEL_AWAIT if is_async else 0
        compiled = compile(code, f"<{self.execution_file_name()}>", "exec", flags=flags)
        bindings = self.build_bindings(self.create_log_channel(add_newline=True))

        self._next_run_token()
        self.state = RunnerState.RUNNING
        self.events.emit(RunnerEventType.SCRIPT_START)

        logger.debug("Evaluating script %s in process (async=%s)", self.script_id, is_async)
        exit_code: int | None = None
        try:
            if is_async:
                result = eval(compiled, bindings)
                if inspect.iscoroutine(result):
                    await result
            else:
                exec(compiled, bindings)
        except SystemExit as exc:
            # sys.exit() ends the script, not the host
            exit_code = system_exit_code(exc)
            if isinstance(exc.code, str):
                self.error(f"{exc.code}\n")
        except KeyboardInterrupt as exc:
            raise ScriptRunnerError(f"script {self.script_id} was interrupted") from exc
        finally:
            self.state = RunnerState.IDLE

        self.last_exit_code = exit_code
        self.events.emit(RunnerEventType.SCRIPT_END, exit_code=exit_code)
