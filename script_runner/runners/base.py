"""
Script runner engine.

A ``ScriptRunner`` owns one block's executions. It resolves the effective
launch parameters from the language policy and the block's run configuration,
hands execution to its strategy (``execute_script``), turns process output into
console entries and reports lifecycle events on its ``RunnerEventBus``.

State machine::

    IDLE -> STARTING -> RUNNING -> EXITING -> IDLE

``run()`` is accepted in ``IDLE`` and ``EXITING``. Termination is optimistic:
the handle is released as soon as the interrupt is sent, so a new run may
start while the old process is still shutting down. Every supervision task
captures its own process, artifact and run token, and only resets the
runner's handle and state while its token is still the current one.
"""

from __future__ import annotations

import asyncio
import codecs
import os
import shlex
import signal
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from ..console import LogChannel, LogEntry, LogLevel
from ..core.exceptions import (
    ConfigurationError,
    RunnerIOError,
    RunnerPermissionError,
    RunnerStateError,
)
from ..core.logging import get_logger
from ..events import RunnerEvent, RunnerEventBus, RunnerEventType
from ..host import HostContext
from ..languages import Argument, ExecutionStrategy, LanguagePolicy
from ..paths import ResolvedPath, execution_file_name, resolve_execution_path
from ..run_config import RunConfiguration
from .resolution import (
    resolve_effective_arguments,
    resolve_effective_detached,
    resolve_effective_execution_path,
    serialize_arguments,
)

logger = get_logger(__name__)

STREAM_CHUNK_SIZE = 4096


class RunnerState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    EXITING = "exiting"


class ProcessSpawner(Protocol):
    def __call__(
        self,
        command: str,
        args: list[str],
        *,
        detached: bool,
        use_shell: bool,
        cwd: Path | None = None,
    ) -> Awaitable[asyncio.subprocess.Process]:
        ...


async def spawn_process(
    command: str,
    args: list[str],
    *,
    detached: bool,
    use_shell: bool,
    cwd: Path | None = None,
) -> asyncio.subprocess.Process:
    """Start an interpreter with piped standard streams."""
    pipes: dict[str, Any] = {
        "stdin": asyncio.subprocess.PIPE,
        "stdout": asyncio.subprocess.PIPE,
        "stderr": asyncio.subprocess.PIPE,
        "cwd": str(cwd) if cwd else None,
        "start_new_session": detached,
    }
    if use_shell:
        return await asyncio.create_subprocess_shell(shlex.join([command, *args]), **pipes)
    return await asyncio.create_subprocess_exec(command, *args, **pipes)


def exit_message(exit_code: int | None) -> str:
    if exit_code is None:
        return "\n\nScript was terminated before it exited"
    return f"\n\nScript exited with code {exit_code}"


class ScriptRunner:
    """Base runner; subclasses implement ``execute_script`` for one strategy."""

    strategy: ExecutionStrategy = ExecutionStrategy.EXTERNAL_INTERPRETER

    def __init__(
        self,
        policy: LanguagePolicy,
        run_configuration: RunConfiguration,
        host: HostContext,
        *,
        spawner: ProcessSpawner | None = None,
    ):
        self.policy = policy
        self.run_configuration = run_configuration
        self.host = host
        self.events = RunnerEventBus(run_configuration.uuid)
        self.state = RunnerState.IDLE
        self.process: asyncio.subprocess.Process | None = None
        self.last_exit_code: int | None = None
        self._spawner: ProcessSpawner = spawner or spawn_process
        self._supervisor: asyncio.Task[int | None] | None = None
        self._run_token = 0
        self._process_group = False

    @property
    def script_id(self) -> str:
        return self.run_configuration.uuid

    @property
    def is_running(self) -> bool:
        return self.state in (RunnerState.STARTING, RunnerState.RUNNING)

    # ── Subscriptions ─────────────────────────────────────────────────

    def _subscribe(self, event_type: RunnerEventType, callback: Callable[..., Any], *keys: str) -> None:
        def listener(event: RunnerEvent) -> None:
            callback(*(event.payload.get(key) for key in keys))

        self.events.subscribe_to_type(event_type, listener)

    def on_execute_requested(self, callback: Callable[[], Any]) -> None:
        self._subscribe(RunnerEventType.EXECUTE_REQUESTED, callback)

    def on_script_start(self, callback: Callable[[], Any]) -> None:
        self._subscribe(RunnerEventType.SCRIPT_START, callback)

    def on_console_log(self, callback: Callable[[LogEntry], Any]) -> None:
        self._subscribe(RunnerEventType.CONSOLE_LOG, callback, "entry")

    def on_send_input(self, callback: Callable[[str], Any]) -> None:
        self._subscribe(RunnerEventType.SEND_INPUT, callback, "data")

    def on_terminate_requested(self, callback: Callable[[str | BaseException], Any]) -> None:
        self._subscribe(RunnerEventType.TERMINATE_REQUESTED, callback, "reason")

    def on_script_end(self, callback: Callable[[int | None], Any]) -> None:
        self._subscribe(RunnerEventType.SCRIPT_END, callback, "exit_code")

    def on_execution_error(self, callback: Callable[[BaseException], Any]) -> None:
        self._subscribe(RunnerEventType.EXECUTION_ERROR, callback, "error")

    # ── Effective parameters ──────────────────────────────────────────

    def effective_detached(self) -> bool:
        return resolve_effective_detached(self.policy, self.run_configuration)

    def effective_arguments(self) -> list[Argument]:
        return resolve_effective_arguments(self.policy, self.run_configuration)

    def command_line_arguments(self) -> list[str]:
        return serialize_arguments(self.effective_arguments())

    def script_argument_tokens(self) -> list[str]:
        return serialize_arguments(self.run_configuration.script_arguments)

    def execution_file_name(self) -> str:
        return execution_file_name(self.policy, self.script_id)

    def resolve_script_path(self) -> ResolvedPath:
        return resolve_execution_path(
            resolve_effective_execution_path(self.policy, self.run_configuration),
            self.host,
            self.execution_file_name(),
            inline=self.run_configuration.script_source.is_inline,
        )

    # ── Execution ─────────────────────────────────────────────────────

    async def execute_script(self) -> None:
        raise NotImplementedError

    async def run(self) -> None:
        """
        Start a run.

        Never raises for setup problems: they are reported to execution-error
        listeners and as an ``ERROR`` console entry. Returns once the script
        has been started; use ``wait()`` to await its exit.
        """
        try:
            if self.is_running:
                raise RunnerStateError(
                    f"can not run script {self.script_id}, it is already running",
                    state=self.state.value,
                )
            logger.info("Running script of code block %s", self.script_id)
            self.clear_console()
            self.state = RunnerState.STARTING
            self.events.emit(RunnerEventType.EXECUTE_REQUESTED)
            await self.execute_script()
        except Exception as exc:
            self._handle_execution_error(exc)

    def _handle_execution_error(self, error: Exception) -> None:
        logger.warning("Execution of script %s failed: %s", self.script_id, error)
        if self.state is RunnerState.STARTING or (
            self.process is None and self.state is RunnerState.RUNNING
        ):
            self.state = RunnerState.IDLE
        self.error(f"{type(error).__name__}: {error}")
        self.events.emit(RunnerEventType.EXECUTION_ERROR, error=error)

    def _next_run_token(self) -> int:
        self._run_token += 1
        return self._run_token

    def _attach_process(self, process: asyncio.subprocess.Process, artifact: Path | None) -> None:
        token = self._next_run_token()
        self.process = process
        self.state = RunnerState.RUNNING
        self.events.emit(RunnerEventType.SCRIPT_START)
        self._supervisor = asyncio.create_task(self._supervise(process, artifact, token))

    async def _supervise(
        self,
        process: asyncio.subprocess.Process,
        artifact: Path | None,
        token: int,
    ) -> int | None:
        exit_code: int | None = None
        try:
            await asyncio.gather(
                self._pump(process.stdout, LogLevel.INFO),
                self._pump(process.stderr, LogLevel.ERROR),
            )
            return_code = await process.wait()
            # Negative return codes mean the process was killed by a signal
            exit_code = return_code if return_code >= 0 else None
        except Exception as exc:
            logger.exception("Lost track of process %s of script %s", process.pid, self.script_id)
            self.error(f"Lost track of the script process: {exc}")

        logger.debug("Script %s (pid %s) exited with %s", self.script_id, process.pid, exit_code)
        self.last_exit_code = exit_code
        self.trace(exit_message(exit_code))
        self.events.emit(RunnerEventType.SCRIPT_END, exit_code=exit_code)

        if artifact is not None:
            self._cleanup_artifact(artifact)

        if self._run_token == token:
            if self.process is process:
                self.process = None
            self.state = RunnerState.IDLE
        return exit_code

    async def _pump(self, stream: asyncio.StreamReader | None, level: LogLevel) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(STREAM_CHUNK_SIZE)
            if not chunk:
                break
            text = decoder.decode(chunk)
            if text:
                self.console_log(LogEntry(level=level, message=text))
        tail = decoder.decode(b"", final=True)
        if tail:
            self.console_log(LogEntry(level=level, message=tail))

    def _cleanup_artifact(self, artifact: Path) -> None:
        logger.debug("Deleting execution file %s for %s", artifact, self.script_id)
        try:
            self.host.delete_file(artifact)
        except RunnerIOError as exc:
            self.error(f"Could not delete execution file {artifact}: {exc}")

    async def wait(self) -> int | None:
        """Wait for the current run's process to exit and return its exit code."""
        if self._supervisor is not None:
            return await asyncio.shield(self._supervisor)
        return self.last_exit_code

    # ── Terminate / input ─────────────────────────────────────────────

    async def terminate(self, reason: str | BaseException = "terminated by user") -> None:
        if not self.policy.permissions.can_terminate:
            raise RunnerPermissionError(
                f"Can not terminate script {self.script_id}, scripts of language "
                f"{self.policy.language.value} can not be terminated",
                operation="terminate",
            )
        if self.process is None:
            raise RunnerStateError(
                "can not terminate a script that is not running", state=self.state.value
            )

        self.events.emit(RunnerEventType.TERMINATE_REQUESTED, reason=reason)
        process = self.process
        self.process = None
        self.state = RunnerState.EXITING
        self._interrupt(process)

    def _interrupt(self, process: asyncio.subprocess.Process) -> None:
        logger.info("Interrupting script %s (pid %s)", self.script_id, process.pid)
        try:
            if os.name == "nt":
                process.terminate()
            elif self._process_group:
                os.killpg(os.getpgid(process.pid), signal.SIGINT)
            else:
                process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            logger.debug("Process %s of script %s already exited", process.pid, self.script_id)

    async def send_input(self, data: str) -> None:
        if not self.policy.permissions.can_send_input:
            raise RunnerPermissionError(
                f"Can not send input to script {self.script_id}, scripts of language "
                f"{self.policy.language.value} can not receive inputs",
                operation="send_input",
            )
        process = self.process
        if process is None or process.stdin is None:
            raise RunnerStateError(
                "can not send data to a script that is not running", state=self.state.value
            )

        process.stdin.write(f"{data}\n".encode())
        self.events.emit(RunnerEventType.SEND_INPUT, data=data)
        try:
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise RunnerIOError(f"Could not write to script {self.script_id}: {exc}") from exc

    # ── Console ───────────────────────────────────────────────────────

    def create_log_channel(self, add_newline: bool = False) -> LogChannel:
        channel = LogChannel(add_newline=add_newline)
        channel.subscribe(self.console_log)
        return channel

    def clear_console(self) -> None:
        self.run_configuration.clear_console()

    def console_log(self, entry: LogEntry) -> None:
        logger.debug("Script %s logged %s: %r", self.script_id, entry.level.value, entry.message)
        self.run_configuration.console_history.append(entry)
        self.events.emit(RunnerEventType.CONSOLE_LOG, entry=entry)

    def trace(self, message: str) -> None:
        self.console_log(LogEntry(LogLevel.TRACE, message))

    def info(self, message: str) -> None:
        self.console_log(LogEntry(LogLevel.INFO, message))

    def warn(self, message: str) -> None:
        self.console_log(LogEntry(LogLevel.WARN, message))

    def error(self, message: str) -> None:
        self.console_log(LogEntry(LogLevel.ERROR, message))


def ensure_interpreter(policy: LanguagePolicy) -> str:
    if not policy.interpreter_command:
        raise ConfigurationError(
            f"No interpreter command configured for language {policy.language.value}"
        )
    return policy.interpreter_command
