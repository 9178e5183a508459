"""
External interpreter strategy: materialize the script and spawn an interpreter.
"""

from __future__ import annotations

from pathlib import Path

from ..core.exceptions import ConfigurationError, RunnerIOError
from ..core.logging import get_logger
from ..languages import ExecutionStrategy
from .base import ScriptRunner, ensure_interpreter

logger = get_logger(__name__)


class ExternalInterpreterRunner(ScriptRunner):
    """Runs ``{command} {arguments...} {script file} {script arguments...}``."""

    strategy = ExecutionStrategy.EXTERNAL_INTERPRETER

    async def execute_script(self) -> None:
        source = self.run_configuration.script_source
        language = self.policy.language.value

        # Resolve everything before touching the disk so a bad configuration
        # leaves no file behind.
        command = ensure_interpreter(self.policy)
        detached = self.effective_detached()
        arguments = self.command_line_arguments()
        script_arguments = self.script_argument_tokens()
        resolved = self.resolve_script_path()

        artifact: Path | None = None
        if source.is_inline:
            if not source.content:
                raise ConfigurationError(
                    f"can not run a {language} script from string with empty script content"
                )
            logger.debug("Writing execution file %s for %s", resolved.logical_path, self.script_id)
            artifact = self.host.create_or_overwrite_file(resolved.logical_path, source.content)

        args = [*arguments, str(resolved.concrete_path), *script_arguments]
        logger.info("Running command: %s %s", command, " ".join(args))

        try:
            process = await self._spawner(
                command,
                args,
                detached=detached,
                use_shell=detached,
                cwd=resolved.concrete_path.parent,
            )
        except OSError as exc:
            if artifact is not None:
                self._cleanup_artifact(artifact)
            raise RunnerIOError(
                f"Failed to start {language} interpreter '{command}': {exc}", str(resolved.concrete_path)
            ) from exc

        self._process_group = detached
        self._attach_process(process, artifact)
