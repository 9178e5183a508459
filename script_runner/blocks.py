"""
Code block glue.

Connects a runnable block found in a document to its persisted run
configuration and its runner: identifier parsing, default records, console
annotations and persistence after each run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .core.exceptions import BlockParseError, ScriptIdParseError
from .core.ids import ID_FIELD_NAME, id_comment_placeholder
from .core.logging import get_logger
from .host import HostContext
from .languages import (
    BLOCK_SUFFIX,
    Language,
    LanguagePolicy,
    LanguagePolicyRegistry,
    parse_block_language,
)
from .run_config import RunConfiguration, ScriptSource
from .runners.base import ProcessSpawner, ScriptRunner
from .runners.factory import create_runner
from .store import RunConfigurationStore

logger = get_logger(__name__)

_FENCE_RE = re.compile(
    r"^(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[\w.+-]*" + re.escape(BLOCK_SUFFIX) + r")[ \t]*\n"
    r"(?P<body>.*?)"
    r"^(?P=fence)[ \t]*$",
    re.MULTILINE | re.DOTALL,
)


def parse_script_id(content: str, comment_prefix: str) -> str:
    """
    Read the block id from ``{comment_prefix} script-id: {uuid}`` on the first line.

    Raises:
        ScriptIdParseError: naming the first thing that is wrong with the line.
    """
    if not content:
        raise ScriptIdParseError("content is undefined or empty")

    line = content.split("\n", 1)[0].strip()
    if not line:
        raise ScriptIdParseError("the first line is empty")
    if not line.startswith(comment_prefix):
        raise ScriptIdParseError("the first line is not a comment")

    rest = line[len(comment_prefix):].strip()
    if not rest.startswith(ID_FIELD_NAME):
        raise ScriptIdParseError(f"the comment does not start with '{ID_FIELD_NAME}'")

    rest = rest[len(ID_FIELD_NAME):].strip()
    if not rest.startswith(":"):
        raise ScriptIdParseError("parsing error, ':' expected")

    script_id = rest[1:].strip()
    if not script_id:
        raise ScriptIdParseError("id is empty")
    return script_id


@dataclass(slots=True)
class BlockSource:
    """A fenced ``*-runner`` block as found in a Markdown document."""

    info_string: str
    content: str
    line: int


def find_blocks(markdown: str) -> list[BlockSource]:
    blocks = []
    for match in _FENCE_RE.finditer(markdown):
        blocks.append(
            BlockSource(
                info_string=match.group("info"),
                content=match.group("body").rstrip("\n"),
                line=markdown.count("\n", 0, match.start()) + 1,
            )
        )
    return blocks


@dataclass
class ScriptState:
    is_running: bool = False
    has_run: bool = False


@dataclass
class CodeBlock:
    """
    One runnable block.

    A block whose id comment can not be parsed keeps ``id_error`` set and has
    no runner; it renders, but can not run.
    """

    language: Language
    policy: LanguagePolicy
    content: str
    store: RunConfigurationStore
    script_id: str | None = None
    id_error: str | None = None
    run_configuration: RunConfiguration | None = None
    runner: ScriptRunner | None = None
    state: ScriptState = field(default_factory=ScriptState)

    @classmethod
    def from_source(
        cls,
        info_string: str,
        content: str,
        *,
        store: RunConfigurationStore,
        host: HostContext,
        registry: LanguagePolicyRegistry | None = None,
        spawner: ProcessSpawner | None = None,
    ) -> "CodeBlock":
        """
        Build a block from its info string and body.

        Raises:
            LanguageParseError: malformed info string.
            ConfigurationError: the language has no policy.
        """
        registry = registry or LanguagePolicyRegistry()
        language = parse_block_language(info_string)
        policy = registry.policy_for(language)
        block = cls(language=language, policy=policy, content=content, store=store)

        try:
            block.script_id = parse_script_id(content, policy.comment_prefix)
        except ScriptIdParseError as exc:
            block.id_error = str(exc)
            logger.debug("Block without usable id: %s", exc)
            return block

        block.run_configuration = block._load_run_configuration()
        block.runner = create_runner(
            language, host, block.run_configuration, registry=registry, spawner=spawner
        )
        block._wire_runner(block.runner)
        return block

    @property
    def id_comment_placeholder(self) -> str:
        return id_comment_placeholder(self.policy.comment_prefix)

    @property
    def can_run(self) -> bool:
        return self.runner is not None

    @property
    def can_terminate(self) -> bool:
        return self.policy.permissions.can_terminate

    @property
    def can_send_input(self) -> bool:
        return self.policy.permissions.can_send_input

    def _load_run_configuration(self) -> RunConfiguration:
        record = self.store.get(self.script_id)
        if record is None:
            logger.debug("Creating default run configuration for %s", self.script_id)
            return RunConfiguration.default_for(self.script_id, self.language, self.content)
        if record.script_source.is_inline:
            # The document is the source of truth for inline scripts
            record.script_source = ScriptSource.inline(self.content)
        return record

    def _wire_runner(self, runner: ScriptRunner) -> None:
        def started() -> None:
            self.state.is_running = True
            self.state.has_run = True

        def ended(exit_code: int | None) -> None:
            self.state.is_running = False
            self.save()

        def failed(error: BaseException) -> None:
            self.state.is_running = runner.is_running
            self.save()

        def input_sent(data: str) -> None:
            runner.trace(f"{data}\n")

        def terminate_requested(reason: str | BaseException) -> None:
            if isinstance(reason, BaseException):
                runner.error(f"Script terminated because of error:\n{reason}")
            else:
                runner.warn(f"Script terminated because of:\n{reason}")

        runner.on_script_start(started)
        runner.on_script_end(ended)
        runner.on_execution_error(failed)
        runner.on_send_input(input_sent)
        runner.on_terminate_requested(terminate_requested)

    def _require_runner(self) -> ScriptRunner:
        if self.runner is None:
            raise BlockParseError(self.id_error or "block has no runner")
        return self.runner

    async def run(self) -> None:
        await self._require_runner().run()

    async def wait(self) -> int | None:
        return await self._require_runner().wait()

    async def terminate(self, reason: str | BaseException = "terminated by user") -> None:
        await self._require_runner().terminate(reason)

    async def send_input(self, data: str) -> None:
        await self._require_runner().send_input(data)

    def save(self) -> None:
        if self.run_configuration is not None:
            self.store.upsert(self.run_configuration)
