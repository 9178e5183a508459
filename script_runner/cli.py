"""
Command-line interface for running the script blocks of a Markdown document.

Output of each block is streamed to the terminal with Rich as it arrives.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .blocks import CodeBlock, find_blocks
from .console import LogEntry, LogLevel
from .core.config import ConfigManager
from .core.exceptions import ScriptRunnerError
from .core.ids import id_comment, new_script_id
from .core.logging import setup_logging
from .host import FilesystemHost
from .languages import LanguagePolicyRegistry, parse_block_language
from .store import JsonRunConfigurationStore

LEVEL_STYLES = {
    LogLevel.TRACE: "dim",
    LogLevel.INFO: "",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "red",
}


def _document_host(config_manager: ConfigManager, document: Path) -> FilesystemHost:
    root = config_manager.root_directory
    document = document.resolve()
    try:
        relative = document.relative_to(root)
    except ValueError:
        raise ScriptRunnerError(f"Document {document} is outside the root directory {root}") from None
    return FilesystemHost(root, active_document=relative.as_posix())


def _load_blocks(config_manager: ConfigManager, document: Path) -> list[CodeBlock]:
    config = config_manager.config
    host = _document_host(config_manager, document)
    store = JsonRunConfigurationStore(config_manager.store_path)
    registry = LanguagePolicyRegistry(interpreters=config.interpreters.as_language_map())
    return [
        CodeBlock.from_source(source.info_string, source.content, store=store, host=host, registry=registry)
        for source in find_blocks(host.read_active_document())
    ]


def list_blocks(console: Console, config_manager: ConfigManager, document: Path) -> int:
    table = Table(title=str(document))
    table.add_column("Language")
    table.add_column("Script id")
    table.add_column("Terminate")
    table.add_column("Input")

    for block in _load_blocks(config_manager, document):
        script_id = block.script_id or Text(block.id_error or "", style="red")
        table.add_row(
            block.language.value,
            script_id,
            "yes" if block.can_terminate else "no",
            "yes" if block.can_send_input else "no",
        )
    console.print(table)
    return 0


async def run_blocks(
    console: Console,
    config_manager: ConfigManager,
    document: Path,
    script_id: str | None = None,
    inputs: list[str] | None = None,
) -> int:
    blocks = [
        block
        for block in _load_blocks(config_manager, document)
        if block.can_run and (script_id is None or block.script_id == script_id)
    ]
    if not blocks:
        console.print("[yellow]No runnable blocks found[/yellow]")
        return 1

    failures = 0
    for block in blocks:
        console.rule(f"{block.language.value} {block.script_id}")
        errors: list[BaseException] = []

        def show(entry: LogEntry) -> None:
            console.print(Text(entry.message, style=LEVEL_STYLES[entry.level]), end="")

        block.runner.on_console_log(show)
        block.runner.on_execution_error(errors.append)

        await block.run()
        if not errors:
            for line in inputs or []:
                if block.can_send_input and block.runner.process is not None:
                    await block.send_input(line)
            exit_code = await block.wait()
            if exit_code not in (0, None):
                failures += 1
        else:
            failures += 1
        console.print()
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="script-runner",
        description="Run the *-runner code blocks embedded in a Markdown document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List the runnable blocks of a document
  script-runner list notes/analysis.md

  # Run one block, feeding it two lines of input
  script-runner run notes/analysis.md --id 3f0c... --input 42 --input quit

  # Print a fresh id comment for a Python block
  script-runner new-id --language py
        """,
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=None,
        help="Directory holding script_runner.yaml (default: current directory)",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List runnable blocks of a document")
    list_parser.add_argument("document", type=Path)

    run_parser = subparsers.add_parser("run", help="Run the blocks of a document")
    run_parser.add_argument("document", type=Path)
    run_parser.add_argument("--id", dest="script_id", help="Only run the block with this script id")
    run_parser.add_argument(
        "--input",
        dest="inputs",
        action="append",
        default=[],
        help="Line to send to the script after it starts (repeatable)",
    )

    id_parser = subparsers.add_parser("new-id", help="Generate a script id")
    id_parser.add_argument(
        "--language",
        help="Block language tag (py, js, octave, cmd); prints a full id comment line",
    )

    args = parser.parse_args(argv)
    console = Console()
    error_console = Console(stderr=True)

    try:
        if args.command == "new-id":
            script_id = new_script_id()
            if args.language:
                policy = LanguagePolicyRegistry().policy_for(parse_block_language(f"{args.language}-runner"))
                console.print(id_comment(policy.comment_prefix, script_id), markup=False)
            else:
                console.print(script_id, markup=False)
            return 0

        config_manager = ConfigManager(args.project)
        config = config_manager.config
        setup_logging(args.log_level or config.log_level, rich_output=config.rich_logging)

        if args.command == "list":
            return list_blocks(console, config_manager, args.document)
        return asyncio.run(
            run_blocks(console, config_manager, args.document, args.script_id, args.inputs)
        )
    except ScriptRunnerError as exc:
        error_console.print(f"[red]error:[/red] {exc}", highlight=False)
        return 2


if __name__ == "__main__":
    sys.exit(main())
