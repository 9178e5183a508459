"""
Execution path resolution.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path

from .core.exceptions import ConfigurationError
from .core.ids import file_safe_id
from .host import HostContext
from .languages import LanguagePolicy
from .run_config import ExecutionPath, PathMode


@dataclass(frozen=True, slots=True)
class ResolvedPath:
    """
    Where a script lives.

    ``logical_path`` is root-relative (empty for absolute paths, which the host
    does not manage); ``concrete_path`` is what the interpreter is given.
    """

    logical_path: str
    concrete_path: Path


def execution_file_name(policy: LanguagePolicy, script_id: str) -> str:
    """``{language}_{uuid}.{ext}``; stable per block, so re-runs overwrite the same file."""
    return f"{policy.language.value}_{file_safe_id(script_id)}.{policy.file_extension}"


def looks_like_directory(offset: str) -> bool:
    if not offset or offset.endswith(("/", "\\")):
        return True
    last_segment = posixpath.basename(offset.replace("\\", "/"))
    return "." not in last_segment.lstrip(".")


def resolve_execution_path(
    execution_path: ExecutionPath,
    host: HostContext,
    script_file_name: str,
    *,
    inline: bool,
) -> ResolvedPath:
    """
    Resolve a block's execution path to a concrete file.

    For inline scripts a directory-like offset gets ``script_file_name``
    appended, since the script has to be materialized somewhere.
    """
    offset = execution_path.offset or ""
    if inline and execution_path.mode is not PathMode.ABSOLUTE and looks_like_directory(offset):
        offset = posixpath.join(offset, script_file_name)

    if execution_path.mode is PathMode.DOCUMENT_RELATIVE:
        document_directory = host.get_active_document_directory()
        if document_directory is None:
            raise ConfigurationError(
                "can not run script with document relative execution path, no document is open"
            )
        logical = posixpath.normpath(posixpath.join(document_directory, offset))
        return ResolvedPath(logical, host.root_directory / logical)

    if execution_path.mode is PathMode.ROOT_RELATIVE:
        logical = posixpath.normpath(offset)
        return ResolvedPath(logical, host.root_directory / logical)

    if execution_path.mode is PathMode.ABSOLUTE:
        if inline:
            raise ConfigurationError(
                "can not run an inline script with an absolute execution path, "
                "inline scripts need a directory to be written to"
            )
        return ResolvedPath("", Path(offset))

    raise ConfigurationError(f"Unknown execution path mode: {execution_path.mode!r}")
