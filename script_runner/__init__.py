"""
Script Runner: run code blocks embedded in documents.
"""

from .blocks import CodeBlock, find_blocks, parse_script_id
from .console import LogChannel, LogEntry, LogLevel
from .events import RunnerEvent, RunnerEventBus, RunnerEventType
from .host import FilesystemHost, HostContext
from .languages import (
    Argument,
    ArgumentKind,
    ExecutionStrategy,
    Language,
    LanguagePermissions,
    LanguagePolicy,
    LanguagePolicyRegistry,
    policy_for,
)
from .run_config import (
    ArgumentOverrides,
    DetachedOverride,
    ExecutionPath,
    PathMode,
    RunConfiguration,
    ScriptKind,
    ScriptSource,
)
from .runners import RunnerState, ScriptRunner, create_runner
from .store import InMemoryRunConfigurationStore, JsonRunConfigurationStore, RunConfigurationStore

__version__ = "0.1.0"

__all__ = [
    "Argument",
    "ArgumentKind",
    "ArgumentOverrides",
    "CodeBlock",
    "DetachedOverride",
    "ExecutionPath",
    "ExecutionStrategy",
    "FilesystemHost",
    "HostContext",
    "InMemoryRunConfigurationStore",
    "JsonRunConfigurationStore",
    "Language",
    "LanguagePermissions",
    "LanguagePolicy",
    "LanguagePolicyRegistry",
    "LogChannel",
    "LogEntry",
    "LogLevel",
    "PathMode",
    "RunConfiguration",
    "RunConfigurationStore",
    "RunnerEvent",
    "RunnerEventBus",
    "RunnerEventType",
    "RunnerState",
    "ScriptKind",
    "ScriptRunner",
    "ScriptSource",
    "create_runner",
    "find_blocks",
    "parse_script_id",
    "policy_for",
]
