"""
Core functionality for Script Runner.
"""

from .config import ConfigManager, InterpreterConfig, ScriptRunnerConfig
from .exceptions import (
    BlockParseError,
    ConfigurationError,
    LanguageParseError,
    RunnerIOError,
    RunnerPermissionError,
    RunnerStateError,
    ScriptIdParseError,
    ScriptRunnerError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "BlockParseError",
    "ConfigManager",
    "ConfigurationError",
    "InterpreterConfig",
    "LanguageParseError",
    "RunnerIOError",
    "RunnerPermissionError",
    "RunnerStateError",
    "ScriptIdParseError",
    "ScriptRunnerConfig",
    "ScriptRunnerError",
    "get_logger",
    "setup_logging",
]
