"""
Custom exceptions for Script Runner.

Provides specific exception types for better error handling and user feedback.
"""


class ScriptRunnerError(Exception):
    """Base exception for Script Runner errors."""


class ConfigurationError(ScriptRunnerError):
    """Invalid or contradictory policy/override configuration."""


class RunnerPermissionError(ScriptRunnerError):
    """Operation disallowed by the language policy."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation
        self.user_message = message
        self.recovery_hint = "This language does not support the requested action."


class RunnerStateError(ScriptRunnerError):
    """Operation invalid in the runner's current state."""

    def __init__(self, message: str, state: str = ""):
        super().__init__(message)
        self.state = state
        self.user_message = message
        self.recovery_hint = "Run the script first, or wait for the current run to finish."


class RunnerIOError(ScriptRunnerError):
    """Filesystem or process-spawn failure from the host."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
        self.user_message = message
        self.recovery_hint = "Check that the path exists and is writable."


# Block parsing errors


class BlockParseError(ScriptRunnerError):
    """Base exception for code block parsing errors."""


class ScriptIdParseError(BlockParseError):
    """The identifier comment of a code block is missing or malformed."""

    def __init__(self, reason: str):
        super().__init__(f"can not parse id comment, {reason}")
        self.reason = reason
        self.user_message = f"This block has no valid script id: {reason}."
        self.recovery_hint = "Add a first line like '# script-id: <uuid>' (use `script-runner new-id`)."


class LanguageParseError(BlockParseError):
    """The code block info string does not name a runnable language."""

    def __init__(self, reason: str):
        super().__init__(f"can not parse language, {reason}")
        self.reason = reason
