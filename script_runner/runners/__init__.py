"""
Script runner engine and its execution strategies.
"""

from .base import ProcessSpawner, RunnerState, ScriptRunner, spawn_process
from .external import ExternalInterpreterRunner
from .factory import RUNNER_STRATEGIES, create_runner
from .in_process import InProcessRunner
from .resolution import (
    resolve_effective_arguments,
    resolve_effective_detached,
    resolve_effective_execution_path,
    serialize_argument,
    serialize_arguments,
)

__all__ = [
    "ExternalInterpreterRunner",
    "InProcessRunner",
    "ProcessSpawner",
    "RUNNER_STRATEGIES",
    "RunnerState",
    "ScriptRunner",
    "create_runner",
    "resolve_effective_arguments",
    "resolve_effective_detached",
    "resolve_effective_execution_path",
    "serialize_argument",
    "serialize_arguments",
    "spawn_process",
]
