"""Task specs, the dependency graph and the generation task runtime."""

from .base import InputBinding, TaskInstance, TaskOutput, TaskSpec, TaskState, fill_placeholders
from .graph import GraphConfigurationError, TaskGraph
from .runner import GenerationTask, parse_candidate

__all__ = [
    "GenerationTask",
    "GraphConfigurationError",
    "InputBinding",
    "TaskGraph",
    "TaskInstance",
    "TaskOutput",
    "TaskSpec",
    "TaskState",
    "fill_placeholders",
    "parse_candidate",
]
