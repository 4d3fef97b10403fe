"""Base classes for tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


@dataclass
class ToolContext:
    """Identifies the task invoking a tool."""

    task_id: str


@dataclass
class ToolResult:
    """Result returned by a tool.

    ``data`` is merged into the calling task's prompt values and fallback inputs.
    """

    content: str
    data: Dict[str, Any] = field(default_factory=dict)


class Tool:
    """Base tool class."""

    name: str
    description: str

    def __init__(self, name: str, description: str | None = None, **kwargs: object) -> None:
        self.name = name
        self.description = description or self.__class__.__doc__ or ""
        self.config = kwargs

    def run(self, *, inputs: Mapping[str, Any], context: ToolContext) -> ToolResult:  # pragma: no cover - abstract
        raise NotImplementedError
