"""Tool abstractions; the registry lives in :mod:`gigace.tools.registry`."""

from .base import Tool, ToolContext, ToolResult

__all__ = ["Tool", "ToolContext", "ToolResult"]
