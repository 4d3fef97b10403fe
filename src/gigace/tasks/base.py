"""Task dataclasses used by the orchestrator."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..contracts import Contract, Violation

REQUEST = "request"


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    VALIDATING = "validating"
    NEEDS_REPAIR = "needs_repair"
    COMPLETED = "completed"


_TRANSITIONS = {
    TaskState.PENDING: {TaskState.RUNNING},
    TaskState.RUNNING: {TaskState.VALIDATING},
    TaskState.VALIDATING: {TaskState.NEEDS_REPAIR, TaskState.COMPLETED},
    TaskState.NEEDS_REPAIR: {TaskState.COMPLETED},
    TaskState.COMPLETED: set(),
}


@dataclass
class InputBinding:
    """Named task input and where its value comes from.

    ``source`` is ``request.<key>`` for a value of the top-level request, or
    ``<task_id>.<path>`` for (part of) an upstream task's output. A bare task
    id binds the upstream task's whole output.
    """

    name: str
    source: str
    required: bool = True
    default: Any = None

    @property
    def origin(self) -> str:
        return self.source.split(".", 1)[0]

    @property
    def path(self) -> str:
        parts = self.source.split(".", 1)
        return parts[1] if len(parts) > 1 else ""

    @property
    def upstream(self) -> Optional[str]:
        return None if self.origin == REQUEST else self.origin

    @classmethod
    def parse(cls, name: str, data: Any) -> "InputBinding":
        if isinstance(data, str):
            return cls(name=name, source=data)
        if not isinstance(data, Mapping) or "from" not in data:
            raise ValueError(f"Input '{name}' needs a source string or a mapping with 'from'")
        return cls(
            name=name,
            source=str(data["from"]),
            required=bool(data.get("required", "default" not in data)),
            default=data.get("default"),
        )


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def fill_placeholders(template: str, values: Mapping[str, Any]) -> str:
    """Fill ``{name}`` placeholders; unknown placeholders are left as-is."""

    rendered = _KeepMissing(
        {
            key: json.dumps(value, indent=2) if isinstance(value, (dict, list)) else value
            for key, value in values.items()
        }
    )
    return template.format_map(rendered)


@dataclass
class TaskSpec:
    """Static description of one generation task."""

    id: str
    output: Contract
    description: str = ""
    inputs: List[InputBinding] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)
    prompt: str = ""
    tools: List[str] = field(default_factory=list)
    pinned: Dict[str, str] = field(default_factory=dict)

    def upstream_ids(self) -> List[str]:
        return [binding.upstream for binding in self.inputs if binding.upstream]

    def render_prompt(self, values: Mapping[str, Any]) -> str:
        return fill_placeholders(self.prompt or self.description or self.id, values)


@dataclass
class TaskInstance:
    """One run of a TaskSpec for a single request."""

    spec: TaskSpec
    state: TaskState = TaskState.PENDING
    inputs: Dict[str, Any] = field(default_factory=dict)
    raw: Any = None
    result: Optional[Dict[str, Any]] = None
    repaired: bool = False
    violations: List[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def task_id(self) -> str:
        return self.spec.id

    @property
    def is_terminal(self) -> bool:
        return self.state is TaskState.COMPLETED

    def transition(self, state: TaskState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Task {self.task_id} cannot move from {self.state.value} to {state.value}")
        self.state = state


@dataclass
class TaskOutput:
    """Accepted value of a task plus repair bookkeeping."""

    task_id: str
    value: Dict[str, Any]
    repaired: bool = False
    violations: Tuple[Violation, ...] = ()
    raw: Any = None
    duration: float = 0.0

    @property
    def status(self) -> str:
        return "repaired" if self.repaired else "completed"
