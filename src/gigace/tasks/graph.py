"""Dependency graph over task specs, validated before anything runs."""

from __future__ import annotations

from collections import deque
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..contracts import ContractError, get_path
from ..synthesis.repair import enforce
from .base import REQUEST, TaskSpec


class GraphConfigurationError(RuntimeError):
    """Raised when a task graph is malformed (cycle, unknown dependency, bad binding)."""


class TaskGraph:
    """Immutable view of a set of task specs and their dependency edges."""

    def __init__(self, specs: Iterable[TaskSpec]) -> None:
        self.specs: Dict[str, TaskSpec] = {}
        for spec in specs:
            if spec.id == REQUEST:
                raise GraphConfigurationError(f"'{REQUEST}' is reserved and cannot be a task id")
            if spec.id in self.specs:
                raise GraphConfigurationError(f"Duplicate task id '{spec.id}'")
            self.specs[spec.id] = spec
        if not self.specs:
            raise GraphConfigurationError("Task graph is empty")
        self._check_edges()
        self._order = self._topological_order()
        self._check_contracts()

    def __len__(self) -> int:
        return len(self.specs)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self.specs

    def _check_edges(self) -> None:
        for spec in self.specs.values():
            for dependency in spec.depends_on:
                if dependency == spec.id:
                    raise GraphConfigurationError(f"Task '{spec.id}' depends on itself")
                if dependency not in self.specs:
                    raise GraphConfigurationError(f"Task '{spec.id}' depends on unknown task '{dependency}'")
            for binding in spec.inputs:
                upstream = binding.upstream
                if upstream and upstream not in spec.depends_on:
                    raise GraphConfigurationError(
                        f"Task '{spec.id}' input '{binding.name}' reads from '{upstream}', "
                        "which is not one of its dependencies"
                    )
            for field_path, input_name in spec.pinned.items():
                if input_name not in {binding.name for binding in spec.inputs}:
                    raise GraphConfigurationError(
                        f"Task '{spec.id}' pins '{field_path}' to unknown input '{input_name}'"
                    )

    def _topological_order(self) -> List[str]:
        degrees = self.in_degrees()
        ready = deque(task_id for task_id, degree in degrees.items() if degree == 0)
        order: List[str] = []
        while ready:
            task_id = ready.popleft()
            order.append(task_id)
            for dependent in self.dependents(task_id):
                degrees[dependent] -= 1
                if degrees[dependent] == 0:
                    ready.append(dependent)
        if len(order) != len(self.specs):
            stuck = sorted(task_id for task_id in self.specs if task_id not in order)
            raise GraphConfigurationError(f"Dependency cycle among tasks: {', '.join(stuck)}")
        return order

    def _check_contracts(self) -> None:
        for spec in self.specs.values():
            try:
                enforce({}, spec.output, phrase="probe")
            except ContractError as exc:
                raise GraphConfigurationError(f"Task '{spec.id}' has an unsatisfiable output contract: {exc}") from exc

    def in_degrees(self) -> Dict[str, int]:
        return {task_id: len(set(spec.depends_on)) for task_id, spec in self.specs.items()}

    def dependents(self, task_id: str) -> List[str]:
        return [spec.id for spec in self.specs.values() if task_id in spec.depends_on]

    def roots(self) -> List[str]:
        return [task_id for task_id, degree in self.in_degrees().items() if degree == 0]

    def order(self) -> List[str]:
        return list(self._order)

    def levels(self) -> List[List[str]]:
        """Group tasks into waves that can run together."""

        depth: Dict[str, int] = {}
        for task_id in self._order:
            parents = self.specs[task_id].depends_on
            depth[task_id] = 1 + max((depth[parent] for parent in parents), default=-1)
        waves: List[List[str]] = [[] for _ in range(max(depth.values()) + 1)]
        for task_id in self._order:
            waves[depth[task_id]].append(task_id)
        return waves

    def check_inputs(self, initial_inputs: Mapping[str, Any]) -> None:
        missing: List[str] = []
        for spec in self.specs.values():
            for binding in spec.inputs:
                if binding.upstream is None and binding.required and _absent(initial_inputs, binding.path):
                    missing.append(f"{spec.id}.{binding.name} <- {binding.source}")
        if missing:
            raise GraphConfigurationError("Missing required request inputs: " + "; ".join(missing))


def _absent(inputs: Mapping[str, Any], key: Optional[str]) -> bool:
    if not key:
        return False
    return get_path(inputs, key, None) is None
