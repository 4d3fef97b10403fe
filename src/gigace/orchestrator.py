"""Task graph orchestration: run every unblocked task concurrently."""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .contracts import get_path
from .llm.provider import GenerationProvider
from .synthesis.fallback import FallbackSynthesizer
from .tasks.base import TaskInstance, TaskOutput, TaskSpec, TaskState
from .tasks.graph import GraphConfigurationError, TaskGraph
from .tasks.runner import GenerationTask
from .tools.base import Tool
from .tools.builtin import register_builtin_tools
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

Event = Dict[str, Any]
EventCallback = Callable[[Event], Any]


@dataclass
class CompositeResult:
    """Final value of every task, available only once all tasks completed."""

    outputs: Dict[str, Dict[str, Any]]
    instances: Dict[str, TaskInstance] = field(default_factory=dict)
    duration: float = 0.0

    def __getitem__(self, task_id: str) -> Dict[str, Any]:
        return self.outputs[task_id]

    def __contains__(self, task_id: str) -> bool:
        return task_id in self.outputs

    def get(self, task_id: str, default: Any = None) -> Any:
        return self.outputs.get(task_id, default)

    @property
    def repaired_tasks(self) -> List[str]:
        return sorted(task_id for task_id, instance in self.instances.items() if instance.repaired)

    def as_dict(self) -> Dict[str, Any]:
        return {"outputs": self.outputs, "repaired": self.repaired_tasks, "duration": self.duration}


def default_tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    register_builtin_tools(registry)
    return registry


class Orchestrator:
    """Runs a task graph for one request.

    Every task whose dependencies are complete is started at once; when a task
    finishes, its dependents' in-degree drops and those reaching zero start with
    inputs resolved from the upstream outputs. Only a malformed graph aborts a
    run; individual tasks always complete with a valid value.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        *,
        synthesizer: Optional[FallbackSynthesizer] = None,
        tool_registry: Optional[ToolRegistry] = None,
        timeout: float = 30.0,
        on_event: Optional[EventCallback] = None,
    ) -> None:
        self.provider = provider
        self.synthesizer = synthesizer or FallbackSynthesizer()
        self.tool_registry = tool_registry or default_tool_registry()
        self.timeout = timeout
        self.on_event = on_event

    def build_graph(self, specs: Union[TaskGraph, Iterable[TaskSpec]]) -> TaskGraph:
        graph = specs if isinstance(specs, TaskGraph) else TaskGraph(specs)
        for spec in graph.specs.values():
            for name in spec.tools:
                if name not in self.tool_registry:
                    raise GraphConfigurationError(f"Task '{spec.id}' uses unknown tool '{name}'")
        return graph

    def _tools_for(self, spec: TaskSpec) -> Dict[str, Tool]:
        return {name: self.tool_registry.get(name) for name in spec.tools}

    async def run_all(
        self,
        specs: Union[TaskGraph, Iterable[TaskSpec]],
        initial_inputs: Mapping[str, Any],
    ) -> CompositeResult:
        graph = self.build_graph(specs)
        graph.check_inputs(initial_inputs)
        runners = {
            task_id: GenerationTask(
                spec, self.provider, self.synthesizer, tools=self._tools_for(spec), timeout=self.timeout
            )
            for task_id, spec in graph.specs.items()
        }
        instances = {task_id: TaskInstance(spec=spec) for task_id, spec in graph.specs.items()}
        for task_id in graph.order():
            await self._emit({"type": "status", "task_id": task_id, "status": TaskState.PENDING.value})

        started = time.perf_counter()
        remaining = graph.in_degrees()
        outputs: Dict[str, TaskOutput] = {}
        running: Dict["asyncio.Task[TaskOutput]", str] = {}

        def start(task_id: str) -> None:
            inputs = self.resolve_inputs(graph.specs[task_id], initial_inputs, outputs)
            future = asyncio.create_task(self._run_one(runners[task_id], inputs, instances[task_id]))
            running[future] = task_id

        try:
            for task_id in graph.order():
                if remaining[task_id] == 0:
                    start(task_id)
            while running:
                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for future in done:
                    task_id = running.pop(future)
                    outputs[task_id] = future.result()
                    for dependent in graph.dependents(task_id):
                        remaining[dependent] -= 1
                        if remaining[dependent] == 0:
                            start(dependent)
        finally:
            for future in running:
                future.cancel()
            if running:
                await asyncio.gather(*running, return_exceptions=True)

        result = CompositeResult(
            outputs={task_id: outputs[task_id].value for task_id in graph.order()},
            instances=instances,
            duration=time.perf_counter() - started,
        )
        logger.info(
            "Completed %d task(s) in %.2fs, repaired: %s",
            len(result.outputs),
            result.duration,
            ", ".join(result.repaired_tasks) or "none",
        )
        await self._emit({"type": "complete", "repaired": result.repaired_tasks, "duration": result.duration})
        return result

    def run(self, specs: Union[TaskGraph, Iterable[TaskSpec]], initial_inputs: Mapping[str, Any]) -> CompositeResult:
        return asyncio.run(self.run_all(specs, initial_inputs))

    @staticmethod
    def resolve_inputs(
        spec: TaskSpec,
        initial_inputs: Mapping[str, Any],
        outputs: Mapping[str, TaskOutput],
    ) -> Dict[str, Any]:
        """Collect a task's inputs from the request and its upstream outputs.

        A task without declared bindings receives a copy of the request.
        """

        if not spec.inputs:
            return copy.deepcopy(dict(initial_inputs))
        values: Dict[str, Any] = {}
        for binding in spec.inputs:
            source: Any = initial_inputs if binding.upstream is None else outputs[binding.upstream].value
            value = get_path(source, binding.path, None) if binding.path else source
            if value is None:
                value = binding.default
            values[binding.name] = copy.deepcopy(value)
        return values

    async def _run_one(self, runner: GenerationTask, inputs: Dict[str, Any], instance: TaskInstance) -> TaskOutput:
        await self._emit({"type": "status", "task_id": runner.spec.id, "status": TaskState.RUNNING.value})
        output = await runner.run(inputs, instance)
        await self._emit({"type": "status", "task_id": runner.spec.id, "status": output.status})
        return output

    async def _emit(self, event: Event) -> None:
        if self.on_event is None:
            return
        try:
            outcome = self.on_event(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.warning("Event callback failed for %s", event, exc_info=True)
