"""Generation task runtime: one provider call plus its validate -> repair step."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import re
import time
from typing import Any, Dict, Mapping, Optional

import yaml

from ..contracts import normalize, set_path, validate
from ..llm.provider import GenerationProvider, PromptContext
from ..synthesis.fallback import FallbackSynthesizer
from ..synthesis.repair import enforce
from ..tools.base import Tool, ToolContext
from .base import TaskInstance, TaskOutput, TaskSpec, TaskState

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```\s*$", re.DOTALL)


def parse_candidate(raw: Any, spec: TaskSpec) -> Optional[Dict[str, Any]]:
    """Coerce a provider payload into a mapping, or ``None`` when unusable.

    Strings are read as JSON (code fences stripped) and then YAML. A bare
    scalar or list is wrapped when the contract declares a single field.
    """

    value = raw
    if isinstance(raw, bytes):
        value = raw.decode("utf-8", errors="replace")
    if isinstance(value, str):
        text = value.strip()
        match = _FENCE.match(text)
        if match:
            text = match.group(1).strip()
        if not text:
            return None
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            try:
                value = yaml.safe_load(text)
            except yaml.YAMLError:
                return None
    if isinstance(value, Mapping):
        return dict(value)
    names = spec.output.field_names
    if value is not None and len(names) == 1:
        return {names[0]: value}
    return None


class GenerationTask:
    """Runs one task spec against the provider and always returns a valid value."""

    def __init__(
        self,
        spec: TaskSpec,
        provider: GenerationProvider,
        synthesizer: FallbackSynthesizer,
        *,
        tools: Optional[Mapping[str, Tool]] = None,
        timeout: float = 30.0,
    ) -> None:
        self.spec = spec
        self.provider = provider
        self.synthesizer = synthesizer
        self.tools = dict(tools or {})
        self.timeout = timeout

    def consult_tools(self, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        values = dict(inputs)
        notes = []
        for name in self.spec.tools:
            tool = self.tools.get(name)
            if tool is None:
                logger.warning("Task %s: tool %s is not available", self.spec.id, name)
                continue
            try:
                result = tool.run(inputs=values, context=ToolContext(task_id=self.spec.id))
            except Exception:
                logger.warning("Task %s: tool %s failed", self.spec.id, name, exc_info=True)
                continue
            for key, item in result.data.items():
                values.setdefault(key, item)
            notes.append(result.content)
        if notes:
            values.setdefault("tool_notes", "\n".join(notes))
        return values

    async def call_provider(self, prompt: str) -> Any:
        context = PromptContext(task_id=self.spec.id, contract=self.spec.output.describe())
        try:
            return await asyncio.wait_for(self.provider.generate(prompt, context), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Task %s: generation timed out after %.1fs", self.spec.id, self.timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Task %s: generation failed: %s", self.spec.id, exc)
        return None

    async def run(self, inputs: Mapping[str, Any], instance: Optional[TaskInstance] = None) -> TaskOutput:
        instance = instance or TaskInstance(spec=self.spec)
        instance.inputs = dict(inputs)
        instance.transition(TaskState.RUNNING)
        started = time.perf_counter()

        values = self.consult_tools(inputs)
        raw = await self.call_provider(self.spec.render_prompt(values))
        instance.raw = raw
        candidate = parse_candidate(raw, self.spec)
        if raw is not None and candidate is None:
            logger.warning("Task %s: could not parse provider payload", self.spec.id)

        instance.transition(TaskState.VALIDATING)
        contract = self.spec.output
        if candidate is not None:
            candidate = {name: candidate[name] for name in contract.field_names if name in candidate}
        accepted = normalize(self._pin(candidate or {}, values), contract.constraints)
        result = validate(accepted, contract.constraints)
        if not result:
            instance.transition(TaskState.NEEDS_REPAIR)
            instance.repaired = True
            instance.violations = result.messages()
            logger.info("Task %s: repairing %d violation(s)", self.spec.id, len(result.violations))
            accepted = self._repair(values, candidate)

        instance.result = accepted
        instance.duration = time.perf_counter() - started
        instance.transition(TaskState.COMPLETED)
        return TaskOutput(
            task_id=self.spec.id,
            value=accepted,
            repaired=instance.repaired,
            violations=result.violations,
            raw=raw,
            duration=instance.duration,
        )

    def _repair(self, values: Mapping[str, Any], candidate: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        contract = self.spec.output
        try:
            accepted = self.synthesizer.synthesize(self.spec.id, values, contract, prior=candidate)
            accepted = normalize(self._pin(accepted, values), contract.constraints)
            if validate(accepted, contract.constraints):
                return accepted
            logger.warning("Task %s: synthesized value still invalid, enforcing", self.spec.id)
            return enforce(accepted, contract, values)
        except Exception:
            logger.warning("Task %s: repair failed, enforcing from scratch", self.spec.id, exc_info=True)
            return enforce(self._pin({}, values), contract, values)

    def _pin(self, value: Mapping[str, Any], values: Mapping[str, Any]) -> Dict[str, Any]:
        pinned = copy.deepcopy(dict(value))
        for path, input_name in self.spec.pinned.items():
            if values.get(input_name) is not None:
                set_path(pinned, path, values[input_name])
        return pinned
