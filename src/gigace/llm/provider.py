"""Generation capability abstractions used by the task runtime."""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol


class GenerationError(RuntimeError):
    """Raised by providers when a generation call cannot produce a candidate."""


@dataclass
class PromptContext:
    """Metadata about the call: which task asks and what shape it expects back."""

    task_id: str
    contract: Dict[str, Any] = field(default_factory=dict)


class GenerationProvider(Protocol):
    """Interface for generation backends.

    ``generate`` may return a mapping, a JSON/YAML string, or raise; the task
    runtime treats every failure mode the same way.
    """

    async def generate(self, prompt: str, context: PromptContext) -> Any:  # pragma: no cover - interface
        """Return a raw candidate for the given prompt."""


class OfflineProvider:
    """Provider for runs without a model: every call fails, so every task falls back."""

    def __init__(self, reason: str = "generation backend not configured") -> None:
        self.reason = reason

    async def generate(self, prompt: str, context: PromptContext) -> Any:
        raise GenerationError(f"{context.task_id}: {self.reason}")


class StaticResponseProvider:
    """Replays canned responses per task id (useful for tests and demos).

    A response may be a value, an exception instance (raised), or a list of
    either, consumed one call at a time. ``delays`` adds an ``asyncio.sleep``
    before answering so concurrency can be observed.
    """

    def __init__(
        self,
        responses: Optional[Mapping[str, Any]] = None,
        *,
        delays: Optional[Mapping[str, float]] = None,
        default: Any = None,
    ) -> None:
        self._responses: Dict[str, List[Any]] = {}
        for task_id, value in (responses or {}).items():
            self._responses[task_id] = list(value) if isinstance(value, list) else [value]
        self.delays = dict(delays or {})
        self.default = default
        self.calls: List[PromptContext] = []
        self.prompts: Dict[str, List[str]] = defaultdict(list)

    async def generate(self, prompt: str, context: PromptContext) -> Any:
        self.calls.append(context)
        self.prompts[context.task_id].append(prompt)
        delay = self.delays.get(context.task_id, 0.0)
        if delay:
            await asyncio.sleep(delay)
        queue = self._responses.get(context.task_id)
        if queue:
            value = queue.pop(0) if len(queue) > 1 else queue[0]
        else:
            value = self.default
        if isinstance(value, BaseException):
            raise value
        if value is None:
            raise GenerationError(f"No canned response for task {context.task_id}")
        return value


class OllamaProvider:
    """Calls a locally hosted Ollama model via its HTTP API, asking for JSON output."""

    def __init__(
        self,
        model: str,
        *,
        host: str = "http://localhost:11434",
        options: Dict[str, Any] | None = None,
        system_prompt: str | None = None,
        timeout: float = 120.0,
    ) -> None:
        self.model = model
        self.host = host.rstrip("/")
        self.options = options or {}
        self.system_prompt = system_prompt
        self.timeout = timeout

    async def generate(self, prompt: str, context: PromptContext) -> Any:
        return await asyncio.to_thread(self._generate_sync, prompt, context)

    def build_payload(self, prompt: str, context: PromptContext) -> Dict[str, Any]:
        instructions = (
            "Respond with a single JSON object matching this output contract:\n"
            + json.dumps(context.contract, indent=2)
        )
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": f"{prompt}\n\n{instructions}",
            "stream": False,
            "format": "json",
            "options": self.options,
        }
        if self.system_prompt:
            payload["system"] = self.system_prompt.format(task=context.task_id)
        return payload

    def _generate_sync(self, prompt: str, context: PromptContext) -> str:
        request = urllib.request.Request(
            url=f"{self.host}/api/generate",
            data=json.dumps(self.build_payload(prompt, context)).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.URLError as exc:
            raise GenerationError(f"OllamaProvider failed to reach {self.host}: {exc}") from exc
        data = json.loads(body)
        if "error" in data:
            raise GenerationError(f"OllamaProvider error: {data['error']}")
        result = data.get("response")
        if not isinstance(result, str):
            raise GenerationError(f"OllamaProvider returned unexpected payload: {data}")
        return result.strip()
