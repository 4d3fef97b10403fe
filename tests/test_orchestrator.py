import asyncio

import pytest

from gigace.contracts import Contract, FieldSpec, NonEmptyString
from gigace.llm.provider import OfflineProvider, StaticResponseProvider
from gigace.orchestrator import Orchestrator
from gigace.synthesis import FallbackSynthesizer
from gigace.tasks import GraphConfigurationError, InputBinding, TaskSpec


def spec(task_id, *deps, prompt=None, inputs=None):
    bindings = inputs if inputs is not None else [InputBinding(dep, f"{dep}.text") for dep in deps]
    return TaskSpec(
        id=task_id,
        output=Contract.from_fields([FieldSpec("text")], NonEmptyString("text")),
        depends_on=list(deps),
        inputs=bindings,
        prompt=prompt or task_id,
    )


def diamond():
    return [
        spec("a", inputs=[InputBinding("topic", "request.topic")], prompt="a about {topic}"),
        spec("b", "a", prompt="b after {a}"),
        spec("c", "a", prompt="c after {a}"),
        spec("d", "b", "c", prompt="d after {b} and {c}"),
    ]


class TracingProvider:
    """Answers every task after a short delay and records start/finish order."""

    def __init__(self, delay=0.05):
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.log = []
        self.cancelled = []

    async def generate(self, prompt, context):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.log.append(("start", context.task_id))
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled.append(context.task_id)
            raise
        finally:
            self.in_flight -= 1
        self.log.append(("finish", context.task_id))
        return {"text": f"{context.task_id} output"}


class ExplodingSynthesizer(FallbackSynthesizer):
    def synthesize(self, task_id, inputs, contract, prior=None):
        raise RuntimeError(f"synthesizer crashed on {task_id}")


def test_outputs_flow_downstream():
    provider = StaticResponseProvider(
        {"a": {"text": "alpha"}, "b": {"text": "beta"}, "c": {"text": "gamma"}, "d": {"text": "delta"}}
    )

    result = Orchestrator(provider).run(diamond(), {"topic": "logos"})

    assert result.outputs == {
        "a": {"text": "alpha"},
        "b": {"text": "beta"},
        "c": {"text": "gamma"},
        "d": {"text": "delta"},
    }
    assert provider.prompts["a"] == ["a about logos"]
    assert provider.prompts["d"] == ["d after beta and gamma"]
    assert result.repaired_tasks == []


def test_independent_tasks_run_concurrently_and_dependencies_wait():
    provider = TracingProvider(delay=0.05)

    Orchestrator(provider).run(diamond(), {"topic": "logos"})

    assert provider.max_in_flight == 2
    log = provider.log
    assert log.index(("start", "b")) > log.index(("finish", "a"))
    assert log.index(("start", "d")) > log.index(("finish", "b"))
    assert log.index(("start", "d")) > log.index(("finish", "c"))


def test_cycle_fails_before_any_task_starts():
    provider = StaticResponseProvider(default={"text": "x"})
    specs = [spec("a", "b"), spec("b", "a")]

    with pytest.raises(GraphConfigurationError):
        Orchestrator(provider).run(specs, {})
    assert provider.calls == []


def test_missing_request_input_fails_before_any_task_starts():
    provider = StaticResponseProvider(default={"text": "x"})

    with pytest.raises(GraphConfigurationError, match="topic"):
        Orchestrator(provider).run(diamond(), {})
    assert provider.calls == []


def test_unknown_tool_is_a_configuration_error():
    tooled = TaskSpec(
        id="a",
        output=Contract.from_fields([FieldSpec("text")], NonEmptyString("text")),
        tools=["does_not_exist"],
    )

    with pytest.raises(GraphConfigurationError, match="unknown tool"):
        Orchestrator(OfflineProvider()).run([tooled], {})


def test_offline_run_still_completes_every_task():
    result = Orchestrator(OfflineProvider(), synthesizer=FallbackSynthesizer(seed=3)).run(diamond(), {"topic": "seo"})

    assert list(result.outputs) == ["a", "b", "c", "d"]
    assert result.repaired_tasks == ["a", "b", "c", "d"]
    assert all(value["text"].strip() for value in result.outputs.values())
    assert all(instance.is_terminal for instance in result.instances.values())


def test_events_describe_every_transition():
    events = []
    provider = StaticResponseProvider({"a": {"text": "alpha"}}, default={"text": "fine"})

    Orchestrator(provider, on_event=events.append).run(diamond(), {"topic": "logos"})

    assert [event["status"] for event in events[:4]] == ["pending"] * 4
    assert events[-1]["type"] == "complete"
    for task_id in "abcd":
        statuses = [event["status"] for event in events if event.get("task_id") == task_id]
        assert statuses == ["pending", "running", "completed"]


def test_async_and_failing_callbacks_do_not_break_the_run():
    seen = []

    async def record(event):
        seen.append(event["type"])

    def explode(event):
        raise ValueError("listener bug")

    provider = StaticResponseProvider(default={"text": "fine"})
    Orchestrator(provider, on_event=record).run(diamond(), {"topic": "x"})
    result = Orchestrator(provider, on_event=explode).run(diamond(), {"topic": "x"})

    assert seen[-1] == "complete"
    assert len(result.outputs) == 4


def test_crashing_synthesizer_does_not_fail_the_run():
    provider = StaticResponseProvider({"fast": RuntimeError("boom")}, delays={"slow": 0.05}, default={"text": "late"})
    orchestrator = Orchestrator(provider, synthesizer=ExplodingSynthesizer())

    result = orchestrator.run([spec("slow"), spec("fast")], {})

    assert result["slow"] == {"text": "late"}
    assert result["fast"]["text"].strip()
    assert result.repaired_tasks == ["fast"]


def test_cancelling_a_run_cancels_in_flight_tasks():
    provider = TracingProvider(delay=5.0)

    async def run_and_cancel():
        task = asyncio.create_task(Orchestrator(provider).run_all([spec("slow")], {}))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run_and_cancel())
    assert provider.cancelled == ["slow"]


def test_optional_inputs_use_defaults():
    specs = [
        spec(
            "a",
            inputs=[
                InputBinding("topic", "request.topic"),
                InputBinding("tone", "request.tone", required=False, default="friendly"),
            ],
            prompt="{topic} in a {tone} tone",
        )
    ]
    provider = StaticResponseProvider(default={"text": "ok"})

    Orchestrator(provider).run(specs, {"topic": "logos"})

    assert provider.prompts["a"] == ["logos in a friendly tone"]
