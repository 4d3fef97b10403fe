import asyncio

import pytest

from gigace.contracts import Contract, FieldSpec, LengthBounds, MaxChars, NonEmptyString, NumericRange, StartsWith
from gigace.llm.provider import GenerationError, OllamaProvider, PromptContext, StaticResponseProvider
from gigace.synthesis import FallbackSynthesizer
from gigace.tasks import GenerationTask, InputBinding, TaskInstance, TaskSpec, TaskState, fill_placeholders, parse_candidate
from gigace.tools import Tool, ToolContext, ToolResult


def title_spec(**overrides):
    contract = Contract.from_fields(
        [FieldSpec("title")],
        NonEmptyString("title"),
        StartsWith("title", "I will"),
        MaxChars("title", 80),
    )
    values = dict(
        id="title",
        output=contract,
        inputs=[InputBinding("keyword", "request.keyword")],
        prompt="Write a gig title for {keyword}.",
    )
    values.update(overrides)
    return TaskSpec(**values)


def price_spec():
    contract = Contract.from_fields(
        [FieldSpec("label"), FieldSpec("price", "integer")],
        NonEmptyString("label"),
        NumericRange("price", 5, 500, integer=True),
    )
    return TaskSpec(
        id="offer",
        output=contract,
        inputs=[InputBinding("keyword", "request.keyword"), InputBinding("price_in", "request.price")],
        pinned={"price": "price_in"},
    )


def run(task, inputs):
    return asyncio.run(task.run(inputs))


class ResearchTool(Tool):
    def run(self, *, inputs, context: ToolContext) -> ToolResult:
        return ToolResult(content=f"research for {inputs['keyword']}", data={"hint": "use power words"})


class BrokenTool(Tool):
    def run(self, *, inputs, context: ToolContext) -> ToolResult:
        raise RuntimeError("tool down")


def test_parse_candidate_handles_fenced_json_and_yaml():
    spec = title_spec()

    assert parse_candidate('```json\n{"title": "I will help"}\n```', spec) == {"title": "I will help"}
    assert parse_candidate("title: I will help", spec) == {"title": "I will help"}
    assert parse_candidate(b'{"title": "bytes"}', spec) == {"title": "bytes"}


def test_parse_candidate_wraps_scalars_for_single_field_contracts():
    assert parse_candidate("I will design a logo", title_spec()) == {"title": "I will design a logo"}

    tags = TaskSpec(id="tags", output=Contract.from_fields([FieldSpec("tags", "array")], LengthBounds("tags", 1)))
    assert parse_candidate(["a", "b"], tags) == {"tags": ["a", "b"]}


def test_parse_candidate_rejects_unusable_payloads():
    assert parse_candidate("", title_spec()) is None
    assert parse_candidate("{{{", title_spec()) is None
    assert parse_candidate(42, price_spec()) is None


def test_fill_placeholders_keeps_unknown_names():
    rendered = fill_placeholders("{keyword} for {audience}: {items}", {"keyword": "logo", "items": ["a"]})

    assert rendered.startswith("logo for {audience}: [")


def test_valid_response_is_accepted_without_repair():
    provider = StaticResponseProvider({"title": {"title": "I will design a minimalist logo"}})
    task = GenerationTask(title_spec(), provider, FallbackSynthesizer(seed=1))
    instance = TaskInstance(spec=task.spec)

    output = asyncio.run(task.run({"keyword": "logo design"}, instance))

    assert output.value == {"title": "I will design a minimalist logo"}
    assert not output.repaired
    assert output.status == "completed"
    assert instance.state is TaskState.COMPLETED
    assert provider.prompts["title"] == ["Write a gig title for logo design."]


def test_missing_prefix_is_normalized_not_repaired():
    provider = StaticResponseProvider({"title": '{"title": "design a minimalist logo"}'})
    task = GenerationTask(title_spec(), provider, FallbackSynthesizer(seed=1))

    output = run(task, {"keyword": "logo design"})

    assert output.value["title"] == "I will design a minimalist logo"
    assert not output.repaired


def test_provider_failure_falls_back_to_valid_value():
    provider = StaticResponseProvider({"title": GenerationError("model offline")})
    task = GenerationTask(title_spec(), provider, FallbackSynthesizer(seed=1))

    output = run(task, {"keyword": "logo design"})

    assert output.repaired
    assert output.status == "repaired"
    assert output.value["title"].startswith("I will")
    assert output.violations


def test_timeout_is_treated_as_failure():
    provider = StaticResponseProvider({"title": {"title": "I will be too late"}}, delays={"title": 1.0})
    task = GenerationTask(title_spec(), provider, FallbackSynthesizer(seed=1), timeout=0.05)

    output = run(task, {"keyword": "logo design"})

    assert output.repaired
    assert output.value["title"] != "I will be too late"


def test_undeclared_fields_are_dropped():
    provider = StaticResponseProvider({"title": {"title": "I will help you", "notes": "extra"}})
    task = GenerationTask(title_spec(), provider, FallbackSynthesizer(seed=1))

    assert run(task, {"keyword": "help"}).value == {"title": "I will help you"}


def test_pinned_fields_override_generated_values():
    provider = StaticResponseProvider({"offer": {"label": "Starter", "price": 10}})
    task = GenerationTask(price_spec(), provider, FallbackSynthesizer(seed=1))

    output = run(task, {"keyword": "seo", "price_in": 42})

    assert output.value == {"label": "Starter", "price": 42}
    assert not output.repaired


def test_partial_candidate_keeps_valid_fields():
    provider = StaticResponseProvider({"offer": {"label": "Starter"}})
    task = GenerationTask(price_spec(), provider, FallbackSynthesizer(seed=1))

    output = run(task, {"keyword": "seo", "price_in": None})

    assert output.repaired
    assert output.value["label"] == "Starter"
    assert 5 <= output.value["price"] <= 500


def test_tool_results_feed_the_prompt_and_failures_are_skipped():
    spec = title_spec(prompt="Title for {keyword}. {hint}. {tool_notes}", tools=["research", "broken"])
    provider = StaticResponseProvider({"title": {"title": "I will write copy"}})
    task = GenerationTask(
        spec,
        provider,
        FallbackSynthesizer(seed=1),
        tools={"research": ResearchTool(name="research"), "broken": BrokenTool(name="broken")},
    )

    run(task, {"keyword": "copywriting"})

    assert provider.prompts["title"] == ["Title for copywriting. use power words. research for copywriting"]


def test_instance_rejects_invalid_transitions():
    instance = TaskInstance(spec=title_spec())

    with pytest.raises(RuntimeError):
        instance.transition(TaskState.COMPLETED)
    instance.transition(TaskState.RUNNING)
    assert not instance.is_terminal


def test_input_binding_parse():
    required = InputBinding.parse("title", "title.title")
    optional = InputBinding.parse("tone", {"from": "request.tone", "default": "friendly"})

    assert required.upstream == "title" and required.path == "title" and required.required
    assert optional.upstream is None and not optional.required and optional.default == "friendly"
    with pytest.raises(ValueError):
        InputBinding.parse("bad", {"default": 1})


class CrashingSynthesizer(FallbackSynthesizer):
    def synthesize(self, task_id, inputs, contract, prior=None):
        raise RuntimeError("no fallback content")


def test_failed_repair_is_enforced_from_scratch():
    provider = StaticResponseProvider({"offer": {"label": "", "price": float("nan")}})
    task = GenerationTask(price_spec(), provider, CrashingSynthesizer(seed=1))

    output = run(task, {"keyword": "seo", "price_in": None})

    assert output.repaired
    assert output.value["label"].strip()
    assert 5 <= output.value["price"] <= 500


def test_provider_sees_task_id_and_contract():
    provider = StaticResponseProvider({"title": {"title": "I will help"}})
    task = GenerationTask(title_spec(), provider, FallbackSynthesizer(seed=1))

    run(task, {"keyword": "help"})

    context = provider.calls[0]
    assert context.task_id == "title"
    assert "title" in context.contract["fields"]


def test_ollama_system_prompt_is_filled_with_task_id():
    provider = OllamaProvider("llama3.2", system_prompt="You only write the {task} field.")

    payload = provider.build_payload("Write it.", PromptContext(task_id="title"))

    assert payload["system"] == "You only write the title field."
    assert payload["format"] == "json"
