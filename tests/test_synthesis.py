import pytest

from gigace.contracts import (
    Ascending,
    Contract,
    ContractError,
    Distinct,
    FieldSpec,
    LengthBounds,
    MaxChars,
    NonEmptyString,
    NumericRange,
    StartsWith,
    validate,
)
from gigace.synthesis import FallbackCatalog, FallbackSynthesizer, enforce, seed_phrase, shorten


def items_contract(minimum=2, maximum=4):
    return Contract.from_fields(
        [FieldSpec("items", "array")],
        LengthBounds("items", minimum, maximum),
        NonEmptyString("items.*"),
        Distinct("items"),
    )


def title_contract():
    return Contract.from_fields(
        [FieldSpec("title")],
        NonEmptyString("title"),
        StartsWith("title", "I will"),
        MaxChars("title", 40),
    )


def pricing_contract():
    tiers = ("basic", "standard", "premium")
    return Contract.from_fields(
        [FieldSpec(tier, "integer") for tier in tiers],
        *[NumericRange(tier, 5, 10000, integer=True) for tier in tiers],
        Ascending(tiers),
    )


def test_seed_phrase_prefers_keyword():
    assert seed_phrase({"title": "A title", "keyword": "logo design"}) == "logo design"
    assert seed_phrase({"other": "  notes  "}) == "notes"
    assert seed_phrase({}) == "service"


def test_shorten_cuts_on_word_boundary():
    assert shorten("design a modern logo for you", 16) == "design a modern"
    assert shorten("short", 10) == "short"


def test_enforce_builds_valid_value_from_nothing():
    value = enforce({}, title_contract(), {"keyword": "logo design"})

    assert validate(value, title_contract().constraints)
    assert value["title"].startswith("I will")
    assert "logo design" in value["title"]


def test_enforce_is_idempotent_on_valid_values():
    valid = {"basic": 20, "standard": 50, "premium": 100}

    assert enforce(valid, pricing_contract()) == valid


def test_enforce_makes_prices_ascending_within_range():
    value = enforce({"basic": 50, "standard": 50, "premium": 2}, pricing_contract())

    assert validate(value, pricing_contract().constraints)
    assert value["basic"] < value["standard"] < value["premium"]


def test_enforce_raises_for_unsatisfiable_contract():
    contract = Contract.from_fields(
        [FieldSpec("a", "integer"), FieldSpec("b", "integer")],
        NumericRange("a", 1, 1, integer=True),
        NumericRange("b", 1, 1, integer=True),
        Ascending(("a", "b")),
    )

    with pytest.raises(ContractError):
        enforce({}, contract)


@pytest.mark.parametrize("count", [0, 1, 3, 5, 8])
def test_array_bounds_hold_for_any_candidate_size(count):
    contract = items_contract(minimum=2, maximum=4)
    original = [f"point {index}" for index in range(count)]

    value = FallbackSynthesizer(seed=1).synthesize("points", {"keyword": "seo"}, contract, prior={"items": original})

    assert validate(value, contract.constraints)
    assert 2 <= len(value["items"]) <= 4
    kept = min(count, 4)
    assert value["items"][:kept] == original[:kept]


def test_synthesizer_keeps_valid_prior_untouched():
    contract = items_contract()
    prior = {"items": ["one", "two", "three"]}

    assert FallbackSynthesizer(seed=1).synthesize("points", {}, contract, prior=prior) == prior


def test_synthesizer_tops_up_from_recipe_and_extra_items():
    catalog = FallbackCatalog()
    catalog.register(
        "points",
        lambda inputs, rng: {"items": ["alpha", "beta"]},
        extra_item=lambda path, index, inputs, rng: f"extra {index}",
    )
    contract = items_contract(minimum=4, maximum=4)

    value = FallbackSynthesizer(catalog, seed=1).synthesize("points", {}, contract, prior={"items": ["gamma"]})

    assert value["items"][0] == "gamma"
    assert value["items"][1:3] == ["alpha", "beta"]
    assert value["items"][3].startswith("extra")
    assert validate(value, contract.constraints)


def test_synthesizer_drops_duplicates_and_blank_items():
    contract = items_contract(minimum=2, maximum=4)

    value = FallbackSynthesizer(seed=1).synthesize(
        "points", {"keyword": "seo"}, contract, prior={"items": ["audit", "Audit", "", None, "links"]}
    )

    assert value["items"][:2] == ["audit", "links"]
    assert validate(value, contract.constraints)


def test_synthesizer_repairs_prefix_and_length():
    value = FallbackSynthesizer(seed=1).synthesize(
        "title",
        {"keyword": "logo"},
        title_contract(),
        prior={"title": "design a modern minimalist logo for your brand today"},
    )

    assert value["title"].startswith("I will design a modern")
    assert len(value["title"]) <= 40


def test_spanning_violation_resets_touched_fields_to_default():
    catalog = FallbackCatalog()
    catalog.register("pricing", lambda inputs, rng: {"basic": 20, "standard": 50, "premium": 100})

    value = FallbackSynthesizer(catalog, seed=1).synthesize(
        "pricing", {}, pricing_contract(), prior={"basic": 60, "standard": 40, "premium": 100}
    )

    assert value == {"basic": 20, "standard": 50, "premium": 100}


def test_failing_recipe_falls_back_to_generic_content():
    catalog = FallbackCatalog()

    def broken(inputs, rng):
        raise KeyError("missing")

    catalog.register("title", broken)

    value = FallbackSynthesizer(catalog, seed=1).synthesize("title", {"keyword": "logo"}, title_contract())

    assert validate(value, title_contract().constraints)


def test_seeded_synthesizers_are_reproducible():
    catalog = FallbackCatalog()
    catalog.register("pick", lambda inputs, rng: {"items": rng.sample(["a", "b", "c", "d", "e", "f"], 3)})
    contract = items_contract(minimum=3, maximum=3)

    first = FallbackSynthesizer(catalog, seed=42)
    second = FallbackSynthesizer(catalog, seed=42)

    runs_a = [first.synthesize("pick", {}, contract) for _ in range(3)]
    runs_b = [second.synthesize("pick", {}, contract) for _ in range(3)]

    assert runs_a == runs_b


def test_catalog_rejects_duplicate_registration():
    catalog = FallbackCatalog()
    catalog.register("title", lambda inputs, rng: {})

    with pytest.raises(ValueError):
        catalog.register("title", lambda inputs, rng: {})
    catalog.register("title", lambda inputs, rng: {"title": "x"}, overwrite=True)
    assert catalog.task_ids() == ["title"]


def profiles_contract():
    profile = FieldSpec(
        "profiles",
        "array",
        fields=(FieldSpec("name"), FieldSpec("points", "array")),
    )
    return Contract.from_fields(
        [profile],
        LengthBounds("profiles", 1, 3),
        NonEmptyString("profiles.*.name"),
        LengthBounds("profiles.*.points", 2, 3),
        NonEmptyString("profiles.*.points.*"),
    )


def test_nested_arrays_in_items_are_topped_up_not_replaced():
    contract = profiles_contract()
    prior = {
        "profiles": [
            {"name": "Alpha", "points": ["one"]},
            {"name": "Beta", "points": ["two", "three"]},
            {"name": "Gamma", "points": []},
        ]
    }

    value = FallbackSynthesizer(seed=3).synthesize("profiles", {"keyword": "seo"}, contract, prior=prior)

    assert validate(value, contract.constraints)
    assert [item["name"] for item in value["profiles"]] == ["Alpha", "Beta", "Gamma"]
    assert value["profiles"][0]["points"][0] == "one"
    assert value["profiles"][1]["points"] == ["two", "three"]
    assert len(value["profiles"][2]["points"]) == 2
