import pytest

from gigace.contracts import (
    Ascending,
    Contract,
    ContractError,
    Distinct,
    FieldSpec,
    LengthBounds,
    NonEmptyString,
    NumericRange,
    StartsWith,
    apply_prefix,
    get_path,
    normalize,
    set_path,
    validate,
)


def test_length_bounds_reports_missing_items():
    result = validate({"tags": ["a", "b"]}, [LengthBounds.exactly("tags", 3)])

    assert not result
    assert result.violations[0].path == "tags"
    assert "needs at least 3" in result.messages()[0]


def test_wildcard_constraint_reports_concrete_path():
    value = {"faqs": [{"question": "What?"}, {"question": "  "}]}

    result = validate(value, [NonEmptyString("faqs.*.question")])

    assert [item.path for item in result.violations] == ["faqs.1.question"]


def test_numeric_range_checks_integers_and_bounds():
    rule = NumericRange("price", 5, 10000, integer=True)

    assert validate({"price": 5}, [rule])
    assert not validate({"price": 2.5}, [rule])
    assert not validate({"price": 10001}, [rule])
    assert not validate({"price": "20"}, [rule])


def test_exclusive_range_rejects_edges():
    rule = NumericRange("score", 0, 1, inclusive=False)

    assert not validate({"score": 0}, [rule])
    assert validate({"score": 0.5}, [rule])


def test_ascending_flags_first_non_increasing_value():
    result = validate({"a": 1, "b": 1, "c": 3}, [Ascending(("a", "b", "c"))])

    assert [item.path for item in result.violations] == ["b"]


def test_prefix_is_case_insensitive_and_word_bounded():
    rule = StartsWith("title", "I will")

    assert validate({"title": "i will design your logo"}, [rule])
    assert not validate({"title": "I willow the garden"}, [rule])


def test_distinct_ignores_case_and_spacing():
    assert not validate({"tags": ["Logo", "logo "]}, [Distinct("tags")])
    assert validate({"tags": ["logo", "brand"]}, [Distinct("tags")])


def test_normalize_prepends_prefix_once_and_is_idempotent():
    rules = [StartsWith("title", "I will")]

    once = normalize({"title": "design a minimalist logo"}, rules)
    twice = normalize(once, rules)

    assert once == {"title": "I will design a minimalist logo"}
    assert twice == once
    assert normalize({"title": "i will design a logo"}, rules) == {"title": "I will design a logo"}


def test_normalize_does_not_modify_input():
    value = {"title": "logo"}

    normalize(value, [StartsWith("title", "I will")])

    assert value == {"title": "logo"}


def test_contract_rejects_constraint_on_undeclared_field():
    with pytest.raises(ContractError):
        Contract.from_fields([FieldSpec("title")], NonEmptyString("subtitle"))


def test_contract_from_mapping_applies_constraints_to_nested_fields():
    contract = Contract.from_mapping(
        [
            {
                "name": "faqs",
                "type": "array",
                "constraints": [{"kind": "length", "min": 1, "max": 2}],
                "fields": [
                    {"name": "question", "constraints": [{"kind": "non_empty"}]},
                    {"name": "answer"},
                ],
            }
        ]
    )

    paths = sorted(item.path for item in contract.constraints)
    assert paths == ["faqs", "faqs.*.question"]
    assert contract.spec_for("faqs.0.question").name == "question"


def test_unknown_constraint_kind_is_rejected():
    with pytest.raises(ContractError):
        Contract.from_mapping([{"name": "x", "constraints": [{"kind": "bogus"}]}])


def test_malformed_bounds_are_rejected():
    with pytest.raises(ContractError):
        LengthBounds("tags", 3, 2)
    with pytest.raises(ContractError):
        Ascending(("only",))


def test_set_path_creates_intermediate_containers():
    root = {}

    set_path(root, "faqs.0.question", "Why?")

    assert root == {"faqs": [{"question": "Why?"}]}
    assert get_path(root, "faqs.0.question") == "Why?"
    assert get_path(root, "faqs.3.question", None) is None


@pytest.mark.parametrize("number", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_numbers_are_not_numbers(number):
    whole = NumericRange("price", 5, 10000, integer=True)
    ratio = NumericRange("score", 0, 1)

    assert not validate({"price": number}, [whole])
    assert not validate({"score": number}, [ratio])
    assert not validate({"a": 1, "b": number, "c": 3}, [Ascending(("a", "b", "c"))])


def test_apply_prefix_drops_punctuation_after_existing_prefix():
    assert apply_prefix("I will. design logos", "I will") == "I will design logos"
    assert apply_prefix("i will: I will - design logos", "I will") == "I will design logos"
    assert apply_prefix("I will...", "I will") == "I will"
