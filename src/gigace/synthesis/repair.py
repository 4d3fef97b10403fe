"""Deterministic corrective pass that forces a value into its contract.

``enforce`` is the last line of defence behind the fallback synthesizer: it
only uses generic templated content built from the task's own keyword/title,
fixes one violation at a time and re-validates after each fix. For any
well-formed contract it converges on a valid value; contracts that cannot be
satisfied raise :class:`ContractError`, which the task graph probes for before
a run starts.
"""

from __future__ import annotations

import copy
import math
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from ..contracts.constraints import (
    MISSING,
    Ascending,
    Constraint,
    ContractError,
    Distinct,
    LengthBounds,
    MaxChars,
    NonEmptyString,
    NumericRange,
    OneOf,
    Required,
    StartsWith,
    Violation,
    get_path,
    identity,
    is_number,
    set_path,
)
from ..contracts.schema import Contract, FieldSpec
from ..contracts.validator import apply_prefix, validate

_MAX_FIXES = 500
_SEED_KEYS = ("keyword", "main_keyword", "title", "topic", "name")


def seed_phrase(inputs: Optional[Mapping[str, Any]]) -> str:
    """Pick the phrase generic fallbacks are templated on."""

    inputs = inputs or {}
    for key in _SEED_KEYS:
        value = inputs.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    for value in inputs.values():
        if isinstance(value, str) and value.strip():
            return value.strip()[:60]
    return "service"


def label(name: str) -> str:
    return name.replace("_", " ").strip()


def singular(text: str) -> str:
    if text.endswith("ies"):
        return text[:-3] + "y"
    if text.endswith("s") and not text.endswith("ss"):
        return text[:-1]
    return text


def generic_value(spec: Optional[FieldSpec], phrase: str, index: Optional[int] = None) -> Any:
    """Templated value for a field, parameterized only by ``phrase``."""

    if spec is None:
        return phrase
    if spec.type == "string":
        text = f"{phrase} {label(spec.name)}"
        return text if index is None else f"{text} {index + 1}"
    if spec.type in {"number", "integer"}:
        return 1
    if spec.type == "boolean":
        return False
    if spec.type == "array":
        return []
    return {member.name: generic_value(member, phrase, index) for member in spec.fields}


def generic_item(spec: Optional[FieldSpec], phrase: str, index: int) -> Any:
    """Templated array item; ``index`` keeps consecutive items distinct."""

    if spec is not None and spec.fields:
        return {member.name: generic_value(member, phrase, index) for member in spec.fields}
    item_type = spec.item_type if spec is not None else "string"
    if item_type in {"number", "integer"}:
        return index + 1
    if item_type == "boolean":
        return False
    name = singular(label(spec.name)) if spec is not None else "item"
    return f"{phrase} {name} {index + 1}"


def shorten(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters, on a word boundary when possible."""

    if len(text) <= limit:
        return text
    cut = text[:limit]
    if not text[limit].isspace() and " " in cut.strip():
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,.;:-") or text[:limit]


def range_default(constraint: Optional[NumericRange]) -> float:
    """A number inside ``constraint`` (its lower edge where possible)."""

    if constraint is None:
        return 1
    low, high = constraint.low, constraint.high
    if low is not None and high is not None:
        value = low if constraint.inclusive else (low + high) / 2
    elif low is not None:
        value = low if constraint.inclusive else low + 1
    elif high is not None:
        value = high if constraint.inclusive else high - 1
    else:
        value = 0
    if constraint.integer:
        for candidate in (math.ceil(value), math.floor(value)):
            if constraint.contains(candidate):
                return candidate
    return value


def clamp(value: Any, constraint: NumericRange) -> float:
    if not is_number(value):
        return range_default(constraint)
    number = value
    if constraint.integer and int(number) != number:
        number = round(number)
    if constraint.contains(number):
        return number
    if not constraint.inclusive:
        return range_default(constraint)
    if constraint.low is not None and number < constraint.low:
        number = constraint.low
    if constraint.high is not None and number > constraint.high:
        number = constraint.high
    if constraint.integer and not constraint.contains(number):
        return range_default(constraint)
    return number


def enforce(
    value: Any,
    contract: Contract,
    inputs: Optional[Mapping[str, Any]] = None,
    *,
    phrase: Optional[str] = None,
) -> Dict[str, Any]:
    """Return a copy of ``value`` corrected until it satisfies ``contract``."""

    phrase = phrase or seed_phrase(inputs)
    root: Dict[str, Any] = dict(copy.deepcopy(value)) if isinstance(value, Mapping) else {}
    for spec in contract.fields:
        if root.get(spec.name) is None:
            root[spec.name] = generic_value(spec, phrase)
    for _ in range(_MAX_FIXES):
        result = validate(root, contract.constraints)
        if result.is_valid:
            return root
        _correct(root, result.violations[0], contract, phrase)
    result = validate(root, contract.constraints)
    if not result.is_valid:
        raise ContractError("Contract cannot be satisfied: " + "; ".join(result.messages()))
    return root


def _correct(root: MutableMapping[str, Any], violation: Violation, contract: Contract, phrase: str) -> None:
    constraint: Constraint = violation.constraint
    path = violation.path
    spec = contract.spec_for(path)
    current = get_path(root, path)
    if isinstance(constraint, Ascending):
        _force_ascending(root, constraint, contract)
    elif isinstance(constraint, (Required, NonEmptyString)):
        replacement = generic_value(spec, phrase, _index_of(path))
        if isinstance(constraint, NonEmptyString) and not isinstance(replacement, str):
            replacement = f"{phrase} {label(path.split('.')[-1])}"
        set_path(root, path, replacement)
    elif isinstance(constraint, LengthBounds):
        set_path(root, path, _fit_length(current, constraint, spec, phrase))
    elif isinstance(constraint, NumericRange):
        set_path(root, path, clamp(current, constraint))
    elif isinstance(constraint, OneOf):
        set_path(root, path, constraint.choices[0])
    elif isinstance(constraint, StartsWith):
        text = current if isinstance(current, str) else str(generic_value(spec, phrase))
        set_path(root, path, apply_prefix(text, constraint.prefix))
    elif isinstance(constraint, MaxChars):
        text = current if isinstance(current, str) else str(generic_value(spec, phrase))
        set_path(root, path, shorten(text, constraint.limit))
    elif isinstance(constraint, Distinct):
        set_path(root, path, _dedupe(current if isinstance(current, list) else []))
    else:
        raise ContractError(f"No corrective action for constraint kind '{constraint.kind}'")


def _fit_length(current: Any, constraint: LengthBounds, spec: Optional[FieldSpec], phrase: str) -> List[Any]:
    items = list(current) if isinstance(current, list) else []
    if constraint.max_items is not None:
        items = items[: constraint.max_items]
    seen = {identity(item) for item in items}
    index = len(items)
    while len(items) < constraint.min_items and index < _MAX_FIXES:
        candidate = generic_item(spec, phrase, index)
        index += 1
        key = identity(candidate)
        if key in seen:
            continue
        items.append(candidate)
        seen.add(key)
    return items


def _dedupe(items: List[Any]) -> List[Any]:
    seen = set()
    unique = []
    for item in items:
        key = identity(item)
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


def _force_ascending(root: MutableMapping[str, Any], constraint: Ascending, contract: Contract) -> None:
    ranges = {
        path: next(
            (item for item in contract.constraints if isinstance(item, NumericRange) and item.path == path),
            None,
        )
        for path in constraint.paths
    }
    values: List[float] = []
    for path in constraint.paths:
        number = get_path(root, path)
        if not is_number(number):
            number = range_default(ranges[path]) if ranges[path] else (values[-1] + 1 if values else 1)
        if values and number <= values[-1]:
            number = values[-1] + 1
        values.append(number)
    if any(ranges[path] is not None and not ranges[path].contains(number) for path, number in zip(constraint.paths, values)):
        start = range_default(ranges[constraint.paths[0]])
        values = [start + offset for offset in range(len(constraint.paths))]
    for path, number in zip(constraint.paths, values):
        set_path(root, path, number)


def _index_of(path: str) -> Optional[int]:
    numeric = [part for part in path.split(".") if part.isdigit()]
    return int(numeric[-1]) if numeric else None


__all__ = [
    "MISSING",
    "clamp",
    "enforce",
    "generic_item",
    "generic_value",
    "range_default",
    "seed_phrase",
    "shorten",
]
