"""Declarative constraints attached to task output fields."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence, Tuple


class ContractError(ValueError):
    """Raised when a constraint or contract is malformed."""


class _Missing:
    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
WILDCARD = "*"


def resolve_path(root: Any, path: str) -> List[Tuple[str, Any]]:
    """Return ``(concrete_path, value)`` pairs addressed by a dotted path.

    ``*`` expands to every element of an array, producing concrete paths with
    numeric segments (``faqs.*.question`` -> ``faqs.0.question`` ...). Absent
    fields resolve to :data:`MISSING`; a wildcard over an absent or non-array
    value resolves to nothing.
    """

    matches: List[Tuple[str, Any]] = [("", root)]
    for part in path.split("."):
        expanded: List[Tuple[str, Any]] = []
        for prefix, current in matches:
            if part == WILDCARD:
                if isinstance(current, list):
                    for index, item in enumerate(current):
                        expanded.append((_join(prefix, str(index)), item))
                continue
            expanded.append((_join(prefix, part), _child(current, part)))
        matches = expanded
    return matches


def get_path(root: Any, path: str, default: Any = MISSING) -> Any:
    """Return the single value at a concrete dotted path."""

    if not path:
        return root
    current = root
    for part in path.split("."):
        current = _child(current, part)
        if current is MISSING:
            return default
    return current


def set_path(root: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at a concrete dotted path, creating mappings on the way."""

    parts = path.split(".")
    current: Any = root
    for part, following in zip(parts, parts[1:]):
        child = _child(current, part)
        if not isinstance(child, (MutableMapping, list)):
            child = [] if following.isdigit() else {}
            _assign(current, part, child)
        current = child
    _assign(current, parts[-1], value)


def schema_path(concrete: str) -> str:
    """Map a concrete path back to its schema form (numeric segments -> ``*``)."""

    return ".".join(WILDCARD if part.isdigit() else part for part in concrete.split("."))


def identity(item: Any) -> str:
    """Key used to compare array items for duplicates (case-insensitive)."""

    if isinstance(item, str):
        return " ".join(item.split()).casefold()
    return json.dumps(item, sort_keys=True, default=str).casefold()


def is_number(value: Any) -> bool:
    """True for finite ints and floats; NaN and infinities are not numbers here."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def matches_prefix(text: str, prefix: str) -> bool:
    """Case-insensitive check that ``text`` starts with ``prefix`` as whole words."""

    stripped = text.lstrip()
    if not stripped.casefold().startswith(prefix.casefold()):
        return False
    rest = stripped[len(prefix):]
    return not rest or not rest[0].isalnum()


def _join(prefix: str, part: str) -> str:
    return f"{prefix}.{part}" if prefix else part


def _child(current: Any, part: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(part, MISSING)
    if isinstance(current, list) and part.isdigit():
        index = int(part)
        return current[index] if index < len(current) else MISSING
    return MISSING


def _assign(container: Any, part: str, value: Any) -> None:
    if isinstance(container, list):
        index = int(part)
        while len(container) <= index:
            container.append(None)
        container[index] = value
    else:
        container[part] = value


@dataclass(frozen=True)
class Violation:
    """A constraint that failed at a concrete path."""

    constraint: "Constraint"
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class Constraint:
    """Base class for declarative output rules."""

    kind = "constraint"

    def targets(self) -> Tuple[str, ...]:
        raise NotImplementedError

    def evaluate(self, root: Any) -> List[Violation]:
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class FieldConstraint(Constraint):
    """Constraint checked independently on every value a path resolves to."""

    path: str

    def targets(self) -> Tuple[str, ...]:
        return (self.path,)

    def check(self, value: Any) -> Optional[str]:
        raise NotImplementedError

    def evaluate(self, root: Any) -> List[Violation]:
        violations: List[Violation] = []
        for concrete, value in resolve_path(root, self.path):
            message = self.check(value)
            if message:
                violations.append(Violation(self, concrete, message))
        return violations

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": self.path}


@dataclass(frozen=True)
class Required(FieldConstraint):
    kind = "required"

    def check(self, value: Any) -> Optional[str]:
        if value is MISSING or value is None:
            return "is required"
        return None


@dataclass(frozen=True)
class NonEmptyString(FieldConstraint):
    kind = "non_empty"

    def check(self, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return "must be a string"
        if not value.strip():
            return "must not be empty"
        return None


@dataclass(frozen=True)
class LengthBounds(FieldConstraint):
    """Array item count within ``[min_items, max_items]``; content is not inspected."""

    min_items: int = 0
    max_items: Optional[int] = None
    kind = "length"

    def __post_init__(self) -> None:
        if self.min_items < 0:
            raise ContractError(f"{self.path}: min must be >= 0")
        if self.max_items is not None and self.max_items < self.min_items:
            raise ContractError(f"{self.path}: max {self.max_items} is below min {self.min_items}")

    @classmethod
    def exactly(cls, path: str, count: int) -> "LengthBounds":
        return cls(path, count, count)

    def check(self, value: Any) -> Optional[str]:
        if not isinstance(value, list):
            return "must be an array"
        if len(value) < self.min_items:
            return f"has {len(value)} items, needs at least {self.min_items}"
        if self.max_items is not None and len(value) > self.max_items:
            return f"has {len(value)} items, allows at most {self.max_items}"
        return None

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": self.path, "min": self.min_items, "max": self.max_items}


@dataclass(frozen=True)
class NumericRange(FieldConstraint):
    """Number within bounds, inclusive on both ends unless ``inclusive`` is False."""

    low: Optional[float] = None
    high: Optional[float] = None
    inclusive: bool = True
    integer: bool = False
    kind = "range"

    def __post_init__(self) -> None:
        if self.low is not None and self.high is not None:
            if self.high < self.low or (not self.inclusive and self.high == self.low):
                raise ContractError(f"{self.path}: empty range [{self.low}, {self.high}]")

    def contains(self, number: float) -> bool:
        if self.low is not None and (number < self.low or (not self.inclusive and number == self.low)):
            return False
        if self.high is not None and (number > self.high or (not self.inclusive and number == self.high)):
            return False
        return True

    def check(self, value: Any) -> Optional[str]:
        if not is_number(value):
            return "must be a number"
        if self.integer and int(value) != value:
            return "must be a whole number"
        if not self.contains(value):
            bracket = "[]" if self.inclusive else "()"
            return f"{value} outside {bracket[0]}{self.low}, {self.high}{bracket[1]}"
        return None

    def describe(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "path": self.path,
            "min": self.low,
            "max": self.high,
            "inclusive": self.inclusive,
            "integer": self.integer,
        }


@dataclass(frozen=True)
class OneOf(FieldConstraint):
    choices: Tuple[Any, ...] = ()
    kind = "one_of"

    def __post_init__(self) -> None:
        if not self.choices:
            raise ContractError(f"{self.path}: one_of needs at least one choice")

    def check(self, value: Any) -> Optional[str]:
        if value not in self.choices:
            return f"must be one of {list(self.choices)}"
        return None

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": self.path, "choices": list(self.choices)}


@dataclass(frozen=True)
class StartsWith(FieldConstraint):
    """String must begin with ``prefix``, compared case-insensitively."""

    prefix: str = ""
    kind = "prefix"

    def __post_init__(self) -> None:
        if not self.prefix.strip():
            raise ContractError(f"{self.path}: prefix must not be empty")

    def check(self, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return "must be a string"
        if not matches_prefix(value, self.prefix):
            return f"must start with {self.prefix!r}"
        return None

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": self.path, "prefix": self.prefix}


@dataclass(frozen=True)
class MaxChars(FieldConstraint):
    limit: int = 0
    kind = "max_chars"

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ContractError(f"{self.path}: max_chars must be positive")

    def check(self, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return "must be a string"
        if len(value) > self.limit:
            return f"is {len(value)} characters, allows {self.limit}"
        return None

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": self.path, "max": self.limit}


@dataclass(frozen=True)
class Distinct(FieldConstraint):
    """Array items must be unique (strings compared case-insensitively)."""

    kind = "distinct"

    def check(self, value: Any) -> Optional[str]:
        if not isinstance(value, list):
            return "must be an array"
        keys = [identity(item) for item in value]
        if len(set(keys)) != len(keys):
            return "contains duplicate items"
        return None


@dataclass(frozen=True)
class Ascending(Constraint):
    """Numbers at several concrete paths must be strictly increasing in order."""

    paths: Tuple[str, ...] = ()
    kind = "ascending"

    def __post_init__(self) -> None:
        if len(self.paths) < 2:
            raise ContractError("ascending needs at least two paths")
        if any(WILDCARD in path.split(".") for path in self.paths):
            raise ContractError("ascending paths must not contain wildcards")

    def targets(self) -> Tuple[str, ...]:
        return self.paths

    def evaluate(self, root: Any) -> List[Violation]:
        values = [get_path(root, path) for path in self.paths]
        if not all(is_number(value) for value in values):
            return [Violation(self, self.paths[0], "all values must be numbers")]
        for previous, current, path in zip(values, values[1:], self.paths[1:]):
            if current <= previous:
                return [Violation(self, path, f"{current} must be greater than {previous}")]
        return []

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.kind, "paths": list(self.paths)}


def constraint_from_mapping(data: Mapping[str, Any], default_path: Optional[str] = None) -> Constraint:
    """Build a constraint from its declarative mapping form."""

    if not isinstance(data, Mapping):
        raise ContractError(f"Constraint must be a mapping, got {data!r}")
    kind = str(data.get("kind", "")).strip().lower()
    path = str(data.get("path") or default_path or "")
    if kind != "ascending" and not path:
        raise ContractError(f"Constraint '{kind}' requires a path")
    if kind == "required":
        return Required(path)
    if kind in {"non_empty", "non-empty"}:
        return NonEmptyString(path)
    if kind == "length":
        if "exactly" in data:
            return LengthBounds.exactly(path, int(data["exactly"]))
        maximum = data.get("max")
        return LengthBounds(path, int(data.get("min", 0)), None if maximum is None else int(maximum))
    if kind == "range":
        low, high = data.get("min"), data.get("max")
        return NumericRange(
            path,
            None if low is None else float(low),
            None if high is None else float(high),
            inclusive=bool(data.get("inclusive", True)),
            integer=bool(data.get("integer", False)),
        )
    if kind in {"one_of", "enum"}:
        return OneOf(path, tuple(data.get("choices") or ()))
    if kind == "prefix":
        return StartsWith(path, str(data.get("prefix", "")))
    if kind == "max_chars":
        return MaxChars(path, int(data.get("max", 0)))
    if kind == "distinct":
        return Distinct(path)
    if kind == "ascending":
        paths: Sequence[str] = data.get("paths") or ()
        return Ascending(tuple(str(item) for item in paths))
    raise ContractError(f"Unknown constraint kind '{kind}'")
