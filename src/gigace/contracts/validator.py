"""Pure validation of candidate values against declarative constraints."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Iterable, List, Tuple

from .constraints import Constraint, StartsWith, Violation, matches_prefix, resolve_path, set_path

_PREFIX_SEPARATORS = " \t\r\n.,:;!-"


@dataclass(frozen=True)
class ValidationResult:
    """Either valid (no violations) or invalid with the violated constraints."""

    violations: Tuple[Violation, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def __bool__(self) -> bool:
        return self.is_valid

    def messages(self) -> List[str]:
        return [str(item) for item in self.violations]


def validate(value: Any, constraints: Iterable[Constraint]) -> ValidationResult:
    """Check ``value`` against every constraint without modifying it."""

    violations: List[Violation] = []
    for constraint in constraints:
        violations.extend(constraint.evaluate(value))
    return ValidationResult(tuple(violations))


def apply_prefix(text: str, prefix: str) -> str:
    """Return ``text`` starting with the exact ``prefix`` exactly once."""

    rest = text.strip()
    while matches_prefix(rest, prefix):
        rest = rest[len(prefix):].lstrip(_PREFIX_SEPARATORS)
    if not rest:
        return prefix
    return f"{prefix} {rest}"


def normalize(value: Any, constraints: Iterable[Constraint]) -> Any:
    """Return a copy of ``value`` with required prefixes applied.

    A prefix-constrained string missing its phrase gets it prepended instead of
    being rejected; a differently cased phrase is rewritten. Non-string values
    are left for validation to report. Idempotent.
    """

    prefixed = [item for item in constraints if isinstance(item, StartsWith)]
    if not prefixed:
        return value
    result = copy.deepcopy(value)
    if not isinstance(result, dict):
        return result
    for constraint in prefixed:
        for concrete, current in resolve_path(result, constraint.path):
            if isinstance(current, str) and current.strip():
                updated = apply_prefix(current, constraint.prefix)
                if updated != current:
                    set_path(result, concrete, updated)
    return result
