"""Output contracts and the schema validator."""

from .constraints import (
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
    constraint_from_mapping,
    get_path,
    set_path,
)
from .schema import Contract, FieldSpec
from .validator import ValidationResult, apply_prefix, normalize, validate

__all__ = [
    "MISSING",
    "Ascending",
    "Constraint",
    "Contract",
    "ContractError",
    "Distinct",
    "FieldSpec",
    "LengthBounds",
    "MaxChars",
    "NonEmptyString",
    "NumericRange",
    "OneOf",
    "Required",
    "StartsWith",
    "ValidationResult",
    "Violation",
    "apply_prefix",
    "constraint_from_mapping",
    "get_path",
    "normalize",
    "set_path",
    "validate",
]
