"""Field specifications and output contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .constraints import (
    WILDCARD,
    Constraint,
    ContractError,
    FieldConstraint,
    constraint_from_mapping,
    schema_path,
)

FIELD_TYPES = {"string", "number", "integer", "boolean", "array", "object"}


@dataclass(frozen=True)
class FieldSpec:
    """Shape of one output field, described to the generation capability.

    ``fields`` lists the members of an object, or of each item when the field
    is an array of objects. ``item_type`` is the scalar type of array items.
    """

    name: str
    type: str = "string"
    description: str = ""
    fields: Tuple["FieldSpec", ...] = ()
    item_type: str = "string"

    def __post_init__(self) -> None:
        if self.type not in FIELD_TYPES:
            raise ContractError(f"Field '{self.name}' has unknown type '{self.type}'")

    def member(self, name: str) -> Optional["FieldSpec"]:
        for item in self.fields:
            if item.name == name:
                return item
        return None

    def describe(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {"type": self.type}
        if self.description:
            info["description"] = self.description
        if self.type == "object":
            info["fields"] = {item.name: item.describe() for item in self.fields}
        elif self.type == "array":
            if self.fields:
                info["items"] = {"type": "object", "fields": {item.name: item.describe() for item in self.fields}}
            else:
                info["items"] = {"type": self.item_type}
        return info

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FieldSpec":
        if "name" not in data:
            raise ContractError("Output field requires a name")
        return cls(
            name=str(data["name"]),
            type=str(data.get("type", "string")),
            description=str(data.get("description", "")),
            fields=tuple(cls.from_mapping(item) for item in data.get("fields") or ()),
            item_type=str(data.get("item_type", "string")),
        )


@dataclass(frozen=True)
class Contract:
    """Output contract: declared fields plus the constraints they must satisfy."""

    fields: Tuple[FieldSpec, ...] = ()
    constraints: Tuple[Constraint, ...] = ()

    def __post_init__(self) -> None:
        names = [item.name for item in self.fields]
        if len(set(names)) != len(names):
            raise ContractError(f"Duplicate output fields in {names}")
        for constraint in self.constraints:
            for target in constraint.targets():
                if self.spec_for(target) is None:
                    raise ContractError(f"Constraint '{constraint.kind}' targets undeclared field '{target}'")

    @property
    def field_names(self) -> List[str]:
        return [item.name for item in self.fields]

    def spec_for(self, path: str) -> Optional[FieldSpec]:
        """Return the field spec at a schema or concrete path."""

        parts = [part for part in path.split(".") if part != WILDCARD and not part.isdigit()]
        if not parts:
            return None
        current = next((item for item in self.fields if item.name == parts[0]), None)
        for part in parts[1:]:
            if current is None:
                return None
            current = current.member(part)
        return current

    def field_constraints(self, path: str) -> List[FieldConstraint]:
        """Single-path constraints on ``path`` (schema or concrete) or anywhere below it."""

        path = schema_path(path)
        below = path + "."
        return [
            item
            for item in self.constraints
            if isinstance(item, FieldConstraint) and (item.path == path or item.path.startswith(below))
        ]

    def spanning_constraints(self) -> List[Constraint]:
        return [item for item in self.constraints if not isinstance(item, FieldConstraint)]

    def describe(self) -> Dict[str, Any]:
        return {
            "fields": {item.name: item.describe() for item in self.fields},
            "constraints": [item.describe() for item in self.constraints],
        }

    @classmethod
    def from_fields(cls, fields: Iterable[FieldSpec], *constraints: Constraint) -> "Contract":
        return cls(fields=tuple(fields), constraints=tuple(constraints))

    @classmethod
    def from_mapping(cls, outputs: Any, extra: Iterable[Mapping[str, Any]] = ()) -> "Contract":
        """Parse the YAML form: a list of fields, each with nested ``constraints``.

        A constraint without a ``path`` applies to its own field; nested fields
        of an array are addressed through ``*``.
        """

        if not isinstance(outputs, list) or not outputs:
            raise ContractError("Task outputs must be a non-empty list of fields")
        fields: List[FieldSpec] = []
        constraints: List[Constraint] = []

        def collect(data: Mapping[str, Any], spec: FieldSpec, path: str) -> None:
            for item in data.get("constraints") or ():
                constraints.append(constraint_from_mapping(item, default_path=path))
            member_prefix = f"{path}.{WILDCARD}" if spec.type == "array" else path
            for member_data, member in zip(data.get("fields") or (), spec.fields):
                collect(member_data, member, f"{member_prefix}.{member.name}")

        for data in outputs:
            if not isinstance(data, Mapping):
                raise ContractError(f"Output field must be a mapping, got {data!r}")
            spec = FieldSpec.from_mapping(data)
            fields.append(spec)
            collect(data, spec, spec.name)
        constraints.extend(constraint_from_mapping(item) for item in extra)
        return cls(fields=tuple(fields), constraints=tuple(constraints))
