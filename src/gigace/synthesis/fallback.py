"""Fallback synthesis for task outputs that failed generation or validation."""

from __future__ import annotations

import copy
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..contracts.constraints import (
    MISSING,
    FieldConstraint,
    LengthBounds,
    MaxChars,
    StartsWith,
    Violation,
    identity,
    schema_path,
    set_path,
)
from ..contracts.schema import Contract, FieldSpec
from ..contracts.validator import apply_prefix, validate
from .repair import enforce, generic_item, seed_phrase, shorten

logger = logging.getLogger(__name__)

Recipe = Callable[[Mapping[str, Any], random.Random], Mapping[str, Any]]
ExtraItem = Callable[[str, int, Mapping[str, Any], random.Random], Any]


@dataclass
class FallbackRecipe:
    """Task-specific default content plus an optional array item generator.

    ``build(inputs, rng)`` returns a full default value for the task.
    ``extra_item(path, index, inputs, rng)`` returns one more item for the
    array at ``path`` when a partial array has to be topped up.
    """

    build: Recipe
    extra_item: Optional[ExtraItem] = None


class FallbackCatalog:
    """Registry of fallback recipes keyed by task id."""

    def __init__(self) -> None:
        self._recipes: Dict[str, FallbackRecipe] = {}

    def register(
        self,
        task_id: str,
        build: Recipe,
        *,
        extra_item: Optional[ExtraItem] = None,
        overwrite: bool = False,
    ) -> None:
        if task_id in self._recipes and not overwrite:
            raise ValueError(f"Fallback for task {task_id} already registered")
        self._recipes[task_id] = FallbackRecipe(build=build, extra_item=extra_item)

    def get(self, task_id: str) -> Optional[FallbackRecipe]:
        return self._recipes.get(task_id)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._recipes

    def task_ids(self) -> List[str]:
        return sorted(self._recipes)


class FallbackSynthesizer:
    """Produces contract-compliant values, reusing whatever partial data is valid.

    Content may vary between calls (recipes receive a random source), but with a
    ``seed`` the sequence is reproducible: each call draws from
    ``Random(f"{seed}:{task_id}:{n}")`` where ``n`` counts previous calls for the
    same task.
    """

    def __init__(self, catalog: Optional[FallbackCatalog] = None, *, seed: Optional[Any] = None) -> None:
        self.catalog = catalog or FallbackCatalog()
        self.seed = seed
        self._calls: Dict[str, int] = {}

    def rng_for(self, task_id: str) -> random.Random:
        count = self._calls.get(task_id, 0)
        self._calls[task_id] = count + 1
        if self.seed is None:
            return random.Random()
        return random.Random(f"{self.seed}:{task_id}:{count}")

    def synthesize(
        self,
        task_id: str,
        inputs: Mapping[str, Any],
        contract: Contract,
        prior: Any = None,
    ) -> Dict[str, Any]:
        rng = self.rng_for(task_id)
        phrase = seed_phrase(inputs)
        recipe = self.catalog.get(task_id)
        default = self._default(task_id, recipe, inputs, contract, rng, phrase)
        if not isinstance(prior, Mapping):
            return default

        merged = copy.deepcopy(default)
        for spec in contract.fields:
            value = prior.get(spec.name, MISSING)
            if value is MISSING or value is None:
                continue
            merged[spec.name] = self._salvage(
                spec, spec.name, value, default.get(spec.name), contract, recipe, inputs, rng, phrase
            )

        for constraint in contract.spanning_constraints():
            if constraint.evaluate(merged):
                for target in constraint.targets():
                    top = target.split(".")[0]
                    merged[top] = copy.deepcopy(default[top])

        if not validate(merged, contract.constraints):
            logger.debug("Merged fallback for %s still invalid, enforcing", task_id)
            merged = enforce(merged, contract, phrase=phrase)
        return merged

    def _default(
        self,
        task_id: str,
        recipe: Optional[FallbackRecipe],
        inputs: Mapping[str, Any],
        contract: Contract,
        rng: random.Random,
        phrase: str,
    ) -> Dict[str, Any]:
        candidate: Dict[str, Any] = {}
        if recipe is not None:
            try:
                candidate = dict(recipe.build(inputs, rng))
            except Exception:
                logger.warning("Fallback recipe for %s failed; using generic content", task_id, exc_info=True)
                candidate = {}
        for spec in contract.fields:
            current = candidate.get(spec.name)
            if spec.type == "array" and isinstance(current, list) and _violations(contract, spec.name, current):
                candidate[spec.name] = self._salvage_array(
                    spec, spec.name, current, [], contract, recipe, inputs, rng, phrase
                )
        result = validate(candidate, contract.constraints)
        if result:
            return candidate
        if recipe is not None and candidate:
            logger.debug("Fallback recipe for %s violates its contract: %s", task_id, result.messages())
        return enforce(candidate, contract, phrase=phrase)

    def _salvage(
        self,
        spec: FieldSpec,
        path: str,
        value: Any,
        default: Any,
        contract: Contract,
        recipe: Optional[FallbackRecipe],
        inputs: Mapping[str, Any],
        rng: random.Random,
        phrase: str,
    ) -> Any:
        if not _violations(contract, path, value):
            return value
        if spec.type == "array":
            return self._salvage_array(spec, path, value, default, contract, recipe, inputs, rng, phrase)
        if spec.type == "object":
            if not isinstance(value, Mapping):
                return default
            base = dict(default) if isinstance(default, Mapping) else {}
            for member in spec.fields:
                if value.get(member.name) is None:
                    continue
                base[member.name] = self._salvage(
                    member,
                    f"{path}.{member.name}",
                    value[member.name],
                    base.get(member.name),
                    contract,
                    recipe,
                    inputs,
                    rng,
                    phrase,
                )
            return base if not _violations(contract, path, base) else default
        if spec.type == "string" and isinstance(value, str) and value.strip():
            repaired = _fix_string(value, contract.field_constraints(path), schema_path(path))
            if not _violations(contract, path, repaired):
                return repaired
        return default

    def _salvage_array(
        self,
        spec: FieldSpec,
        path: str,
        value: Any,
        default: Any,
        contract: Contract,
        recipe: Optional[FallbackRecipe],
        inputs: Mapping[str, Any],
        rng: random.Random,
        phrase: str,
    ) -> List[Any]:
        if not isinstance(value, list):
            return copy.deepcopy(default) if isinstance(default, list) else []
        item_path = f"{schema_path(path)}.*"
        item_checks = [item for item in contract.field_constraints(path) if item.path.startswith(item_path)]
        template = default if isinstance(default, list) else []
        bounds = [
            item
            for item in contract.field_constraints(path)
            if isinstance(item, LengthBounds) and item.path == schema_path(path)
        ]
        minimum = max((item.min_items for item in bounds), default=0)
        maxima = [item.max_items for item in bounds if item.max_items is not None]
        maximum = min(maxima) if maxima else None

        items: List[Any] = []
        seen = set()

        def accept(candidate: Any) -> bool:
            key = identity(candidate)
            if key in seen or _item_violations(item_checks, path, candidate):
                return False
            seen.add(key)
            items.append(candidate)
            return True

        for index, item in enumerate(value):
            if item is None:
                continue
            if accept(item):
                continue
            if isinstance(item, str) and item.strip():
                accept(_fix_string(item, item_checks, item_path))
            elif isinstance(item, Mapping) and spec.fields:
                if index < len(template) and isinstance(template[index], Mapping):
                    base = template[index]
                else:
                    base = generic_item(spec, phrase, index)
                accept(self._salvage_item(spec, path, item, base, contract, recipe, inputs, rng, phrase))

        if maximum is not None and len(items) > maximum:
            items = items[:maximum]

        if len(items) < minimum:
            for candidate in template:
                if len(items) >= minimum:
                    break
                accept(copy.deepcopy(candidate))
            index = 0
            while len(items) < minimum and index < 100:
                candidate = None
                if recipe is not None and recipe.extra_item is not None:
                    try:
                        candidate = recipe.extra_item(path, len(items), inputs, rng)
                    except Exception:
                        logger.warning("Extra item for %s failed; using generic item", path, exc_info=True)
                if candidate is None or not accept(candidate):
                    accept(generic_item(spec, phrase, len(items) + index))
                index += 1
        return items

    def _salvage_item(
        self,
        spec: FieldSpec,
        path: str,
        item: Mapping[str, Any],
        base: Mapping[str, Any],
        contract: Contract,
        recipe: Optional[FallbackRecipe],
        inputs: Mapping[str, Any],
        rng: random.Random,
        phrase: str,
    ) -> Dict[str, Any]:
        """Salvage each member of an object item, checked as element 0 of ``path``."""

        patched = copy.deepcopy(dict(base))
        for member in spec.fields:
            value = item.get(member.name)
            if value is None:
                continue
            patched[member.name] = self._salvage(
                member,
                f"{path}.0.{member.name}",
                value,
                patched.get(member.name),
                contract,
                recipe,
                inputs,
                rng,
                phrase,
            )
        return patched


def _violations(contract: Contract, path: str, value: Any) -> List[Violation]:
    trial: Dict[str, Any] = {}
    set_path(trial, path, value)
    found: List[Violation] = []
    for constraint in contract.field_constraints(path):
        found.extend(constraint.evaluate(trial))
    return found


def _item_violations(checks: List[FieldConstraint], path: str, item: Any) -> List[Violation]:
    trial: Dict[str, Any] = {}
    set_path(trial, path, [item])
    found: List[Violation] = []
    for constraint in checks:
        found.extend(constraint.evaluate(trial))
    return found


def _fix_string(text: str, checks: List[FieldConstraint], own_path: str) -> str:
    fixed = text.strip()
    for constraint in checks:
        if isinstance(constraint, StartsWith) and constraint.path == own_path:
            fixed = apply_prefix(fixed, constraint.prefix)
    for constraint in checks:
        if isinstance(constraint, MaxChars) and constraint.path == own_path:
            fixed = shorten(fixed, constraint.limit)
    return fixed

