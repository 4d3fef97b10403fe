"""Fallback synthesis and deterministic repair of task outputs."""

from .fallback import FallbackCatalog, FallbackRecipe, FallbackSynthesizer
from .repair import enforce, generic_item, generic_value, seed_phrase, shorten

__all__ = [
    "FallbackCatalog",
    "FallbackRecipe",
    "FallbackSynthesizer",
    "enforce",
    "generic_item",
    "generic_value",
    "seed_phrase",
    "shorten",
]
