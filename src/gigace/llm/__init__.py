"""Generation provider interfaces."""

from .provider import (
    GenerationError,
    GenerationProvider,
    OfflineProvider,
    OllamaProvider,
    PromptContext,
    StaticResponseProvider,
)

__all__ = [
    "GenerationError",
    "GenerationProvider",
    "OfflineProvider",
    "OllamaProvider",
    "PromptContext",
    "StaticResponseProvider",
]
