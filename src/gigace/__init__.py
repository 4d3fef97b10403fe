"""Gig listing generation with validated, self-repairing task graphs."""

from importlib import metadata

from .cli import app

try:
    __version__ = metadata.version("gigace")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for dev
    __version__ = "0.0.0"

__all__ = ["app", "__version__"]
