"""Configuration helpers for gig generation projects."""

from __future__ import annotations

import importlib
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml

from .contracts import Contract, ContractError
from .tasks.base import InputBinding, TaskSpec

DEFAULT_PROVIDER = "gigace.llm.provider:OfflineProvider"


class ConfigError(RuntimeError):
    """Raised when configuration files are invalid."""


@dataclass
class GenerationSettings:
    """Knobs shared by every generation run."""

    timeout_seconds: float = 30.0
    seed: Optional[int] = None
    tag_count: int = 5
    faq_min: int = 2
    faq_max: int = 3
    requirements_min: int = 3
    requirements_max: int = 5
    title_prefix: str = "I will"
    title_max_chars: int = 80
    include_image: bool = True
    max_images: int = 1

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigError("generation.timeout_seconds must be positive")
        if self.tag_count < 1:
            raise ConfigError("generation.tag_count must be at least 1")
        if not 1 <= self.faq_min <= self.faq_max:
            raise ConfigError("generation.faq_min/faq_max must satisfy 1 <= min <= max")
        if not 1 <= self.requirements_min <= self.requirements_max:
            raise ConfigError("generation.requirements_min/requirements_max must satisfy 1 <= min <= max")
        if not self.title_prefix.strip():
            raise ConfigError("generation.title_prefix must not be empty")
        if self.title_max_chars <= len(self.title_prefix) + 1:
            raise ConfigError("generation.title_max_chars leaves no room after the title prefix")
        if self.max_images < 1:
            raise ConfigError("generation.max_images must be at least 1")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "GenerationSettings":
        if not data:
            return cls()
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown generation settings: {', '.join(sorted(unknown))}")
        try:
            seed = data.get("seed")
            return cls(
                timeout_seconds=float(data.get("timeout_seconds", 30.0)),
                seed=None if seed is None else int(seed),
                tag_count=int(data.get("tag_count", 5)),
                faq_min=int(data.get("faq_min", 2)),
                faq_max=int(data.get("faq_max", 3)),
                requirements_min=int(data.get("requirements_min", 3)),
                requirements_max=int(data.get("requirements_max", 5)),
                title_prefix=str(data.get("title_prefix", "I will")),
                title_max_chars=int(data.get("title_max_chars", 80)),
                include_image=bool(data.get("include_image", True)),
                max_images=int(data.get("max_images", 1)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid generation settings: {exc}") from exc


@dataclass
class ToolSpec:
    """Configuration for a tool instance."""

    name: str
    type: str
    args: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> "ToolSpec":
        if "type" not in data:
            raise ConfigError(f"Tool '{name}' requires a type path")
        return cls(name=name, type=str(data["type"]), args=dict(data.get("args", {})))


@dataclass
class DefaultsSpec:
    """Provider used for every task unless overridden."""

    llm_provider: Optional[str] = None
    llm_params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "DefaultsSpec":
        if not data:
            return cls()
        return cls(
            llm_provider=data.get("llm_provider"),
            llm_params=dict(data.get("llm_params", {})),
        )

    def build_provider(self) -> Any:
        return instantiate_from_path(self.llm_provider or DEFAULT_PROVIDER, **self.llm_params)


def task_spec_from_mapping(data: Mapping[str, Any]) -> TaskSpec:
    """Build a :class:`TaskSpec` from its YAML form.

    ``inputs`` maps names to sources (``request.keyword``, ``title.title``);
    ``outputs`` is a list of fields with nested ``constraints``; top-level
    ``constraints`` hold multi-path rules such as ``ascending``.
    """

    if not isinstance(data, Mapping):
        raise ConfigError(f"Task must be a mapping, got {data!r}")
    missing = [key for key in ("id", "outputs") if key not in data]
    if missing:
        raise ConfigError(f"Task is missing required keys: {', '.join(missing)}")
    task_id = str(data["id"])
    try:
        contract = Contract.from_mapping(data["outputs"], extra=data.get("constraints") or ())
        bindings = [InputBinding.parse(str(name), source) for name, source in (data.get("inputs") or {}).items()]
    except (ContractError, ValueError) as exc:
        raise ConfigError(f"Task '{task_id}': {exc}") from exc
    return TaskSpec(
        id=task_id,
        output=contract,
        description=str(data.get("description", "")),
        inputs=bindings,
        depends_on=[str(item) for item in data.get("depends_on") or ()],
        prompt=str(data.get("prompt", "")),
        tools=[str(item) for item in data.get("tools") or ()],
        pinned={str(path): str(name) for path, name in (data.get("pinned") or {}).items()},
    )


@dataclass
class ProjectConfig:
    """Representation of the YAML configuration."""

    name: str
    description: Optional[str] = None
    defaults: DefaultsSpec = field(default_factory=DefaultsSpec)
    generation: GenerationSettings = field(default_factory=GenerationSettings)
    tool_specs: Dict[str, ToolSpec] = field(default_factory=dict)
    tasks: List[TaskSpec] = field(default_factory=list)
    file_path: Optional[pathlib.Path] = None

    @classmethod
    def default(cls) -> "ProjectConfig":
        return cls(name="gigace")

    @classmethod
    def from_file(cls, path: str | pathlib.Path) -> "ProjectConfig":
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise ConfigError(f"Config file {file_path} does not exist")
        config = cls.from_yaml(file_path.read_text(), default_name=file_path.stem)
        config.file_path = file_path
        return config

    @classmethod
    def from_yaml(cls, text: str, *, default_name: str = "gigace") -> "ProjectConfig":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigError("Configuration root must be a mapping")
        return cls.from_mapping(data, default_name=default_name)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default_name: str = "gigace") -> "ProjectConfig":
        tool_specs = {
            name: ToolSpec.from_mapping(name, info)
            for name, info in (data.get("tools") or {}).items()
        }
        tasks = [task_spec_from_mapping(item) for item in data.get("tasks") or []]
        return cls(
            name=data.get("name", default_name),
            description=data.get("description"),
            defaults=DefaultsSpec.from_mapping(data.get("defaults")),
            generation=GenerationSettings.from_mapping(data.get("generation")),
            tool_specs=tool_specs,
            tasks=tasks,
        )


def import_string(path: str) -> Any:
    """Return attribute from module specified by path "module:qualname"."""

    if ":" not in path:
        raise ConfigError(f"Import path '{path}' must use module:qualname format")
    module_path, attr = path.split(":", 1)
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ConfigError(f"Cannot import module '{module_path}': {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigError(f"Module '{module_path}' has no attribute '{attr}'") from exc


def instantiate_from_path(path: str, *args: Any, **kwargs: Any) -> Any:
    """Import and instantiate a class given its dotted path."""

    cls = import_string(path)
    return cls(*args, **kwargs)
