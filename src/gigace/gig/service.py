"""High level entry points used by the CLI and the web API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ..config import ConfigError, ProjectConfig
from ..contracts import ContractError
from ..llm.provider import GenerationProvider
from ..orchestrator import CompositeResult, EventCallback, Orchestrator, default_tool_registry
from ..synthesis.fallback import FallbackSynthesizer
from ..tasks.base import TaskSpec
from ..tasks.graph import GraphConfigurationError, TaskGraph
from . import pipeline
from .fallbacks import build_fallback_catalog
from .models import GigData, IntroVideoAssets, MarketStrategy, TagsResponse, TitleResponse

logger = logging.getLogger(__name__)

EMPTY_KEYWORD = "Main keyword cannot be empty."
FATAL_ERRORS = (GraphConfigurationError, ContractError, ConfigError)


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class GigService:
    """Runs the gig task graphs against one configured provider.

    Every call gets a fresh synthesizer, so with a seed the same request always
    degrades to the same fallback content.
    """

    def __init__(
        self,
        config: Optional[ProjectConfig] = None,
        *,
        provider: Optional[GenerationProvider] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.config = config or ProjectConfig.default()
        self.settings = self.config.generation
        self.seed = seed if seed is not None else self.settings.seed
        self.provider = provider or self.config.defaults.build_provider()
        self.tool_registry = default_tool_registry()
        self.tool_registry.configure_from_specs(self.config.tool_specs)
        self.catalog = build_fallback_catalog(self.settings)

    def orchestrator(self, on_event: Optional[EventCallback] = None) -> Orchestrator:
        return Orchestrator(
            self.provider,
            synthesizer=FallbackSynthesizer(self.catalog, seed=self.seed),
            tool_registry=self.tool_registry,
            timeout=self.settings.timeout_seconds,
            on_event=on_event,
        )

    def plan(self) -> TaskGraph:
        return TaskGraph(pipeline.build_gig_pipeline(self.settings))

    async def run_tasks(
        self,
        request: Mapping[str, Any],
        specs: Optional[Iterable[TaskSpec]] = None,
        *,
        on_event: Optional[EventCallback] = None,
    ) -> CompositeResult:
        """Run ``specs`` (the configured tasks by default) for ``request``.

        Configuration errors propagate to the caller.
        """

        tasks = list(specs) if specs is not None else list(self.config.tasks)
        return await self.orchestrator(on_event).run_all(tasks, request)

    async def generate_gig(
        self,
        keyword: str,
        *,
        tone: Optional[str] = None,
        angle: Optional[str] = None,
        on_event: Optional[EventCallback] = None,
    ) -> GigData:
        keyword = _clean(keyword)
        if not keyword:
            return GigData.failure(EMPTY_KEYWORD)
        request: Dict[str, Any] = {"keyword": keyword}
        if tone:
            request["tone"] = tone
        if angle:
            request["angle"] = angle
        try:
            result = await self.run_tasks(request, pipeline.build_gig_pipeline(self.settings), on_event=on_event)
        except FATAL_ERRORS as exc:
            logger.error("Gig generation for '%s' failed: %s", keyword, exc)
            return GigData.failure(str(exc), keyword)
        return GigData.from_result(keyword, result)

    async def regenerate_title(self, keyword: str, current_title: str = "") -> TitleResponse:
        keyword = _clean(keyword)
        if not keyword:
            return TitleResponse(error=EMPTY_KEYWORD)
        request = {"keyword": keyword, "current_title": _clean(current_title)}
        try:
            result = await self.run_tasks(request, pipeline.build_retitle_pipeline(self.settings))
        except FATAL_ERRORS as exc:
            return TitleResponse(error=str(exc))
        return TitleResponse(
            title=result[pipeline.RETITLE]["title"],
            repaired=pipeline.RETITLE in result.repaired_tasks,
        )

    async def refresh_tags(
        self,
        keyword: str,
        title: str = "",
        category: str = "",
        subcategory: str = "",
    ) -> TagsResponse:
        keyword = _clean(keyword)
        if not keyword:
            return TagsResponse(error=EMPTY_KEYWORD)
        request = {
            "keyword": keyword,
            "title": _clean(title),
            "category": _clean(category),
            "subcategory": _clean(subcategory),
        }
        try:
            result = await self.run_tasks(request, pipeline.build_tags_pipeline(self.settings))
        except FATAL_ERRORS as exc:
            return TagsResponse(error=str(exc))
        return TagsResponse(tags=result[pipeline.TAGS]["tags"], repaired=pipeline.TAGS in result.repaired_tasks)

    async def analyze_market(self, keyword: str, concept: Optional[str] = None) -> MarketStrategy:
        keyword = _clean(keyword)
        if not keyword:
            return MarketStrategy(error=EMPTY_KEYWORD)
        request: Dict[str, Any] = {"keyword": keyword}
        if _clean(concept):
            request["concept"] = _clean(concept)
        try:
            result = await self.run_tasks(request, pipeline.build_market_pipeline())
        except FATAL_ERRORS as exc:
            return MarketStrategy(error=str(exc))
        return MarketStrategy(**result[pipeline.MARKET], repaired=pipeline.MARKET in result.repaired_tasks)

    async def generate_video_assets(
        self,
        keyword: str,
        title: str,
        description: str,
        audience: Optional[str] = None,
    ) -> IntroVideoAssets:
        keyword = _clean(keyword)
        if not keyword:
            return IntroVideoAssets(error=EMPTY_KEYWORD)
        if not _clean(title) or not _clean(description):
            return IntroVideoAssets(error="Gig title and description are required.")
        request: Dict[str, Any] = {"keyword": keyword, "title": _clean(title), "description": _clean(description)}
        if _clean(audience):
            request["audience"] = _clean(audience)
        try:
            result = await self.run_tasks(request, pipeline.build_video_pipeline())
        except FATAL_ERRORS as exc:
            return IntroVideoAssets(error=str(exc))
        return IntroVideoAssets(**result[pipeline.VIDEO], repaired=pipeline.VIDEO in result.repaired_tasks)
