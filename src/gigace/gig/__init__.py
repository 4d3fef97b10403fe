"""Gig listing generation built on the generic task graph engine."""

from .fallbacks import build_fallback_catalog
from .models import (
    FAQ,
    CompetitorProfile,
    GigData,
    IntroVideoAssets,
    MarketStrategy,
    PricingPackage,
    PricingPackages,
    TagsResponse,
    TitleResponse,
)
from .pipeline import (
    build_gig_pipeline,
    build_market_pipeline,
    build_retitle_pipeline,
    build_tags_pipeline,
    build_video_pipeline,
)
from .service import GigService

__all__ = [
    "FAQ",
    "CompetitorProfile",
    "GigData",
    "GigService",
    "IntroVideoAssets",
    "MarketStrategy",
    "PricingPackage",
    "PricingPackages",
    "TagsResponse",
    "TitleResponse",
    "build_fallback_catalog",
    "build_gig_pipeline",
    "build_market_pipeline",
    "build_retitle_pipeline",
    "build_tags_pipeline",
    "build_video_pipeline",
]
