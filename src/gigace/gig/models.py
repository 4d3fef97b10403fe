"""Response models returned by the gig service and the web API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..orchestrator import CompositeResult
from . import pipeline


class FAQ(BaseModel):
    question: str
    answer: str


class PricingPackage(BaseModel):
    title: str
    price: int
    description: str
    delivery_days: int
    revisions: int


class PricingPackages(BaseModel):
    basic: PricingPackage
    standard: PricingPackage
    premium: PricingPackage


class GigData(BaseModel):
    """A complete gig listing, or only ``error`` when the run could not start."""

    main_keyword: str = ""
    title: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    search_tags: List[str] = Field(default_factory=list)
    pricing: Optional[PricingPackages] = None
    description: Optional[str] = None
    faqs: List[FAQ] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    image_prompt: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    repaired_tasks: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_result(cls, keyword: str, result: CompositeResult) -> "GigData":
        category = result[pipeline.CATEGORY]
        description = result[pipeline.DESCRIPTION]
        image: Dict[str, Any] = result.get(pipeline.IMAGE) or {}
        return cls(
            main_keyword=keyword,
            title=result[pipeline.TITLE]["title"],
            category=category["category"],
            subcategory=category["subcategory"],
            search_tags=result[pipeline.TAGS]["tags"],
            pricing=PricingPackages(**result[pipeline.PACKAGES]),
            description=description["description"],
            faqs=[FAQ(**item) for item in description["faqs"]],
            requirements=result[pipeline.REQUIREMENTS]["requirements"],
            image_prompt=image.get("image_prompt"),
            images=[str(item) for item in image.get("images", [])],
            repaired_tasks=result.repaired_tasks,
        )

    @classmethod
    def failure(cls, message: str, keyword: str = "") -> "GigData":
        return cls(main_keyword=keyword, error=message)


class TitleResponse(BaseModel):
    title: Optional[str] = None
    repaired: bool = False
    error: Optional[str] = None


class TagsResponse(BaseModel):
    tags: List[str] = Field(default_factory=list)
    repaired: bool = False
    error: Optional[str] = None


class CompetitorProfile(BaseModel):
    gig_title: str
    primary_offering: str
    key_selling_points: List[str]
    estimated_price_range: str
    target_audience_hint: str


class MarketStrategy(BaseModel):
    market_summary: Optional[str] = None
    competitor_profiles: List[CompetitorProfile] = Field(default_factory=list)
    success_factors: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    outreach_tip: Optional[str] = None
    winning_approach: Optional[str] = None
    repaired: bool = False
    error: Optional[str] = None


class IntroVideoAssets(BaseModel):
    video_concept: Optional[str] = None
    script: Optional[str] = None
    visual_prompts: List[str] = Field(default_factory=list)
    audio_suggestion: Optional[str] = None
    duration_seconds: Optional[int] = None
    call_to_action: Optional[str] = None
    repaired: bool = False
    error: Optional[str] = None
