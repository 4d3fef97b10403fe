"""Gig task graphs: output contracts, input bindings and dependencies."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple, Union

from ..config import GenerationSettings
from ..contracts import (
    Ascending,
    Contract,
    Distinct,
    FieldSpec,
    LengthBounds,
    MaxChars,
    NonEmptyString,
    NumericRange,
    StartsWith,
)
from ..tasks.base import InputBinding, TaskSpec, fill_placeholders
from . import prompts

TITLE = "title"
CATEGORY = "category"
TAGS = "tags"
PRICING = "pricing"
PACKAGES = "packages"
DESCRIPTION = "description"
REQUIREMENTS = "requirements"
IMAGE = "image"
RETITLE = "retitle"
MARKET = "market_strategy"
VIDEO = "video_assets"

TIERS = ("basic", "standard", "premium")
MIN_PRICE = 5
MAX_PRICE = 10000
PACKAGE_DESCRIPTION_MAX = 180
DELIVERY_DAYS = (1, 90)
REVISIONS = (0, 99)
VIDEO_SECONDS = (10, 60)

Source = Union[str, Tuple[str, Any]]


def _bind(**sources: Source) -> List[InputBinding]:
    """``name=source`` is required; ``name=(source, default)`` is optional."""

    bindings = []
    for name, source in sources.items():
        if isinstance(source, tuple):
            bindings.append(InputBinding(name, source[0], required=False, default=source[1]))
        else:
            bindings.append(InputBinding(name, source))
    return bindings


def _knobs(settings: GenerationSettings) -> Dict[str, Any]:
    return {
        "title_prefix": settings.title_prefix,
        "title_max_chars": settings.title_max_chars,
        "tag_count": settings.tag_count,
        "faq_min": settings.faq_min,
        "faq_max": settings.faq_max,
        "requirements_min": settings.requirements_min,
        "requirements_max": settings.requirements_max,
    }


def _strings(*names: str) -> List[NonEmptyString]:
    return [NonEmptyString(name) for name in names]


def title_contract(settings: GenerationSettings) -> Contract:
    return Contract.from_fields(
        [FieldSpec(TITLE, description=f"Gig title starting with '{settings.title_prefix}'")],
        NonEmptyString(TITLE),
        StartsWith(TITLE, settings.title_prefix),
        MaxChars(TITLE, settings.title_max_chars),
    )


def category_contract() -> Contract:
    return Contract.from_fields(
        [
            FieldSpec("category", description="Marketplace category"),
            FieldSpec("subcategory", description="Subcategory within the category"),
        ],
        *_strings("category", "subcategory"),
    )


def tags_contract(settings: GenerationSettings) -> Contract:
    return Contract.from_fields(
        [FieldSpec("tags", "array", description=f"Exactly {settings.tag_count} search tags")],
        LengthBounds.exactly("tags", settings.tag_count),
        NonEmptyString("tags.*"),
        Distinct("tags"),
    )


def pricing_contract() -> Contract:
    return Contract.from_fields(
        [FieldSpec(tier, "integer", description=f"Suggested {tier} price in USD") for tier in TIERS],
        *[NumericRange(tier, MIN_PRICE, MAX_PRICE, integer=True) for tier in TIERS],
        Ascending(TIERS),
    )


def package_contract() -> Contract:
    members = (
        FieldSpec("title", description="Catchy package name"),
        FieldSpec("price", "number", description="Price in USD"),
        FieldSpec("description", description=f"What is included, under {PACKAGE_DESCRIPTION_MAX} characters"),
        FieldSpec("delivery_days", "integer", description="Delivery time in days"),
        FieldSpec("revisions", "integer", description="Revisions included"),
    )
    constraints: List[Any] = []
    for tier in TIERS:
        constraints.extend(
            [
                NonEmptyString(f"{tier}.title"),
                NumericRange(f"{tier}.price", MIN_PRICE, MAX_PRICE),
                NonEmptyString(f"{tier}.description"),
                MaxChars(f"{tier}.description", PACKAGE_DESCRIPTION_MAX),
                NumericRange(f"{tier}.delivery_days", *DELIVERY_DAYS, integer=True),
                NumericRange(f"{tier}.revisions", *REVISIONS, integer=True),
            ]
        )
    constraints.append(Ascending(tuple(f"{tier}.price" for tier in TIERS)))
    return Contract.from_fields([FieldSpec(tier, "object", fields=members) for tier in TIERS], *constraints)


def description_contract(settings: GenerationSettings) -> Contract:
    faq = (FieldSpec("question"), FieldSpec("answer"))
    return Contract.from_fields(
        [
            FieldSpec("description", description="Gig description in Markdown"),
            FieldSpec("faqs", "array", description="Frequently asked questions", fields=faq),
        ],
        NonEmptyString("description"),
        LengthBounds("faqs", settings.faq_min, settings.faq_max),
        NonEmptyString("faqs.*.question"),
        NonEmptyString("faqs.*.answer"),
        Distinct("faqs"),
    )


def requirements_contract(settings: GenerationSettings) -> Contract:
    return Contract.from_fields(
        [FieldSpec("requirements", "array", description="What the buyer must provide")],
        LengthBounds("requirements", settings.requirements_min, settings.requirements_max),
        NonEmptyString("requirements.*"),
        Distinct("requirements"),
    )


def image_contract(settings: GenerationSettings) -> Contract:
    return Contract.from_fields(
        [
            FieldSpec("image_prompt", description="Visual description of the gig thumbnail"),
            FieldSpec("images", "array", description="Generated image references (URLs or data URIs)"),
        ],
        NonEmptyString("image_prompt"),
        LengthBounds("images", 0, settings.max_images),
        NonEmptyString("images.*"),
    )


def market_contract() -> Contract:
    profile = (
        FieldSpec("gig_title"),
        FieldSpec("primary_offering"),
        FieldSpec("key_selling_points", "array"),
        FieldSpec("estimated_price_range"),
        FieldSpec("target_audience_hint"),
    )
    return Contract.from_fields(
        [
            FieldSpec("market_summary"),
            FieldSpec("competitor_profiles", "array", fields=profile),
            FieldSpec("success_factors", "array"),
            FieldSpec("recommendations", "array"),
            FieldSpec("outreach_tip"),
            FieldSpec("winning_approach"),
        ],
        *_strings("market_summary", "outreach_tip", "winning_approach"),
        LengthBounds("competitor_profiles", 2, 4),
        *_strings(
            "competitor_profiles.*.gig_title",
            "competitor_profiles.*.primary_offering",
            "competitor_profiles.*.estimated_price_range",
            "competitor_profiles.*.target_audience_hint",
        ),
        LengthBounds("competitor_profiles.*.key_selling_points", 2, 3),
        NonEmptyString("competitor_profiles.*.key_selling_points.*"),
        Distinct("competitor_profiles"),
        LengthBounds("success_factors", 3, 4),
        NonEmptyString("success_factors.*"),
        Distinct("success_factors"),
        LengthBounds("recommendations", 3, 5),
        NonEmptyString("recommendations.*"),
        Distinct("recommendations"),
    )


def video_contract() -> Contract:
    return Contract.from_fields(
        [
            FieldSpec("video_concept"),
            FieldSpec("script"),
            FieldSpec("visual_prompts", "array"),
            FieldSpec("audio_suggestion"),
            FieldSpec("duration_seconds", "integer"),
            FieldSpec("call_to_action"),
        ],
        *_strings("video_concept", "script", "audio_suggestion", "call_to_action"),
        LengthBounds("visual_prompts", 2, 4),
        NonEmptyString("visual_prompts.*"),
        Distinct("visual_prompts"),
        NumericRange("duration_seconds", *VIDEO_SECONDS, integer=True),
    )


def build_gig_pipeline(settings: GenerationSettings) -> List[TaskSpec]:
    """The full gig graph.

    title -> category -> (tags, pricing) -> packages -> description ->
    requirements, with the optional image task running after category.
    """

    knobs = _knobs(settings)
    placement = {"category": "category.category", "subcategory": "category.subcategory"}
    specs = [
        TaskSpec(
            id=TITLE,
            description="Write the gig title",
            output=title_contract(settings),
            inputs=_bind(keyword="request.keyword", tone=("request.tone", "professional")),
            prompt=fill_placeholders(prompts.TITLE, knobs),
        ),
        TaskSpec(
            id=CATEGORY,
            description="Pick category and subcategory",
            output=category_contract(),
            inputs=_bind(keyword="request.keyword", title="title.title"),
            depends_on=[TITLE],
            prompt=prompts.CATEGORY,
            tools=["category_lookup"],
        ),
        TaskSpec(
            id=TAGS,
            description="Select search tags",
            output=tags_contract(settings),
            inputs=_bind(keyword="request.keyword", title="title.title", **placement),
            depends_on=[TITLE, CATEGORY],
            prompt=fill_placeholders(prompts.TAGS, knobs),
            tools=["keyword_analytics"],
        ),
        TaskSpec(
            id=PRICING,
            description="Suggest package prices",
            output=pricing_contract(),
            inputs=_bind(keyword="request.keyword", **placement),
            depends_on=[CATEGORY],
            prompt=prompts.PRICING,
            tools=["competitor_pricing"],
        ),
        TaskSpec(
            id=PACKAGES,
            description="Write the three packages",
            output=package_contract(),
            inputs=_bind(
                keyword="request.keyword",
                title="title.title",
                basic_price="pricing.basic",
                standard_price="pricing.standard",
                premium_price="pricing.premium",
                **placement,
            ),
            depends_on=[TITLE, CATEGORY, PRICING],
            prompt=prompts.PACKAGES,
            pinned={f"{tier}.price": f"{tier}_price" for tier in TIERS},
        ),
        TaskSpec(
            id=DESCRIPTION,
            description="Write description and FAQs",
            output=description_contract(settings),
            inputs=_bind(
                keyword="request.keyword",
                title="title.title",
                packages="packages",
                angle=("request.angle", "AIDA"),
                **placement,
            ),
            depends_on=[TITLE, CATEGORY, PACKAGES],
            prompt=fill_placeholders(prompts.DESCRIPTION, knobs),
            tools=["gig_insights"],
        ),
        TaskSpec(
            id=REQUIREMENTS,
            description="Suggest buyer requirements",
            output=requirements_contract(settings),
            inputs=_bind(
                keyword="request.keyword",
                title="title.title",
                description="description.description",
                **placement,
            ),
            depends_on=[TITLE, CATEGORY, DESCRIPTION],
            prompt=fill_placeholders(prompts.REQUIREMENTS, knobs),
        ),
    ]
    if settings.include_image:
        specs.append(
            TaskSpec(
                id=IMAGE,
                description="Describe the gig image",
                output=image_contract(settings),
                inputs=_bind(keyword="request.keyword", title="title.title", **placement),
                depends_on=[TITLE, CATEGORY],
                prompt=prompts.IMAGE,
            )
        )
    return specs


def build_retitle_pipeline(settings: GenerationSettings) -> List[TaskSpec]:
    contract = title_contract(settings)
    return [
        TaskSpec(
            id=RETITLE,
            description="Write a different gig title",
            output=contract,
            inputs=_bind(keyword="request.keyword", current_title=("request.current_title", "")),
            prompt=fill_placeholders(prompts.RETITLE, _knobs(settings)),
        )
    ]


def build_tags_pipeline(settings: GenerationSettings) -> List[TaskSpec]:
    return [
        TaskSpec(
            id=TAGS,
            description="Select search tags",
            output=tags_contract(settings),
            inputs=_bind(
                keyword="request.keyword",
                title=("request.title", ""),
                category=("request.category", ""),
                subcategory=("request.subcategory", ""),
            ),
            prompt=fill_placeholders(prompts.TAGS, _knobs(settings)),
            tools=["keyword_analytics"],
        )
    ]


def build_market_pipeline() -> List[TaskSpec]:
    return [
        TaskSpec(
            id=MARKET,
            description="Analyze the market",
            output=market_contract(),
            inputs=_bind(
                keyword="request.keyword",
                concept=("request.concept", "a new seller entering this niche"),
            ),
            prompt=prompts.MARKET,
        )
    ]


def build_video_pipeline() -> List[TaskSpec]:
    return [
        TaskSpec(
            id=VIDEO,
            description="Plan the intro video",
            output=video_contract(),
            inputs=_bind(
                keyword="request.keyword",
                title="request.title",
                description="request.description",
                audience=("request.audience", "small business owners"),
            ),
            prompt=prompts.VIDEO,
        )
    ]
