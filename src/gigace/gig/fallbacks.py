"""Fallback content for the gig tasks.

Every recipe receives the task inputs (after tool data was merged in) and an
injected random source; the synthesizer validates and tops up what they return.
"""

from __future__ import annotations

import random
import string
from typing import Any, Dict, List, Mapping

from ..config import GenerationSettings
from ..contracts.constraints import identity
from ..synthesis.fallback import FallbackCatalog
from ..synthesis.repair import shorten
from ..tools.builtin import DEFAULT_CATEGORY, reference_prices, related_keywords, suggest_category
from . import pipeline

PACKAGE_NAMES = (
    ("Basic Spark", "Standard Growth", "Premium Pro"),
    ("Starter", "Business", "Ultimate"),
    ("Essential", "Advanced", "Complete"),
)
TAG_SUFFIXES = ("expert", "service", "specialist", "studio", "online", "agency")


def _text(inputs: Mapping[str, Any], key: str, default: str = "") -> str:
    value = inputs.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _keyword(inputs: Mapping[str, Any]) -> str:
    return _text(inputs, "keyword", "freelance service")


def _placement(inputs: Mapping[str, Any]) -> List[str]:
    category = _text(inputs, "category")
    subcategory = _text(inputs, "subcategory")
    if not category or not subcategory:
        guessed = suggest_category(_keyword(inputs), _text(inputs, "title"))
        category = category or guessed[0]
        subcategory = subcategory or guessed[1]
    return [category, subcategory]


def _unique(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        key = identity(item)
        if item and key not in seen:
            seen.add(key)
            result.append(item)
    return result


def _suffix(rng: random.Random) -> str:
    token = "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(5))
    return f"(Gen {token})"


def title_variations(keyword: str, prefix: str) -> List[str]:
    return [
        f"{prefix} deliver expert {keyword} results fast",
        f"{prefix} create stunning {keyword} for your project",
        f"{prefix} provide professional {keyword} services today",
        f"{prefix} be your go-to for {keyword} solutions",
        f"{prefix} craft custom {keyword} that gets results",
    ]


def build_fallback_catalog(settings: GenerationSettings) -> FallbackCatalog:
    """Recipes for every gig task id, sized by ``settings``."""

    catalog = FallbackCatalog()
    prefix = settings.title_prefix

    def title(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        return {"title": rng.choice(title_variations(_keyword(inputs), prefix))}

    def retitle(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        current = identity(_text(inputs, "current_title"))
        options = [item for item in title_variations(_keyword(inputs), prefix) if identity(item) != current]
        return {"title": rng.choice(options)}

    def category(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        suggested = _text(inputs, "suggested_category")
        if suggested:
            return {
                "category": suggested,
                "subcategory": _text(inputs, "suggested_subcategory", DEFAULT_CATEGORY[1]),
            }
        found = suggest_category(_keyword(inputs), _text(inputs, "title"))
        return {"category": found[0], "subcategory": found[1]}

    def tags(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        keyword = _keyword(inputs)
        cat, sub = _placement(inputs)
        core = [keyword, sub, f"{keyword} pro", f"custom {keyword}", cat]
        related = inputs.get("related_keywords")
        if not isinstance(related, list):
            related = related_keywords(keyword, cat, sub)
        extra = [item["term"] for item in related if isinstance(item, Mapping) and item.get("term")]
        rng.shuffle(extra)
        return {"tags": _unique(core + extra)[: settings.tag_count]}

    def extra_tag(path: str, index: int, inputs: Mapping[str, Any], rng: random.Random) -> str:
        return f"{_keyword(inputs)} {rng.choice(TAG_SUFFIXES)}"

    def pricing(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        keyword = _keyword(inputs)
        computed = reference_prices(keyword, _placement(inputs)[0])
        return {
            tier: inputs.get(f"reference_{tier}") or computed[tier]
            for tier in pipeline.TIERS
        }

    def packages(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        keyword = _keyword(inputs)
        computed = reference_prices(keyword, _placement(inputs)[0])
        names = rng.choice(PACKAGE_NAMES)
        blurbs = (
            f"Essential {keyword} to get you started, with a clean deliverable and friendly support.",
            f"More comprehensive {keyword} with extra polish and source files for better results.",
            f"The complete {keyword} package with priority delivery and every extra for maximum impact.",
        )
        schedule = ((3, 1), (5, 3), (7, 5))
        result = {}
        for tier, name, blurb, (days, revisions) in zip(pipeline.TIERS, names, blurbs, schedule):
            result[tier] = {
                "title": name,
                "price": inputs.get(f"{tier}_price") or computed[tier],
                "description": shorten(blurb, pipeline.PACKAGE_DESCRIPTION_MAX),
                "delivery_days": days,
                "revisions": revisions,
            }
        return result

    def description(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        keyword = _keyword(inputs)
        title_text = _text(inputs, "title", f"{prefix} deliver {keyword}")
        cat, sub = _placement(inputs)
        body = "\n".join(
            [
                f"## {title_text}",
                "",
                f"Looking for reliable **{keyword}**? You are in the right place.",
                "",
                "### What you get",
                f"- Hand-crafted {keyword} tailored to your brand",
                "- Clear communication from brief to delivery",
                "- Revisions until the result fits your goals",
                "",
                f"### Why work with a {sub} specialist",
                f"Every order follows a proven {cat} workflow so you get consistent, on-time results.",
                "",
                "Order now or send a message to discuss your project.",
            ]
        )
        faqs = [
            {
                "question": "What do I need to provide to get started?",
                "answer": "Share the details and assets for your project right after ordering.",
            },
            {
                "question": "How many revisions are included?",
                "answer": "Revision counts vary by package. Check the package details for yours.",
            },
            {
                "question": "What is your delivery time?",
                "answer": "Each package lists its delivery time. Faster delivery may be available as an extra.",
            },
            {
                "question": "Can you handle custom requests?",
                "answer": f"Yes. Message me before ordering to discuss your custom {keyword} needs.",
            },
        ]
        rng.shuffle(faqs)
        return {"description": body, "faqs": faqs[: settings.faq_max]}

    def requirements(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        title_text = _text(inputs, "title", _keyword(inputs))
        cat, sub = _placement(inputs)
        options = [
            f"Specific goals for this {sub} project.",
            f"Any brand assets (logos, color palettes) for {title_text}.",
            f"Examples of {sub} work you like or dislike.",
            f"Target audience details for the {title_text} deliverable.",
            f"Your preferred timeline or any deadlines for the {cat} work.",
        ]
        rng.shuffle(options)
        count = rng.randint(settings.requirements_min, settings.requirements_max)
        return {"requirements": options[:count]}

    def image(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        title_text = _text(inputs, "title", _keyword(inputs))
        sub = _placement(inputs)[1]
        style = rng.choice(("flat illustration", "clean product mockup", "bold minimal layout"))
        return {
            "image_prompt": (
                f"Gig thumbnail for '{title_text}' in {sub}: {style}, one strong focal point, "
                "high contrast, no text overlay."
            ),
            "images": [],
        }

    def market(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        keyword = _keyword(inputs)
        return {
            "market_summary": (
                f"The market for \"{keyword}\" rewards sellers who clearly articulate their value and "
                "differentiate themselves. Competition exists, but specialized skills or unique service "
                "bundles attract buyers."
            ),
            "competitor_profiles": [
                {
                    "gig_title": f"Premium {keyword} Services - Expert A",
                    "primary_offering": "High-touch, custom solutions",
                    "key_selling_points": ["Dedicated support", "Tailored strategy"],
                    "estimated_price_range": "Premium tier ($$$ - $$$$)",
                    "target_audience_hint": "Clients valuing quality and partnership",
                },
                {
                    "gig_title": f"Fast {keyword} Delivery - Specialist B",
                    "primary_offering": "Quick turnaround services",
                    "key_selling_points": ["Speed and efficiency", "Standardized packages"],
                    "estimated_price_range": "Mid tier ($$ - $$$)",
                    "target_audience_hint": "Clients with urgent needs",
                },
            ],
            "success_factors": [
                "Clear and compelling gig descriptions",
                "Strong portfolio of past work",
                "Positive client testimonials",
                "Responsive communication",
            ],
            "recommendations": [
                f"Identify a specific niche within {keyword} to reduce competition.",
                "Develop a unique selling proposition that stands out.",
                "Showcase expertise through case studies or detailed examples.",
            ],
            "outreach_tip": (
                "Offer a brief, complimentary consultation to understand buyer needs before they order."
            ),
            "winning_approach": (
                f"Deliver exceptional quality and build strong client relationships. A premium service at "
                f"a fair value, with clear communication, wins in \"{keyword}\"."
            ),
        }

    def extra_market_item(path: str, index: int, inputs: Mapping[str, Any], rng: random.Random) -> Any:
        keyword = _keyword(inputs)
        if path == "competitor_profiles":
            return {
                "gig_title": f"General {keyword} Provider - Type {chr(ord('A') + index)}",
                "primary_offering": f"Versatile {keyword} tasks",
                "key_selling_points": ["Broad expertise", "Flexible approach"],
                "estimated_price_range": "Varies by scope",
                "target_audience_hint": "Wide range of clients",
            }
        if path.endswith(".key_selling_points"):
            return rng.choice(("Responsive communication", "Clear revision policy", "On-time delivery"))
        if path == "success_factors":
            return "Offering tiered packages with clear value"
        if path == "recommendations":
            return "Build a strong brand identity around your service."
        return None

    def video(inputs: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
        keyword = _keyword(inputs)
        title_text = _text(inputs, "title", keyword)
        return {
            "video_concept": f"Highlighting expertise in {keyword}. Unique angle: {_suffix(rng)}",
            "script": (
                f"Need expert {keyword}? I offer {title_text}. Get top-tier results, efficiently. "
                f"Contact me for your project needs {_suffix(rng)}!"
            ),
            "visual_prompts": [
                f"Dynamic visual representing success and expertise in \"{keyword}\". Modern, clean style {_suffix(rng)}.",
                f"Mockup showcasing a key benefit of \"{title_text}\". Professional look {_suffix(rng)}.",
            ],
            "audio_suggestion": (
                f"Upbeat, professional background music with a {rng.choice(('modern', 'classic', 'techy'))} "
                f"feel {_suffix(rng)}."
            ),
            "duration_seconds": (rng.randint(0, 4) + 3) * 5,
            "call_to_action": f"Let's elevate your {keyword}! Order today {_suffix(rng)}!",
        }

    def extra_visual(path: str, index: int, inputs: Mapping[str, Any], rng: random.Random) -> str:
        return f"Close-up of the {_keyword(inputs)} workflow, scene {index + 1} {_suffix(rng)}."

    catalog.register(pipeline.TITLE, title)
    catalog.register(pipeline.RETITLE, retitle)
    catalog.register(pipeline.CATEGORY, category)
    catalog.register(pipeline.TAGS, tags, extra_item=extra_tag)
    catalog.register(pipeline.PRICING, pricing)
    catalog.register(pipeline.PACKAGES, packages)
    catalog.register(pipeline.DESCRIPTION, description)
    catalog.register(pipeline.REQUIREMENTS, requirements)
    catalog.register(pipeline.IMAGE, image)
    catalog.register(pipeline.MARKET, market, extra_item=extra_market_item)
    catalog.register(pipeline.VIDEO, video, extra_item=extra_visual)
    return catalog
