"""Built-in simulated research tools consulted by the gig tasks."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .base import Tool, ToolContext, ToolResult
from .registry import ToolRegistry

# (needles, category, subcategory); first match wins.
CATEGORY_RULES: Sequence[Tuple[Tuple[str, ...], str, str]] = (
    (("logo",), "Graphics & Design", "Logo Design"),
    (("website", "web design"), "Programming & Tech", "Website Development"),
    (("shopify",), "eCommerce Development", "Shopify"),
    (("article", "blog", "write"), "Writing & Translation", "Articles & Blog Posts"),
    (("video edit", "animation"), "Video & Animation", "Video Editing"),
    (("social media",), "Digital Marketing", "Social Media Marketing"),
)
DEFAULT_CATEGORY = ("General Services", "Other")


def suggest_category(keyword: str, title: str = "") -> Tuple[str, str]:
    haystacks = (keyword.lower(), title.lower())
    for needles, category, subcategory in CATEGORY_RULES:
        if any(needle in text for needle in needles for text in haystacks):
            return category, subcategory
    return DEFAULT_CATEGORY


def reference_prices(keyword: str, category: str) -> Dict[str, int]:
    """Simulated competitor averages for the three package tiers."""

    base = 20 + (len(keyword) % 5) * 5
    lowered = category.lower()
    if "programming" in lowered or "ecommerce" in lowered:
        base += 30
    elif "graphics" in lowered:
        base += 10
    return {"basic": round(base), "standard": round(base * 2.5), "premium": round(base * 5)}


def related_keywords(keyword: str, category: str, subcategory: str) -> List[Dict[str, str]]:
    return [
        {"term": f"{keyword} services", "volume": "Medium", "competition": "Medium"},
        {"term": f"best {keyword}", "volume": "High", "competition": "High"},
        {"term": f"hire {keyword} expert", "volume": "Medium", "competition": "Medium"},
        {"term": f"affordable {keyword}", "volume": "Low", "competition": "Low"},
        {"term": f"{subcategory} {keyword}".strip(), "volume": "High", "competition": "Medium"},
        {"term": f"{category} expert".strip(), "volume": "Medium", "competition": "High"},
        {"term": f"custom {keyword}", "volume": "Medium", "competition": "Low"},
        {"term": f"professional {keyword}", "volume": "High", "competition": "Medium"},
        {"term": f"{keyword} for business", "volume": "Medium", "competition": "Medium"},
        {"term": f"freelance {keyword}", "volume": "Low", "competition": "Low"},
    ]


def _text(inputs: Mapping[str, Any], key: str, default: str = "") -> str:
    value = inputs.get(key)
    return value.strip() if isinstance(value, str) else default


class CategoryLookupTool(Tool):
    """Keyword rules that map a gig to a marketplace category and subcategory."""

    def run(self, *, inputs: Mapping[str, Any], context: ToolContext) -> ToolResult:
        category, subcategory = suggest_category(_text(inputs, "keyword"), _text(inputs, "title"))
        return ToolResult(
            content=f"Suggested placement: {category} > {subcategory}",
            data={"suggested_category": category, "suggested_subcategory": subcategory},
        )


class KeywordAnalyticsTool(Tool):
    """Simulated search volume and competition for terms related to the keyword."""

    def run(self, *, inputs: Mapping[str, Any], context: ToolContext) -> ToolResult:
        keyword = _text(inputs, "keyword")
        terms = related_keywords(keyword, _text(inputs, "category"), _text(inputs, "subcategory"))
        limit = int(self.config.get("limit", 7))
        ranked = sorted(terms, key=lambda item: (item["volume"] != "High", item["competition"] == "High"))[:limit]
        lines = [f"- {item['term']} (volume {item['volume']}, competition {item['competition']})" for item in ranked]
        return ToolResult(content="Related keywords:\n" + "\n".join(lines), data={"related_keywords": ranked})


class CompetitorPricingTool(Tool):
    """Simulated average prices of top competitor gigs for each package tier."""

    def run(self, *, inputs: Mapping[str, Any], context: ToolContext) -> ToolResult:
        prices = reference_prices(_text(inputs, "keyword"), _text(inputs, "category"))
        notes = (
            "Competitors bundle more features in premium tiers. "
            "Consider offering unique value propositions."
        )
        return ToolResult(
            content=(
                f"Competitor averages: basic ${prices['basic']}, standard ${prices['standard']}, "
                f"premium ${prices['premium']}. {notes}"
            ),
            data={
                "reference_basic": prices["basic"],
                "reference_standard": prices["standard"],
                "reference_premium": prices["premium"],
                "pricing_notes": notes,
            },
        )


class GigInsightsTool(Tool):
    """Summary of what top-performing gigs in the same niche emphasize."""

    def run(self, *, inputs: Mapping[str, Any], context: ToolContext) -> ToolResult:
        keyword = _text(inputs, "keyword", "this service")
        category = _text(inputs, "category", DEFAULT_CATEGORY[0])
        subcategory = _text(inputs, "subcategory", DEFAULT_CATEGORY[1])
        insights = (
            f"Analysis for '{keyword}' in '{category} > {subcategory}': top gigs emphasize clear "
            "deliverables, fast communication and portfolio examples. They use strong calls to action "
            "and highlight guarantees such as 24/7 support or full satisfaction. Common FAQs address "
            "scope, revisions and custom orders."
        )
        return ToolResult(content=insights, data={"insights": insights})


def register_builtin_tools(registry: ToolRegistry) -> None:
    """Register built-in tool factories."""

    registry.register_factory("category_lookup", lambda: CategoryLookupTool(name="category_lookup"), overwrite=True)
    registry.register_factory(
        "keyword_analytics", lambda: KeywordAnalyticsTool(name="keyword_analytics"), overwrite=True
    )
    registry.register_factory(
        "competitor_pricing", lambda: CompetitorPricingTool(name="competitor_pricing"), overwrite=True
    )
    registry.register_factory("gig_insights", lambda: GigInsightsTool(name="gig_insights"), overwrite=True)
