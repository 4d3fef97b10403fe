import pytest

from gigace.config import ToolSpec
from gigace.tools import ToolContext
from gigace.tools.builtin import (
    DEFAULT_CATEGORY,
    CompetitorPricingTool,
    KeywordAnalyticsTool,
    reference_prices,
    register_builtin_tools,
    suggest_category,
)
from gigace.tools.registry import ToolRegistry


def test_category_rules_match_keyword_or_title():
    assert suggest_category("logo design") == ("Graphics & Design", "Logo Design")
    assert suggest_category("fix", "I will build your Shopify store") == ("eCommerce Development", "Shopify")
    assert suggest_category("tax advice") == DEFAULT_CATEGORY


def test_reference_prices_increase_by_tier():
    prices = reference_prices("website", "Programming & Tech")

    assert prices["basic"] < prices["standard"] < prices["premium"]
    assert prices["basic"] >= 50


def test_keyword_analytics_ranks_and_limits_terms():
    tool = KeywordAnalyticsTool(name="keyword_analytics", limit=3)

    result = tool.run(inputs={"keyword": "logo design"}, context=ToolContext(task_id="tags"))

    terms = result.data["related_keywords"]
    assert len(terms) == 3
    assert all(item["volume"] == "High" for item in terms)
    assert "logo design" in result.content


def test_competitor_pricing_exposes_reference_prices():
    result = CompetitorPricingTool(name="competitor_pricing").run(
        inputs={"keyword": "logo design", "category": "Graphics & Design"},
        context=ToolContext(task_id="pricing"),
    )

    assert result.data["reference_basic"] < result.data["reference_standard"] < result.data["reference_premium"]


def test_registry_registers_builtins_and_config_specs():
    registry = ToolRegistry()
    register_builtin_tools(registry)
    registry.configure_from_specs(
        {
            "keyword_analytics": ToolSpec(
                name="keyword_analytics", type="gigace.tools.builtin:KeywordAnalyticsTool", args={"limit": 2}
            )
        }
    )

    assert registry.names() == ["category_lookup", "competitor_pricing", "gig_insights", "keyword_analytics"]
    assert registry.get("keyword_analytics").config == {"limit": 2}
    assert registry.get("category_lookup") is registry.get("category_lookup")


def test_registry_rejects_non_tools_and_duplicates():
    registry = ToolRegistry()
    registry.register_from_spec(ToolSpec(name="odd", type="gigace.config:ToolSpec"))

    with pytest.raises(TypeError):
        registry.get("odd")
    with pytest.raises(KeyError):
        registry.get("missing")
    registry.register_factory("x", lambda: None)
    with pytest.raises(ValueError):
        registry.register_factory("x", lambda: None)


def test_overwriting_a_factory_drops_the_cached_tool():
    registry = ToolRegistry()
    register_builtin_tools(registry)
    first = registry.get("keyword_analytics")

    registry.register_factory(
        "keyword_analytics", lambda: KeywordAnalyticsTool(name="keyword_analytics", limit=1), overwrite=True
    )

    assert "keyword_analytics" in registry
    assert registry.get("keyword_analytics") is not first
    assert registry.get("keyword_analytics").config == {"limit": 1}
