"""Prompt templates for the gig tasks.

Placeholders are filled from the task's resolved inputs plus any tool data.
"""

from textwrap import dedent

TITLE = dedent(
    """
    You are an expert marketplace gig consultant.
    Write one compelling gig title for the main keyword "{keyword}".
    The title must start with "{title_prefix}", include the keyword naturally,
    stay under {title_max_chars} characters, avoid all caps and use a {tone} tone.
    Return the title in the "title" field.
    """
).strip()

RETITLE = dedent(
    """
    You are an expert marketplace gig consultant.
    The current title for the keyword "{keyword}" is: "{current_title}".
    Write ONE new title that takes a clearly different angle and uses different
    power words. It must start with "{title_prefix}" and stay under
    {title_max_chars} characters. Return it in the "title" field.
    """
).strip()

CATEGORY = dedent(
    """
    Choose the best marketplace category and subcategory for this gig.
    Main keyword: "{keyword}"
    Gig title: "{title}"
    The category lookup suggested: {suggested_category} > {suggested_subcategory}.
    Keep the suggestion unless the keyword clearly belongs elsewhere.
    """
).strip()

TAGS = dedent(
    """
    You are an expert in marketplace SEO.
    Select exactly {tag_count} distinct search tags for the gig "{title}"
    (keyword "{keyword}", category {category} > {subcategory}).
    Prefer terms with good search volume and low competition.
    Keyword research:
    {tool_notes}
    """
).strip()

PRICING = dedent(
    """
    Suggest prices in USD for the basic, standard and premium packages of a gig
    for "{keyword}" in {category} > {subcategory}.
    {tool_notes}
    Prices must be whole numbers and strictly increase from basic to premium.
    """
).strip()

PACKAGES = dedent(
    """
    Write the three packages (basic, standard, premium) for the gig "{title}"
    (keyword "{keyword}", category {category} > {subcategory}).
    Reference prices: basic {basic_price}, standard {standard_price}, premium {premium_price}.
    Each package needs a short catchy title, a benefit-led description under
    180 characters, delivery days and the number of revisions included.
    """
).strip()

DESCRIPTION = dedent(
    """
    Write the gig description in Markdown for "{title}" (keyword "{keyword}",
    category {category} > {subcategory}) using the {angle} copywriting framework.
    Insights from top performing gigs:
    {insights}
    Packages offered:
    {packages}
    Also write {faq_min} to {faq_max} FAQs as separate question and answer fields.
    """
).strip()

REQUIREMENTS = dedent(
    """
    List {requirements_min} to {requirements_max} things the buyer must provide
    before work on "{title}" ({category} > {subcategory}) can start.
    Gig description:
    {description}
    """
).strip()

IMAGE = dedent(
    """
    Describe a gig thumbnail image for "{title}" ({category} > {subcategory}).
    Return the visual description as "image_prompt" and any generated image
    references as "images".
    """
).strip()

MARKET = dedent(
    """
    You are a marketplace strategy analyst. Study the market for "{keyword}".
    Seller concept: {concept}
    Describe 2 to 4 typical competitor profiles, 3 to 4 observed success
    factors, 3 to 5 recommendations, an outreach tip and a winning approach.
    """
).strip()

VIDEO = dedent(
    """
    Plan a short intro video for the gig "{title}" (keyword "{keyword}").
    Target audience: {audience}
    Gig description:
    {description}
    Provide a concept, a voice-over script, 2 to 4 visual prompts, an audio
    suggestion, a duration between 10 and 60 seconds and a call to action.
    """
).strip()
