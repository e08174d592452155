import json

from flask import render_template

DEFAULT_IMPORTANT_RULES = (
    "- All long-form content (blog posts, articles, webpage copy, landing pages, emails, "
    "newsletters) MUST be returned in plain text only.\n"
    "- Do NOT use any HTML, Markdown, headings (#, ##), bullet points, numbered lists, "
    "code blocks, or formatting symbols.\n"
    "- Content must be simple, readable text paragraphs."
)


def build_image_types(campaign):
    """
    Expand the campaign's image preferences into the per-type flags the prompt uses.

    Webpage images are only requested for webpage types that are also selected.
    """
    image_for = campaign.image_for or {}
    webpage_types = campaign.webpage_types or {}
    webpages = bool(image_for.get("webpages"))
    return {
        "blog": bool(image_for.get("blog")),
        "social": bool(image_for.get("social")),
        "product_page": webpages and bool(webpage_types.get("product")),
        "industry_page": webpages and bool(webpage_types.get("industry")),
        "solution_page": webpages and bool(webpage_types.get("solution")),
        "pricing_page": webpages and bool(webpage_types.get("pricing")),
    }


def _as_json(value):
    return json.dumps(value or {}, indent=2, sort_keys=True)


def render_campaign_prompt(campaign):
    """Render the single prompt used to generate all of a campaign's content."""
    image_types = build_image_types(campaign) if campaign.needs_images else {}
    return render_template(
        "prompts/campaign_content.txt",
        rules=campaign.custom_instructions or DEFAULT_IMPORTANT_RULES,
        idea=campaign.idea or "",
        brand_voice=campaign.brand_voice or "",
        content_types=_as_json(campaign.content_types),
        webpage_types=_as_json(campaign.webpage_types),
        platforms=_as_json(campaign.platforms),
        image_types=_as_json(image_types),
    )


def render_regenerate_prompt(existing_text, instructions, content_type, metadata):
    """Render the narrower prompt used to rewrite one item's text."""
    return render_template(
        "prompts/regenerate_text.txt",
        existing_text=existing_text,
        instructions=instructions,
        content_type=content_type,
        title=(metadata or {}).get("title") or "Untitled",
    )


def render_column_detection_prompt(csv_snippet):
    return render_template("prompts/detect_csv_columns.txt", csv_snippet=csv_snippet)


def format_contact_csv_data(raw_data):
    """Bullet list of the non-empty CSV columns for a contact."""
    lines = [
        f"- {key}: {value}"
        for key, value in (raw_data or {}).items()
        if isinstance(value, str) and value.strip()
    ]
    return "\n".join(lines) if lines else "- No additional CSV fields were provided."


def render_contact_email_prompt(campaign, contact):
    """
    Render the cold-email prompt for one lead.

    No external research source is wired in, so the prompt always asks for a
    role-based personalisation strategy.
    """
    return render_template(
        "prompts/contact_email.txt",
        messaging_angle=campaign.messaging_angle or campaign.idea or "",
        product_guidelines=campaign.product_guidelines or campaign.brand_voice or "",
        contact=contact,
        csv_data=format_contact_csv_data(contact.raw_data),
    )
