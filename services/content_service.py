import copy
import logging
import time
from contextlib import contextmanager

from flask import current_app

from extensions import db, redis_client
from helpers.content_generator import normalize_content_platform, SOCIAL_PLATFORM_NAMES
from models.campaign import (
    Campaign,
    CAMPAIGN_MODES,
    DEFAULT_CONTENT_TYPES,
    DEFAULT_IMAGE_FOR,
    DEFAULT_PLATFORMS,
    DEFAULT_WEBPAGE_TYPES,
)
from models.generated_content import GeneratedContent
from services.image_storage import save_base64_image

logger = logging.getLogger(__name__)

IMAGE_LOCK_KEY = "image_generation_lock:{user_id}"


class CampaignValidationError(ValueError):
    """Raised when campaign input is missing required fields."""

    pass


class GenerationInProgressError(ValueError):
    """Raised when the user already has an image generation running."""

    pass


def _field(data, *names, default=None):
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default


def _flags(value, defaults):
    flags = dict(defaults)
    for key, enabled in (value or {}).items():
        flags[key] = bool(enabled)
    return flags


def create_campaign(user_id: int, data: dict) -> Campaign:
    """
    Create a campaign from form/JSON input.

    Args:
        user_id: Owner of the campaign.
        data: Campaign fields. Both snake_case and camelCase keys are accepted.

    Returns:
        The persisted Campaign.

    Raises:
        CampaignValidationError: If name, idea or brand voice is missing, or the mode is unknown.
    """
    name = str(_field(data, "name", default="")).strip()
    idea = str(_field(data, "idea", default="")).strip()
    brand_voice = str(_field(data, "brand_voice", "brandVoice", default="")).strip()

    missing = [
        label
        for label, value in (("name", name), ("idea", idea), ("brand voice", brand_voice))
        if not value
    ]
    if missing:
        raise CampaignValidationError(f"Missing required fields: {', '.join(missing)}")

    mode = str(_field(data, "mode", default="review")).strip().lower()
    if mode not in CAMPAIGN_MODES:
        raise CampaignValidationError(f"Invalid mode: {mode}")

    content_types = dict(_field(data, "content_types", "contentTypes", default={}) or {})
    # Older clients send custom instructions inside the content type flags.
    custom_instructions = _field(
        data,
        "custom_instructions",
        "customInstructions",
        default=content_types.pop("custom_instructions", None),
    )

    campaign = Campaign(
        user_id=user_id,
        name=name,
        idea=idea,
        brand_voice=brand_voice,
        content_types=_flags(content_types, DEFAULT_CONTENT_TYPES),
        custom_instructions=(custom_instructions or "").strip() or None,
        webpage_types=_flags(
            _field(data, "webpage_types", "webpageTypes"), DEFAULT_WEBPAGE_TYPES
        ),
        platforms=_flags(_field(data, "platforms"), DEFAULT_PLATFORMS),
        needs_images=bool(_field(data, "needs_images", "needsImages", default=False)),
        image_for=_flags(_field(data, "image_for", "imageFor"), DEFAULT_IMAGE_FOR),
        mode=mode,
        messaging_angle=_field(data, "messaging_angle", "messagingAngle"),
        product_guidelines=_field(data, "product_guidelines", "productGuidelines"),
        smartlead_campaign_id=_field(data, "smartlead_campaign_id", "smartleadCampaignId"),
    )

    try:
        db.session.add(campaign)
        db.session.commit()
    except Exception as e:
        logger.exception(f"Error creating campaign for user {user_id}: {e}")
        db.session.rollback()
        raise

    logger.info(f"Created campaign {campaign.id} ({mode}) for user {user_id}")
    return campaign


def get_user_campaign(user_id: int, campaign_id: int):
    """Return the campaign if it belongs to the user, else None."""
    return Campaign.query.filter_by(id=campaign_id, user_id=user_id).first()


def get_user_content_item(user_id: int, item_id: int):
    return (
        GeneratedContent.query.join(Campaign)
        .filter(GeneratedContent.id == item_id, Campaign.user_id == user_id)
        .first()
    )


def delete_campaign(campaign: Campaign) -> None:
    """Delete a campaign; its content, contacts and emails go with it."""
    campaign_id = campaign.id
    try:
        db.session.delete(campaign)
        db.session.commit()
    except Exception as e:
        logger.exception(f"Error deleting campaign {campaign_id}: {e}")
        db.session.rollback()
        raise
    logger.info(f"Deleted campaign {campaign_id}")


def generate_campaign_content(campaign: Campaign, generator):
    """
    Run the generator for a campaign.

    In auto mode the items are saved straight away and the saved rows are
    returned as dicts. In review mode the unsaved item dicts are returned so the
    caller can edit them before `save_campaign_content`.
    """
    items = generator.generate_campaign_content(campaign)
    if not campaign.is_auto:
        logger.info(
            f"Campaign {campaign.id} is in review mode; returning {len(items)} unsaved items"
        )
        return items

    saved = save_campaign_content(campaign, items)
    return [item.to_dict() for item in saved]


def promote_temp_image(campaign_id: int, index: int, metadata: dict) -> dict:
    """
    Move a `temp_base64_image` into permanent storage.

    Returns a new metadata dict with `generated_image_url` set and the
    temporary field removed. Metadata without a temporary image is returned as is.
    """
    metadata = dict(metadata or {})
    temp_image = metadata.pop("temp_base64_image", None)
    if not temp_image:
        return metadata

    upload_path = f"campaign_{campaign_id}/item_{index}_{int(time.time() * 1000)}.png"
    metadata["generated_image_url"] = save_base64_image(temp_image, upload_path)
    return metadata


def _item_platform(raw: dict, metadata: dict):
    platform = normalize_content_platform(raw.get("platform"))
    subtype = raw.get("subtype")
    if not platform and normalize_content_platform(subtype) in SOCIAL_PLATFORM_NAMES:
        platform = normalize_content_platform(subtype)
    return platform or normalize_content_platform(metadata.get("platform"))


def save_campaign_content(campaign: Campaign, items) -> list:
    """
    Persist a batch of content items for a campaign.

    Temporary images are uploaded first, one item at a time, and then every
    row is inserted in a single commit. Uploads are not removed if the insert
    fails.

    Returns:
        The saved GeneratedContent rows.
    """
    rows = []
    for index, raw in enumerate(items or []):
        metadata = promote_temp_image(campaign.id, index, raw.get("metadata"))

        subtype = raw.get("subtype")
        if normalize_content_platform(subtype) in SOCIAL_PLATFORM_NAMES:
            subtype = "post"
        platform = _item_platform(raw, metadata)
        if platform:
            metadata["platform"] = platform

        rows.append(
            GeneratedContent(
                campaign_id=campaign.id,
                content_type=raw.get("content_type") or raw.get("type") or "content",
                subtype=subtype,
                platform=platform,
                generated_text=raw.get("generated_text") or raw.get("text") or "",
                item_metadata=metadata,
            )
        )

    try:
        db.session.add_all(rows)
        db.session.commit()
    except Exception as e:
        logger.exception(f"Error saving content for campaign {campaign.id}: {e}")
        db.session.rollback()
        raise

    logger.info(f"Saved {len(rows)} content items for campaign {campaign.id}")
    return rows


def update_content_item(item: GeneratedContent, text=None, metadata=None) -> GeneratedContent:
    """Apply a manual edit to a saved item, promoting any temporary image."""
    if text is not None:
        item.generated_text = text
    if metadata is not None:
        merged = dict(item.item_metadata or {})
        merged.update(metadata)
        # Saved items are numbered by id so paths do not collide with batch saves.
        item.item_metadata = promote_temp_image(item.campaign_id, item.id, merged)
        if not item.platform and item.item_metadata.get("platform"):
            item.platform = normalize_content_platform(item.item_metadata["platform"])

    try:
        db.session.commit()
    except Exception as e:
        logger.exception(f"Error updating content item {item.id}: {e}")
        db.session.rollback()
        raise

    logger.info(f"Updated content item {item.id}")
    return item


def regenerate_item_text(generator, item: dict, instructions: str) -> dict:
    """
    Rewrite the text of one item and return a copy with the new text.

    Only the targeted item changes; the caller swaps it into its list.
    """
    new_text = generator.regenerate_text(
        item.get("generated_text") or "",
        instructions or "",
        item.get("content_type") or item.get("type") or "content",
        item.get("metadata") or {},
    )
    updated = copy.deepcopy(item)
    updated["generated_text"] = new_text
    return updated


@contextmanager
def image_generation_slot(user_id: int):
    """
    Hold the per-user image generation lock for the duration of the block.

    Raises:
        GenerationInProgressError: Another image generation holds the lock.
    """
    key = IMAGE_LOCK_KEY.format(user_id=user_id)
    if not redis_client.available:
        logger.warning("Redis unavailable; image generation lock not enforced")
        yield
        return

    timeout = current_app.config.get("IMAGE_GENERATION_LOCK_SECONDS", 120)
    if not redis_client.set(key, str(int(time.time())), ex=timeout, nx=True):
        logger.info(f"Image generation already in progress for user {user_id}")
        raise GenerationInProgressError(
            "An image is already being generated. Please wait for it to finish."
        )
    try:
        yield
    finally:
        redis_client.delete(key)


def regenerate_item_image(generator, item: dict, user_id: int, prompt=None) -> dict:
    """
    Generate a new image for one item.

    The image is attached as `metadata.temp_base64_image` and becomes permanent
    only when the item is saved.
    """
    metadata = dict(item.get("metadata") or {})
    image_prompt = (prompt or metadata.get("image_prompt") or "").strip()
    if not image_prompt:
        raise CampaignValidationError("No image prompt available for this item.")

    with image_generation_slot(user_id):
        data_url = generator.generate_image(image_prompt)

    updated = copy.deepcopy(item)
    metadata["image_prompt"] = image_prompt
    metadata["temp_base64_image"] = data_url
    updated["metadata"] = metadata
    return updated
