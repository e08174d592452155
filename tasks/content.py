from celery import shared_task
from flask import current_app
import logging

from extensions import db
from helpers.content_generator import ContentGenerator, ContentGenerationError
from models.campaign import Campaign
from services.content_service import generate_campaign_content
from services.leads_service import generate_emails_for_campaign

logger = logging.getLogger(__name__)


@shared_task(ignore_result=False)
def generate_campaign_content_task(campaign_id: int):
    """
    Generate and save content for an auto-mode campaign.

    The model is called once; a generation failure fails the task.

    Returns:
        Number of items saved, or None if the campaign no longer exists.
    """
    campaign = db.session.get(Campaign, campaign_id)
    if not campaign:
        logger.warning(f"Campaign {campaign_id} not found; skipping generation")
        return None

    try:
        generator = ContentGenerator.from_config(current_app.config)
        items = generate_campaign_content(campaign, generator)
    except ContentGenerationError as e:
        logger.error(f"Error generating content for campaign {campaign_id}: {str(e)}")
        raise

    logger.info(f"Generated {len(items)} items for campaign {campaign_id}")
    return len(items)


@shared_task(ignore_result=False)
def generate_contact_emails_task(campaign_id: int):
    """Generate cold emails for every contact of a campaign that lacks one."""
    campaign = db.session.get(Campaign, campaign_id)
    if not campaign:
        logger.warning(f"Campaign {campaign_id} not found; skipping email generation")
        return None

    try:
        generator = ContentGenerator.from_config(current_app.config)
    except ContentGenerationError as e:
        logger.error(f"Cannot generate emails for campaign {campaign_id}: {str(e)}")
        raise

    return generate_emails_for_campaign(campaign, generator)
