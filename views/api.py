from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user
from celery.result import AsyncResult  # To check task status
import logging

from helpers.content_generator import ContentGenerator, ContentGenerationError
from helpers.platforms import PlatformError
from services.content_service import (
    CampaignValidationError,
    GenerationInProgressError,
    create_campaign,
    delete_campaign,
    generate_campaign_content,
    get_user_campaign,
    get_user_content_item,
    regenerate_item_image,
    regenerate_item_text,
    save_campaign_content,
    update_content_item,
)
from services.image_storage import ImageStorageError
from services.notifications import PollingNotificationSource
from services.publish_service import (
    export_campaign_to_drive,
    publish_content,
    publish_content_item,
)
from models.campaign import Campaign
from tasks.content import generate_campaign_content_task

logger = logging.getLogger(__name__)  # Initialize the logger for this module

# Create a blueprint for API routes
bp = Blueprint("api", __name__, url_prefix="/api")


def get_generator():
    return ContentGenerator.from_config(current_app.config)


def _campaign_or_404(campaign_id):
    campaign = get_user_campaign(current_user.id, campaign_id)
    if campaign is None:
        return None, (jsonify({"success": False, "error": "Campaign not found"}), 404)
    return campaign, None


def _item_or_404(item_id):
    item = get_user_content_item(current_user.id, item_id)
    if item is None:
        return None, (jsonify({"success": False, "error": "Content item not found"}), 404)
    return item, None


def _generation_failed(e):
    logger.error(f"Content generation failed for user {current_user.id}: {str(e)}")
    return jsonify({"success": False, "error": str(e)}), 502


# --- Campaigns ------------------------------------------------------------


@bp.route("/campaigns", methods=["GET"])
@login_required
def list_campaigns():
    campaigns = (
        Campaign.query.filter_by(user_id=current_user.id)
        .order_by(Campaign.created_at.desc())
        .all()
    )
    return jsonify({"campaigns": [campaign.to_dict() for campaign in campaigns]})


@bp.route("/campaigns", methods=["POST"])
@login_required
def create_campaign_api():
    data = request.get_json(silent=True) or {}
    try:
        campaign = create_campaign(current_user.id, data)
    except CampaignValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating campaign for user {current_user.id}: {str(e)}")
        return jsonify({"success": False, "error": "Failed to create campaign"}), 500
    return jsonify({"success": True, "campaign": campaign.to_dict()}), 201


@bp.route("/campaigns/<int:campaign_id>", methods=["GET"])
@login_required
def get_campaign(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error
    return jsonify({"campaign": campaign.to_dict()})


@bp.route("/campaigns/<int:campaign_id>", methods=["DELETE"])
@login_required
def delete_campaign_api(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error
    try:
        delete_campaign(campaign)
    except Exception as e:
        logger.error(f"Error deleting campaign {campaign_id}: {str(e)}")
        return jsonify({"success": False, "error": "Failed to delete campaign"}), 500
    return jsonify({"success": True, "message": "Campaign deleted successfully"})


@bp.route("/campaigns/<int:campaign_id>/generate", methods=["POST"])
@login_required
def generate_campaign(campaign_id):
    """
    Generate content for a campaign.

    Auto-mode campaigns are generated and saved by a Celery task; the task id
    is returned for polling. Review-mode campaigns are generated inline and the
    unsaved items returned for editing.
    """
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    if campaign.is_auto:
        task = generate_campaign_content_task.delay(campaign.id)
        logger.info(
            f"Dispatched generate_campaign_content_task for campaign {campaign.id}, task_id: {task.id}"
        )
        return (
            jsonify(
                {
                    "task_id": task.id,
                    "message": "Content generation has started.",
                    "campaign_id": campaign.id,
                }
            ),
            202,
        )

    try:
        items = generate_campaign_content(campaign, get_generator())
    except ContentGenerationError as e:
        return _generation_failed(e)
    return jsonify({"success": True, "items": items})


@bp.route("/campaigns/<int:campaign_id>/content", methods=["POST"])
@login_required
def save_content(campaign_id):
    """Approve and save reviewed items, promoting temporary images."""
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    items = (request.get_json(silent=True) or {}).get("items")
    if not isinstance(items, list) or not items:
        return jsonify({"success": False, "error": "No items provided"}), 400

    try:
        saved = save_campaign_content(campaign, items)
    except ImageStorageError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error saving content for campaign {campaign_id}: {str(e)}")
        return jsonify({"success": False, "error": "Failed to save content"}), 500
    return jsonify({"success": True, "items": [item.to_dict() for item in saved]}), 201


@bp.route("/campaigns/<int:campaign_id>/content", methods=["GET"])
@login_required
def get_campaign_content(campaign_id):
    """Saved items for a campaign; pass `cursor` to get an unchanged marker instead."""
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    source = PollingNotificationSource(
        lambda: [item.to_dict() for item in campaign.content_items.all()],
        name=f"campaign {campaign.id} content",
    )
    notification = source.poll(request.args.get("cursor"))
    response = notification.to_dict()
    response["poll_interval_ms"] = current_app.config.get("POLL_INTERVAL_MS", 5000)
    return jsonify(response)


@bp.route("/campaigns/<int:campaign_id>/regenerate-text", methods=["POST"])
@login_required
def regenerate_text(campaign_id):
    """Rewrite one unsaved item's text."""
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    item = data.get("item")
    if not isinstance(item, dict):
        return jsonify({"success": False, "error": "Item is required"}), 400

    try:
        updated = regenerate_item_text(get_generator(), item, data.get("instructions"))
    except ContentGenerationError as e:
        return _generation_failed(e)
    return jsonify({"success": True, "item": updated})


@bp.route("/campaigns/<int:campaign_id>/regenerate-image", methods=["POST"])
@login_required
def regenerate_image(campaign_id):
    """Generate a new temporary image for one unsaved item."""
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    item = data.get("item")
    if not isinstance(item, dict):
        return jsonify({"success": False, "error": "Item is required"}), 400

    try:
        updated = regenerate_item_image(
            get_generator(), item, current_user.id, prompt=data.get("prompt")
        )
    except GenerationInProgressError as e:
        return jsonify({"success": False, "error": str(e)}), 409
    except CampaignValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except ContentGenerationError as e:
        return _generation_failed(e)
    return jsonify({"success": True, "item": updated})


@bp.route("/campaigns/<int:campaign_id>/export/drive", methods=["POST"])
@login_required
def export_to_drive(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    try:
        result = export_campaign_to_drive(current_user.id, campaign)
    except PlatformError as e:
        logger.error(f"Drive export for campaign {campaign_id} failed: {e.message}")
        return jsonify(e.to_dict()), e.status_code
    return jsonify(result)


# --- Saved content items ----------------------------------------------------


@bp.route("/content/<int:item_id>", methods=["PUT"])
@login_required
def update_content(item_id):
    item, error = _item_or_404(item_id)
    if error:
        return error

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    try:
        item = update_content_item(
            item, text=data.get("generated_text"), metadata=data.get("metadata")
        )
    except ImageStorageError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating content item {item_id}: {str(e)}")
        return jsonify({"error": "Failed to update content"}), 500
    return jsonify({"success": True, "item": item.to_dict()})


@bp.route("/content/<int:item_id>/regenerate-text", methods=["POST"])
@login_required
def regenerate_saved_text(item_id):
    item, error = _item_or_404(item_id)
    if error:
        return error

    instructions = (request.get_json(silent=True) or {}).get("instructions")
    try:
        updated = regenerate_item_text(get_generator(), item.to_dict(), instructions)
    except ContentGenerationError as e:
        return _generation_failed(e)

    item = update_content_item(item, text=updated["generated_text"])
    return jsonify({"success": True, "item": item.to_dict()})


@bp.route("/content/<int:item_id>/regenerate-image", methods=["POST"])
@login_required
def regenerate_saved_image(item_id):
    item, error = _item_or_404(item_id)
    if error:
        return error

    prompt = (request.get_json(silent=True) or {}).get("prompt")
    try:
        updated = regenerate_item_image(
            get_generator(), item.to_dict(), current_user.id, prompt=prompt
        )
        item = update_content_item(item, metadata=updated["metadata"])
    except GenerationInProgressError as e:
        return jsonify({"success": False, "error": str(e)}), 409
    except (CampaignValidationError, ImageStorageError) as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except ContentGenerationError as e:
        return _generation_failed(e)
    return jsonify({"success": True, "item": item.to_dict()})


@bp.route("/content/<int:item_id>/publish", methods=["POST"])
@login_required
def publish_item(item_id):
    """Publish a saved item to its platform(s)."""
    item, error = _item_or_404(item_id)
    if error:
        return error

    platform = (request.get_json(silent=True) or {}).get("platform")
    results = publish_content_item(current_user.id, item, platform=platform)

    failures = [result for result in results.values() if not result["success"]]
    status = failures[0]["status_code"] if failures else 200
    return jsonify({"success": not failures, "results": results}), status


@bp.route("/publish/<platform>", methods=["POST"])
@login_required
def publish(platform):
    """Publish arbitrary text (and an optional image URL) to one platform."""
    data = request.get_json(silent=True) or {}
    try:
        result = publish_content(
            current_user.id, platform, data.get("text"), data.get("image_url")
        )
    except PlatformError as e:
        logger.error(f"Publish to {platform} failed for user {current_user.id}: {e.message}")
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.exception(f"Unexpected error publishing to {platform}: {str(e)}")
        return jsonify({"success": False, "error": "Internal server error"}), 500
    return jsonify(result)


# --- Tasks ------------------------------------------------------------------


@bp.route("/tasks/<task_id>", methods=["GET"])
@login_required
def task_status(task_id):
    """Check the status of a background generation task."""
    task = AsyncResult(task_id)
    response_data = {"task_id": task_id, "status": task.state}

    if task.state == "PENDING":
        response_data["message"] = "Task is pending."
    elif task.state == "FAILURE":
        response_data["message"] = f"Task failed: {str(task.info)}"
        logger.error(f"Task {task_id} FAILED. Info: {task.info}")
    elif task.state == "SUCCESS":
        response_data["message"] = "Task completed successfully."
        response_data["result"] = task.result
    else:
        response_data["message"] = f"Task is in state: {task.state}"
    return jsonify(response_data)
