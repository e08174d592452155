from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import login_required, current_user
import logging

from helpers.content_generator import ContentGenerator, ContentGenerationError
from helpers.csv_leads import (
    CsvMappingError,
    csv_snippet,
    extract_smartlead_data,
    get_csv_preview,
)
from helpers.smartlead import SmartLeadError, validate_smartlead_credentials
from models.contact import Contact
from services.content_service import get_user_campaign
from services.leads_service import (
    export_campaign_csv,
    import_contacts,
    list_campaign_emails,
    push_campaign_to_smartlead,
)
from services.notifications import PollingNotificationSource
from tasks.content import generate_contact_emails_task

logger = logging.getLogger(__name__)

bp = Blueprint("leads", __name__, url_prefix="/api/leads")


def _csv_content():
    """CSV text from an uploaded `file` or a JSON `csv` field."""
    upload = request.files.get("file")
    if upload is not None:
        return upload.read().decode("utf-8-sig", errors="replace")
    data = request.get_json(silent=True) or {}
    return data.get("csv") or request.form.get("csv") or ""


def _campaign_or_404(campaign_id):
    campaign = get_user_campaign(current_user.id, campaign_id)
    if campaign is None:
        return None, (jsonify({"success": False, "error": "Campaign not found"}), 404)
    return campaign, None


@bp.route("/preview", methods=["POST"])
@login_required
def preview():
    content = _csv_content()
    if not content.strip():
        return jsonify({"success": False, "error": "CSV content is required"}), 400
    return jsonify(get_csv_preview(content, request.args.get("rows", 5, type=int)))


@bp.route("/detect-columns", methods=["POST"])
@login_required
def detect_columns():
    """Ask the model which headers hold the lead fields."""
    content = _csv_content()
    if not content.strip():
        return jsonify({"success": False, "error": "CSV content is required"}), 400

    try:
        generator = ContentGenerator.from_config(current_app.config)
        mapping = generator.detect_csv_columns(csv_snippet(content))
    except ContentGenerationError as e:
        return jsonify({"success": False, "error": str(e)}), 502
    return jsonify({"success": True, "mapping": mapping})


@bp.route("/<int:campaign_id>/import", methods=["POST"])
@login_required
def import_leads(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    content = _csv_content()
    data = request.get_json(silent=True) or {}
    mapping = data.get("mapping") or {
        key[len("mapping.") :]: value
        for key, value in request.form.items()
        if key.startswith("mapping.")
    }

    try:
        contacts, invalid_rows = import_contacts(campaign, content, mapping)
    except CsvMappingError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error importing leads into campaign {campaign_id}: {str(e)}")
        return jsonify({"success": False, "error": "Failed to import contacts"}), 500

    return (
        jsonify(
            {
                "success": True,
                "imported": len(contacts),
                "invalid_rows": invalid_rows,
                "total_rows": len(contacts) + invalid_rows,
            }
        ),
        201,
    )


@bp.route("/<int:campaign_id>/contacts", methods=["GET"])
@login_required
def list_contacts(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error
    contacts = campaign.contacts.order_by(Contact.id).all()
    return jsonify({"contacts": [contact.to_dict() for contact in contacts]})


@bp.route("/<int:campaign_id>/generate", methods=["POST"])
@login_required
def generate_emails(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    task = generate_contact_emails_task.delay(campaign.id)
    logger.info(
        f"Dispatched generate_contact_emails_task for campaign {campaign.id}, task_id: {task.id}"
    )
    return (
        jsonify(
            {
                "task_id": task.id,
                "message": "Email generation has started.",
                "campaign_id": campaign.id,
            }
        ),
        202,
    )


@bp.route("/<int:campaign_id>/emails", methods=["GET"])
@login_required
def list_emails(campaign_id):
    """Generated emails; pass `cursor` to get an unchanged marker instead."""
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    source = PollingNotificationSource(
        lambda: list_campaign_emails(campaign), name=f"campaign {campaign.id} emails"
    )
    response = source.poll(request.args.get("cursor")).to_dict()
    response["poll_interval_ms"] = current_app.config.get("POLL_INTERVAL_MS", 5000)
    return jsonify(response)


@bp.route("/<int:campaign_id>/export", methods=["GET"])
@login_required
def export_emails(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    return Response(
        export_campaign_csv(campaign),
        mimetype="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=campaign_{campaign.id}_emails.csv"
        },
    )


@bp.route("/smartlead/validate", methods=["POST"])
@login_required
def validate_smartlead():
    data = request.get_json(silent=True) or {}
    api_key = data.get("api_key") or current_app.config.get("SMARTLEAD_API_KEY")
    valid = validate_smartlead_credentials(api_key, data.get("campaign_id"))
    return jsonify({"valid": valid})


@bp.route("/smartlead/parse-export", methods=["POST"])
@login_required
def parse_smartlead_export():
    """Map a SmartLead lead export back onto our export columns."""
    return jsonify({"rows": extract_smartlead_data(_csv_content())})


@bp.route("/<int:campaign_id>/smartlead/push", methods=["POST"])
@login_required
def push_to_smartlead(campaign_id):
    campaign, error = _campaign_or_404(campaign_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    api_key = data.get("api_key") or current_app.config.get("SMARTLEAD_API_KEY")
    smartlead_campaign_id = data.get("smartlead_campaign_id") or campaign.smartlead_campaign_id

    try:
        result = push_campaign_to_smartlead(campaign, api_key, smartlead_campaign_id)
    except SmartLeadError as e:
        logger.error(f"SmartLead push for campaign {campaign_id} failed: {str(e)}")
        return jsonify({"success": False, "error": str(e)}), e.status_code or 502
    return jsonify({"success": True, "pushed": result["pushed"]})
