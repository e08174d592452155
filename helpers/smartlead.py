"""
SmartLead API client.

Validates campaign credentials and pushes generated cold emails as leads.
"""

import logging

import requests
from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_SMARTLEAD_API_BASE = "https://server.smartlead.ai/api/v1"


class SmartLeadError(ValueError):
    """Raised when SmartLead rejects a request."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def _api_base():
    try:
        return current_app.config.get("SMARTLEAD_API_BASE") or DEFAULT_SMARTLEAD_API_BASE
    except RuntimeError:
        return DEFAULT_SMARTLEAD_API_BASE


def build_lead(email_record):
    """SmartLead lead payload for a GeneratedEmail-shaped dict."""
    contact = email_record["contact"]
    return {
        "email": contact["email"],
        "first_name": contact["firstName"],
        "last_name": contact.get("lastName") or "",
        "company_name": contact["company"],
        "custom_fields": {
            "business_name": contact["company"],
            "email_content": email_record.get("body") or "",
            "email_subject": email_record.get("subject") or "",
            "research_notes": email_record.get("researchSummary") or "",
        },
    }


def _make_smartlead_request(method, path, api_key, log_context="SmartLead API Request", **kwargs):
    """Make requests to the SmartLead API and handle common errors."""
    url = f"{_api_base()}{path}"
    params = kwargs.pop("params", {}) or {}
    params["api_key"] = api_key
    try:
        response = requests.request(method, url, params=params, timeout=30, **kwargs)
        response.raise_for_status()
        return response
    except requests.exceptions.HTTPError as http_err:
        status = http_err.response.status_code
        logger.error(f"HTTP error during {log_context}: {status} - {http_err.response.text}")
        raise SmartLeadError(
            f"{log_context} failed: {status} - {http_err.response.text}", status_code=status
        ) from http_err
    except requests.exceptions.RequestException as req_err:
        logger.error(f"Request exception during {log_context}: {str(req_err)}")
        raise SmartLeadError(f"{log_context} request failed: {str(req_err)}") from req_err


def validate_smartlead_credentials(api_key, campaign_id) -> bool:
    """Return True when the API key can read the given SmartLead campaign."""
    if not (api_key or "").strip() or not str(campaign_id or "").strip():
        logger.warning("SmartLead validation skipped: missing API key or campaign id")
        return False

    try:
        _make_smartlead_request(
            "GET",
            f"/campaigns/{campaign_id}",
            api_key,
            headers={"Accept": "application/json"},
            log_context="SmartLead credential check",
        )
    except SmartLeadError as e:
        if e.status_code == 401:
            logger.warning("SmartLead rejected the API key (401)")
        elif e.status_code == 404:
            logger.warning(f"SmartLead campaign {campaign_id} not found (404)")
        return False

    logger.info(f"SmartLead credentials valid for campaign {campaign_id}")
    return True


def push_leads_to_smartlead(api_key, campaign_id, leads):
    """
    Add leads to a SmartLead campaign.

    Raises:
        SmartLeadError: If SmartLead rejects the request.
    """
    response = _make_smartlead_request(
        "POST",
        f"/campaigns/{campaign_id}/leads",
        api_key,
        headers={"Content-Type": "application/json"},
        json={"lead_list": leads},
        log_context="SmartLead lead push",
    )
    logger.info(f"Pushed {len(leads)} leads to SmartLead campaign {campaign_id}")
    try:
        return response.json()
    except ValueError:
        return {}
