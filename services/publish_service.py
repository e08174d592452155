"""
Publish dispatcher: pushes generated content to a connected platform using
the user's stored credential.
"""

import logging
from typing import Dict, Any, Optional

from helpers.content_generator import (
    Platform,
    SOCIAL_PLATFORM_NAMES,
    normalize_content_platform,
)
from helpers.platforms import (
    ContentValidationError,
    NotConnectedError,
    PlatformError,
    TokenExpiredError,
    get_platform_manager,
)
from helpers.platforms.google_drive import render_campaign_document
from services.credential_service import apply_refreshed_tokens, get_credential

logger = logging.getLogger(__name__)


def failure_result(error: PlatformError) -> Dict[str, Any]:
    """Shape a PlatformError like a manager's post result."""
    return {
        "success": False,
        "post_id": None,
        "post_url": None,
        "error_message": error.message,
        "error_code": error.error_code,
        "status_code": error.status_code,
        "requires_reauth": error.requires_reauth,
        "platform_response": error.details,
    }


def resolve_platform(platform) -> Platform:
    try:
        return platform if isinstance(platform, Platform) else Platform.from_name(platform)
    except ValueError as e:
        raise ContentValidationError(str(e)) from e


def ensure_usable_credential(user_id: int, platform: Platform, manager):
    """
    Load the credential for (user, platform) and make sure its token is current.

    Raises:
        NotConnectedError: No credential is stored.
        TokenExpiredError: The token expired and cannot be refreshed.
    """
    credential = get_credential(user_id, platform)
    if not credential:
        logger.info(f"User {user_id} has no {platform.value} credential")
        raise NotConnectedError(
            f"{manager.display_name} account not connected",
            details={"message": f"Please connect your {manager.display_name} account first"},
        )

    if not credential.is_expired():
        return credential

    if not credential.can_refresh:
        logger.info(
            f"{platform.value} token for user {user_id} expired at {credential.expires_at}; no refresh token issued"
        )
        raise TokenExpiredError(
            f"{manager.display_name} token expired",
            details={"message": f"Please reconnect your {manager.display_name} account"},
        )

    logger.info(f"{platform.value} token for user {user_id} expired; attempting refresh")
    token_data = manager.refresh_access_token(credential.refresh_token)
    return apply_refreshed_tokens(credential, token_data)


def publish_content(
    user_id: int, platform, text: str, image_url: Optional[str] = None
) -> Dict[str, Any]:
    """
    Publish text (and optionally an image) to one platform.

    Input is validated before the credential lookup, and the credential is
    checked before any provider call.

    Raises:
        PlatformError: Any validation, credential or provider failure.
    """
    platform = resolve_platform(platform)
    manager = get_platform_manager(platform)

    validation = manager.validate_content(text, image_url)
    if not validation["valid"]:
        raise ContentValidationError(
            validation["errors"][0],
            details={"errors": validation["errors"], "currentLength": len(text or "")},
        )
    for warning in validation["warnings"]:
        logger.info(f"{platform.value} content warning for user {user_id}: {warning}")

    credential = ensure_usable_credential(user_id, platform, manager)
    return manager.post_content(credential, text, image_url)


def resolve_item_platforms(item, campaign=None) -> list:
    """
    Work out which platforms a content item should be published to.

    Only social items publish. An explicit platform wins; otherwise the
    metadata, subtype and title are searched for a platform name, and as a
    last resort the campaign's enabled platforms (minus Google Drive) are used.
    """
    if not item.is_social:
        return []

    if item.platform:
        return [item.platform]

    metadata = item.item_metadata or {}
    from_metadata = normalize_content_platform(metadata.get("platform"))
    if from_metadata:
        return [from_metadata]

    haystack = f"{item.subtype or ''} {metadata.get('title') or ''}".lower()
    for name in SOCIAL_PLATFORM_NAMES:
        if name in haystack:
            return [name]

    if campaign is not None:
        return [
            normalize_content_platform(name)
            for name in campaign.enabled_platforms()
            if normalize_content_platform(name) != "gdrive"
        ]
    return []


def publish_content_item(user_id: int, item, platform=None) -> Dict[str, Dict[str, Any]]:
    """
    Publish a saved content item, returning one result per target platform.

    Failures are reported per platform rather than raised.
    """
    targets = [platform] if platform else resolve_item_platforms(item, item.campaign)
    if not targets:
        error = ContentValidationError(
            "This content item is not a social post or has no target platform."
        )
        return {"unknown": failure_result(error)}

    results = {}
    for target in targets:
        try:
            results[target] = publish_content(
                user_id, target, item.generated_text, item.image_url
            )
        except PlatformError as e:
            logger.warning(f"Publishing item {item.id} to {target} failed: {e.message}")
            results[target] = failure_result(e)
    return results


def export_campaign_to_drive(user_id: int, campaign) -> Dict[str, Any]:
    """
    Upload all of a campaign's content as one Google Doc.

    Raises:
        PlatformError: Credential or upload failure.
    """
    manager = get_platform_manager(Platform.GOOGLE_DRIVE)
    credential = ensure_usable_credential(user_id, Platform.GOOGLE_DRIVE, manager)

    items = [item.to_dict() for item in campaign.content_items]
    if not items:
        raise ContentValidationError("This campaign has no content to export.")

    document = render_campaign_document(campaign.name, items)
    return manager.upload_document(
        credential, f"Campaign Content - {campaign.name}", document
    )
