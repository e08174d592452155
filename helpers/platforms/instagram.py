"""
Instagram Platform Manager

Publishes through the Instagram Business Account linked to one of the user's
Facebook Pages. Reuses the Facebook app for authorization.
"""

import logging
from typing import Dict, Any, Optional

from helpers.content_generator import Platform
from .base import ContentValidationError, PlatformError
from .facebook import FacebookManager, GRAPH_API_BASE_URL

logger = logging.getLogger(__name__)


class InstagramManager(FacebookManager):
    """Instagram image publishing (container, then publish)."""

    platform = Platform.INSTAGRAM
    display_name = "Instagram"
    scopes = "instagram_basic,instagram_content_publish,pages_show_list"
    redirect_uri_key = "INSTAGRAM_REDIRECT_URI"
    requires_image = True
    max_length = 2200

    def find_business_account(self, credential):
        """Return (instagram account id, page token) for the first linked Page."""
        pages = self.get_pages(
            credential, fields="instagram_business_account,access_token,name"
        )
        for page in pages:
            account = page.get("instagram_business_account")
            if account and account.get("id"):
                return account["id"], page.get("access_token") or credential.access_token
        raise PlatformError(
            "No Instagram Business Account found linked to your Facebook Pages. "
            "Please link one in your Page settings.",
            status_code=400,
            error_code="no_instagram_account",
        )

    def post_content(
        self, credential, text: str, image_url: Optional[str] = None
    ) -> Dict[str, Any]:
        if not image_url:
            raise ContentValidationError("Instagram requires an image to publish.")

        ig_account_id, page_token = self.find_business_account(credential)

        container = self._json(
            self._make_request(
                "POST",
                f"{GRAPH_API_BASE_URL}/{ig_account_id}/media",
                params={
                    "image_url": image_url,
                    "caption": text,
                    "access_token": page_token,
                },
                log_context="Instagram media container",
            )
        )
        creation_id = container.get("id")
        if not creation_id:
            raise PlatformError(
                "Instagram did not return a media container id.", details=container
            )

        published = self._json(
            self._make_request(
                "POST",
                f"{GRAPH_API_BASE_URL}/{ig_account_id}/media_publish",
                params={"creation_id": creation_id, "access_token": page_token},
                log_context="Instagram media publish",
            )
        )
        media_id = published.get("id")
        logger.info(
            f"Published Instagram media {media_id} for user {credential.user_id}"
        )
        return self._success_result(media_id, None, platform_response=published)
