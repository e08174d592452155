"""
Facebook Platform Manager

Posts to a Facebook Page the connected user manages, via the Graph API.
"""

import logging
from typing import Dict, Any, Optional

from helpers.content_generator import Platform
from .base import (
    BasePlatformManager,
    PermissionDeniedError,
    PlatformError,
    ProviderProfile,
    ReauthRequiredError,
)

logger = logging.getLogger(__name__)

GRAPH_API_VERSION = "v18.0"
GRAPH_API_BASE_URL = f"https://graph.facebook.com/{GRAPH_API_VERSION}"
FACEBOOK_AUTHORIZATION_URL = f"https://www.facebook.com/{GRAPH_API_VERSION}/dialog/oauth"
FACEBOOK_TOKEN_URL = f"{GRAPH_API_BASE_URL}/oauth/access_token"


class FacebookManager(BasePlatformManager):
    """Facebook Page publishing."""

    platform = Platform.FACEBOOK
    display_name = "Facebook"
    authorization_url = FACEBOOK_AUTHORIZATION_URL
    token_url = FACEBOOK_TOKEN_URL
    scopes = "pages_show_list,pages_manage_posts,pages_read_engagement"
    scope_separator = ","
    config_prefix = "FACEBOOK"
    token_request_method = "GET"

    def fetch_profile(self, access_token: str) -> ProviderProfile:
        try:
            response = self._make_request(
                "GET",
                f"{GRAPH_API_BASE_URL}/me",
                params={"fields": "id,name", "access_token": access_token},
                log_context=f"{self.display_name} profile fetch",
            )
        except PlatformError as e:
            e.error_code = "profile_fetch_failed"
            raise

        profile = self._json(response)
        if not profile.get("id"):
            raise PlatformError(
                f"{self.display_name} profile did not include a user id.",
                error_code="profile_id_missing",
                details=profile,
            )
        return ProviderProfile(
            account_id=profile["id"],
            account_name=profile.get("name"),
            metadata=self._page_metadata(access_token),
        )

    def _page_metadata(self, access_token: str) -> Dict[str, Any]:
        """Remember the first managed Page so later posts target the same one."""
        try:
            response = self._make_request(
                "GET",
                f"{GRAPH_API_BASE_URL}/me/accounts",
                params={"fields": "id,name", "access_token": access_token},
                log_context=f"{self.display_name} page lookup",
            )
        except PlatformError as e:
            logger.warning(f"{self.display_name} page lookup failed during connect: {e}")
            return {}

        pages = self._json(response).get("data") or []
        if not pages:
            return {}
        return {"page_id": pages[0].get("id"), "page_name": pages[0].get("name")}

    def get_pages(self, credential, fields: Optional[str] = None) -> list:
        """List the Pages the connected user manages."""
        params = {"access_token": credential.access_token}
        if fields:
            params["fields"] = fields
        response = self._make_request(
            "GET",
            f"{GRAPH_API_BASE_URL}/me/accounts",
            params=params,
            log_context=f"{self.display_name} page lookup",
        )
        return self._json(response).get("data") or []

    def post_content(
        self, credential, text: str, image_url: Optional[str] = None
    ) -> Dict[str, Any]:
        pages = self.get_pages(credential)
        if not pages:
            raise PlatformError(
                "No Facebook Pages found. Please make sure you manage at least one Page.",
                status_code=400,
                error_code="no_pages",
            )

        stored_page_id = (getattr(credential, "account_metadata", None) or {}).get("page_id")
        page = next(
            (p for p in pages if stored_page_id and p.get("id") == stored_page_id), pages[0]
        )
        page_id = page["id"]
        page_token = page.get("access_token") or credential.access_token

        result = None
        if image_url:
            try:
                result = self._json(
                    self._make_request(
                        "POST",
                        f"{GRAPH_API_BASE_URL}/{page_id}/photos",
                        data={"url": image_url, "caption": text, "access_token": page_token},
                        log_context="Facebook photo post",
                    )
                )
            except (ReauthRequiredError, PermissionDeniedError):
                raise
            except PlatformError as e:
                logger.warning(
                    f"Facebook photo post failed for page {page_id}, falling back to a link post: {e}"
                )

        if result is None:
            feed_payload = {"message": text, "access_token": page_token}
            if image_url:
                feed_payload["link"] = image_url
            result = self._json(
                self._make_request(
                    "POST",
                    f"{GRAPH_API_BASE_URL}/{page_id}/feed",
                    data=feed_payload,
                    log_context="Facebook feed post",
                )
            )

        post_id = result.get("post_id") or result.get("id")
        post_url = f"https://www.facebook.com/{post_id}" if post_id else None
        logger.info(
            f"Posted to Facebook page {page_id} for user {credential.user_id}: {post_id}"
        )
        return self._success_result(post_id, post_url, platform_response=result)
