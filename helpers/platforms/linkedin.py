"""
LinkedIn Platform Manager

This module handles LinkedIn-specific operations including the confidential
authorization-code flow, profile lookup and UGC posting with optional image upload.
"""

import logging
from typing import Dict, Any, Optional

from helpers.content_generator import Platform
from .base import (
    BasePlatformManager,
    PlatformError,
    ProviderProfile,
    ReauthRequiredError,
)

logger = logging.getLogger(__name__)

# LinkedIn API constants
LINKEDIN_AUTHORIZATION_URL = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_ACCESS_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_API_BASE_URL = "https://api.linkedin.com/v2"
LINKEDIN_USERINFO_URL = f"{LINKEDIN_API_BASE_URL}/userinfo"
LINKEDIN_REGISTER_UPLOAD_URL = f"{LINKEDIN_API_BASE_URL}/assets?action=registerUpload"
LINKEDIN_UGC_POSTS_URL = f"{LINKEDIN_API_BASE_URL}/ugcPosts"

UPLOAD_MECHANISM_KEY = "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"


class LinkedInManager(BasePlatformManager):
    """LinkedIn platform manager for posting and authorization."""

    platform = Platform.LINKEDIN
    display_name = "LinkedIn"
    authorization_url = LINKEDIN_AUTHORIZATION_URL
    token_url = LINKEDIN_ACCESS_TOKEN_URL
    scopes = "openid profile email w_member_social"
    config_prefix = "LINKEDIN"
    max_length = 3000

    def __init__(self):
        """Initialize LinkedIn manager."""
        self.platform_name = "linkedin"

    def fetch_profile(self, access_token: str) -> ProviderProfile:
        try:
            response = self._make_request(
                "GET",
                LINKEDIN_USERINFO_URL,
                headers=self._bearer(access_token),
                log_context="LinkedIn profile fetch",
            )
        except PlatformError as e:
            e.error_code = "profile_fetch_failed"
            raise

        profile = self._json(response)
        linkedin_id = profile.get("sub")
        if not linkedin_id:
            raise PlatformError(
                "LinkedIn profile did not include a user id.",
                error_code="profile_id_missing",
                details=profile,
            )

        return ProviderProfile(
            account_id=linkedin_id,
            account_name=profile.get("name"),
            metadata={
                "email": profile.get("email"),
                "picture": profile.get("picture"),
                "linkedinId": linkedin_id,
            },
        )

    def post_content(
        self, credential, text: str, image_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Post content to LinkedIn on behalf of the credential's owner.

        An image that cannot be uploaded degrades to a text post with the image
        link appended.
        """
        if not credential.account_id:
            raise PlatformError(
                "LinkedIn account id is missing. Please reconnect LinkedIn.",
                status_code=500,
                error_code="account_id_missing",
            )

        author_urn = f"urn:li:person:{credential.account_id}"
        media_asset = None
        if image_url:
            try:
                media_asset = self._upload_image(credential, author_urn, image_url)
            except ReauthRequiredError:
                raise
            except PlatformError as e:
                logger.warning(
                    f"LinkedIn image upload failed for user {credential.user_id}, posting text only: {e}"
                )
                text = f"{text}\n\nImage: {image_url}"

        share_content = {
            "shareCommentary": {"text": text},
            "shareMediaCategory": "IMAGE" if media_asset else "NONE",
        }
        if media_asset:
            share_content["media"] = [
                {
                    "status": "READY",
                    "description": {"text": "Shared via ContentWell"},
                    "media": media_asset,
                    "title": {"text": "Shared Image"},
                }
            ]

        post_payload = {
            "author": author_urn,
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }

        headers = {
            **self._bearer(credential),
            "Content-Type": "application/json",
            "X-Restli-Protocol-Version": "2.0.0",
        }

        logger.info(
            f"Attempting to post to LinkedIn for user {credential.user_id} (URN: {author_urn})."
        )

        response = self._make_request(
            "POST",
            LINKEDIN_UGC_POSTS_URL,
            headers=headers,
            json=post_payload,
            log_context="Post to LinkedIn",
        )

        data = self._json(response)
        post_id = response.headers.get("X-Restli-Id") or data.get("id")
        post_url = (
            f"https://www.linkedin.com/feed/update/{post_id}/" if post_id else None
        )

        logger.info(
            f"Successfully posted to LinkedIn for user {credential.user_id}. Post ID: {post_id}"
        )
        return self._success_result(post_id, post_url, platform_response=data)

    def validate_content(self, text: str, image_url: Optional[str] = None) -> Dict[str, Any]:
        """Validate content for LinkedIn-specific requirements."""
        result = super().validate_content(text, image_url)

        if text and 2500 < len(text) <= self.max_length:
            result["warnings"].append("Content is close to LinkedIn's character limit")

        return result

    def _upload_image(self, credential, author_urn: str, image_url: str) -> str:
        """Register an upload, push the image bytes and return the asset URN."""
        register_payload = {
            "registerUploadRequest": {
                "recipes": ["urn:li:digitalmediaRecipe:feedshare-image"],
                "owner": author_urn,
                "serviceRelationships": [
                    {
                        "relationshipType": "OWNER",
                        "identifier": "urn:li:userGeneratedContent",
                    }
                ],
            }
        }
        register_response = self._make_request(
            "POST",
            LINKEDIN_REGISTER_UPLOAD_URL,
            headers={**self._bearer(credential), "Content-Type": "application/json"},
            json=register_payload,
            log_context="LinkedIn image upload registration",
        )
        value = self._json(register_response).get("value") or {}
        upload_url = (
            (value.get("uploadMechanism") or {}).get(UPLOAD_MECHANISM_KEY) or {}
        ).get("uploadUrl")
        asset = value.get("asset")
        if not upload_url or not asset:
            raise PlatformError(
                "LinkedIn upload registration did not return an upload URL.",
                details=value,
            )

        try:
            image_response = self._make_request(
                "GET", image_url, log_context="Fetch image for LinkedIn"
            )
        except PlatformError as e:
            # A 401 here comes from the image host, not LinkedIn.
            raise PlatformError(
                f"Could not fetch image for LinkedIn: {e.message}",
                error_code="image_fetch_failed",
            ) from e

        self._make_request(
            "PUT",
            upload_url,
            headers={
                **self._bearer(credential),
                "Content-Type": "application/octet-stream",
            },
            data=image_response.content,
            log_context="LinkedIn image upload",
        )
        logger.info(f"Uploaded image to LinkedIn as asset {asset}")
        return asset
