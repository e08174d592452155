"""
X (Twitter) Platform Manager

Public OAuth2 client using PKCE (no client secret) and the v2 tweets endpoint.
"""

import logging
from typing import Dict, Any, Optional

from helpers.content_generator import Platform
from .base import (
    BasePlatformManager,
    PermissionDeniedError,
    PlatformError,
    ProviderProfile,
)

logger = logging.getLogger(__name__)

TWITTER_AUTHORIZATION_URL = "https://twitter.com/i/oauth2/authorize"
TWITTER_TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
TWITTER_API_BASE_URL = "https://api.twitter.com/2"

TWEET_MAX_LENGTH = 280
ELLIPSIS = "..."

PERMISSION_DENIED_MESSAGE = (
    "Permission Denied. Please disconnect & reconnect X (Twitter) to update permissions."
)


def compose_tweet(text: str, image_url: Optional[str] = None) -> str:
    """
    Fit text and an optional image link into a single tweet.

    With an image, the text is cut (ending in an ellipsis) so that the text,
    one space and the full image URL together stay within 280 characters.
    """
    text = text.strip()
    if not image_url:
        return text

    available = TWEET_MAX_LENGTH - len(image_url) - 1
    if available <= len(ELLIPSIS):
        logger.warning(
            f"Image URL is too long to share in a tweet ({len(image_url)} chars); posting text only."
        )
        if len(text) > TWEET_MAX_LENGTH:
            text = text[: TWEET_MAX_LENGTH - len(ELLIPSIS)] + ELLIPSIS
        return text

    if len(text) > available:
        text = text[: available - len(ELLIPSIS)] + ELLIPSIS
    return f"{text} {image_url}"


class TwitterManager(BasePlatformManager):
    """X platform manager for posting and authorization."""

    platform = Platform.X
    display_name = "X (Twitter)"
    authorization_url = TWITTER_AUTHORIZATION_URL
    token_url = TWITTER_TOKEN_URL
    scopes = "tweet.read tweet.write users.read offline.access"
    config_prefix = "TWITTER"
    requires_client_secret = False
    uses_pkce = True
    supports_refresh = True
    max_length = TWEET_MAX_LENGTH

    def fetch_profile(self, access_token: str) -> ProviderProfile:
        try:
            response = self._make_request(
                "GET",
                f"{TWITTER_API_BASE_URL}/users/me",
                headers=self._bearer(access_token),
                log_context="X profile fetch",
            )
        except PlatformError as e:
            e.error_code = "profile_fetch_failed"
            raise

        data = self._json(response).get("data") or {}
        if not data.get("id"):
            raise PlatformError(
                "X profile did not include a user id.",
                error_code="profile_id_missing",
                details=data,
            )
        return ProviderProfile(
            account_id=data["id"],
            account_name=data.get("name") or data.get("username"),
            metadata={"username": data.get("username")},
        )

    def validate_content(self, text: str, image_url: Optional[str] = None) -> Dict[str, Any]:
        # Text alongside an image is truncated at post time instead of rejected.
        result = super().validate_content(text, image_url)
        if image_url:
            result["errors"] = [
                error for error in result["errors"] if "exceeds" not in error
            ]
            result["valid"] = len(result["errors"]) == 0
            if text and len(text) > TWEET_MAX_LENGTH - len(image_url) - 1:
                result["warnings"].append("Text will be truncated to fit the image link")
        return result

    def post_content(
        self, credential, text: str, image_url: Optional[str] = None
    ) -> Dict[str, Any]:
        tweet_text = compose_tweet(text, image_url)

        logger.info(
            f"Posting tweet for user {credential.user_id} ({len(tweet_text)} chars)"
        )
        try:
            response = self._make_request(
                "POST",
                f"{TWITTER_API_BASE_URL}/tweets",
                headers={**self._bearer(credential), "Content-Type": "application/json"},
                json={"text": tweet_text},
                log_context="Post tweet",
            )
        except PermissionDeniedError as e:
            raise PermissionDeniedError(PERMISSION_DENIED_MESSAGE, details=e.details) from e

        self._log_rate_limit(response)

        data = self._json(response).get("data") or {}
        tweet_id = data.get("id")
        post_url = f"https://x.com/i/web/status/{tweet_id}" if tweet_id else None
        logger.info(f"Tweet posted for user {credential.user_id}: {tweet_id}")
        return self._success_result(tweet_id, post_url, platform_response=data)

    @staticmethod
    def _log_rate_limit(response):
        headers = response.headers
        logger.info(
            "X rate limit: "
            f"limit={headers.get('x-rate-limit-limit')} "
            f"remaining={headers.get('x-rate-limit-remaining')} "
            f"reset={headers.get('x-rate-limit-reset')}"
        )
