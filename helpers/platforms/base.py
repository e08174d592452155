"""
Base Platform Manager

This module defines the base interface that all platform managers must implement,
the shared OAuth2 authorization-code client, and the error taxonomy used when
talking to social platform APIs.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
from urllib.parse import urlencode

import requests
from flask import current_app

from helpers.content_generator import Platform
from models.social_credential import (
    REFRESH_POLICY_NONE,
    REFRESH_POLICY_REFRESH_TOKEN,
)

logger = logging.getLogger(__name__)


class PlatformError(ValueError):
    """An error talking to, or preparing a call for, a social platform."""

    status_code = 502
    error_code = "provider_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details

    @property
    def requires_reauth(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }
        if self.requires_reauth:
            payload["requiresReauth"] = True
        return payload


class ConfigurationError(PlatformError):
    status_code = 500
    error_code = "configuration_error"


class ContentValidationError(PlatformError):
    status_code = 400
    error_code = "validation_error"


class NotConnectedError(PlatformError):
    status_code = 404
    error_code = "not_connected"


class TokenExpiredError(PlatformError):
    status_code = 401
    error_code = "token_expired"

    @property
    def requires_reauth(self) -> bool:
        return True


class ReauthRequiredError(PlatformError):
    """The provider rejected the token (HTTP 401)."""

    status_code = 401
    error_code = "reauth_required"

    @property
    def requires_reauth(self) -> bool:
        return True


class PermissionDeniedError(PlatformError):
    """The token lacks a scope the call needs (HTTP 403)."""

    status_code = 403
    error_code = "permission_denied"


@dataclass
class ProviderProfile:
    """Account details fetched right after a token exchange."""

    account_id: Optional[str]
    account_name: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)


def extract_error_message(payload: Any) -> Optional[str]:
    """Pull a human-readable message out of a provider error payload."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    for key in ("message", "error_description", "detail", "title"):
        if payload.get(key):
            return str(payload[key])
    if isinstance(error, str):
        return error
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0].get("message") or errors[0].get("detail")
    return None


class BasePlatformManager(ABC):
    """Base class for platform-specific operations."""

    platform: Platform
    display_name: str = ""

    # OAuth2 authorization-code client settings
    authorization_url: str = ""
    token_url: str = ""
    scopes: str = ""
    scope_separator: str = " "
    config_prefix: str = ""
    redirect_uri_key: Optional[str] = None
    requires_client_secret = True
    uses_pkce = False
    supports_refresh = False
    token_request_method = "POST"
    extra_auth_params: Dict[str, str] = {}

    # Content limits
    max_length: Optional[int] = None
    requires_image = False

    def get_platform_name(self) -> str:
        """Get the name of this platform."""
        return self.platform.value

    # --- Configuration -------------------------------------------------

    def get_oauth_config(self):
        """
        Read client id, client secret and redirect URI from the app config.

        Raises:
            ConfigurationError: If any required value is missing.
        """
        client_id = current_app.config.get(f"{self.config_prefix}_CLIENT_ID")
        client_secret = current_app.config.get(f"{self.config_prefix}_CLIENT_SECRET")
        redirect_uri = current_app.config.get(
            self.redirect_uri_key or f"{self.config_prefix}_REDIRECT_URI"
        )

        missing = []
        if not client_id:
            missing.append("client id")
        if self.requires_client_secret and not client_secret:
            missing.append("client secret")
        if not redirect_uri:
            missing.append("redirect URI")
        if missing:
            logger.error(
                f"{self.display_name} OAuth not configured: missing {', '.join(missing)}"
            )
            raise ConfigurationError(
                f"{self.display_name} OAuth not configured. Missing {', '.join(missing)}.",
                details={"missing": missing},
            )
        return client_id, client_secret, redirect_uri

    # --- Authorization ---------------------------------------------------

    def get_auth_url(self, state: str, code_challenge: Optional[str] = None) -> str:
        """Build the provider authorization URL for the given state."""
        client_id, _, redirect_uri = self.get_oauth_config()

        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "scope": self.scopes,
        }
        params.update(self.extra_auth_params)
        if self.uses_pkce:
            if not code_challenge:
                raise ConfigurationError(
                    f"{self.display_name} authorization requires a PKCE code challenge."
                )
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"

        auth_url = f"{self.authorization_url}?{urlencode(params)}"
        logger.info(f"Generated {self.display_name} authorization URL")
        return auth_url

    def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> Dict:
        """Exchange an authorization code for token data."""
        client_id, client_secret, redirect_uri = self.get_oauth_config()

        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": client_id,
            "redirect_uri": redirect_uri,
        }
        if client_secret and self.requires_client_secret:
            payload["client_secret"] = client_secret
        if self.uses_pkce:
            payload["code_verifier"] = code_verifier

        request_kwargs = {"headers": {"Content-Type": "application/x-www-form-urlencoded"}}
        if self.token_request_method == "GET":
            request_kwargs = {"params": payload}
        else:
            request_kwargs["data"] = payload

        try:
            response = self._make_request(
                self.token_request_method,
                self.token_url,
                log_context=f"{self.display_name} token exchange",
                **request_kwargs,
            )
        except PlatformError as e:
            e.error_code = "token_exchange_failed"
            raise

        token_data = self._json(response)
        if not token_data.get("access_token"):
            raise PlatformError(
                f"{self.display_name} did not return an access token.",
                error_code="token_exchange_failed",
                details=token_data,
            )
        return token_data

    @abstractmethod
    def fetch_profile(self, access_token: str) -> ProviderProfile:
        """Fetch the connected account's id and display name."""
        pass

    def refresh_access_token(self, refresh_token: str) -> Dict:
        """Trade a refresh token for fresh token data."""
        if not self.supports_refresh:
            raise TokenExpiredError(
                f"{self.display_name} token expired. Please reconnect your account."
            )

        client_id, client_secret, _ = self.get_oauth_config()
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
        }
        if client_secret and self.requires_client_secret:
            payload["client_secret"] = client_secret

        try:
            response = self._make_request(
                "POST",
                self.token_url,
                data=payload,
                log_context=f"{self.display_name} token refresh",
            )
        except PlatformError as e:
            raise TokenExpiredError(
                f"{self.display_name} token expired and could not be refreshed. Please reconnect your account.",
                details=e.details,
            ) from e
        return self._json(response)

    def build_credential_fields(
        self, token_data: Dict, profile: ProviderProfile
    ) -> Dict[str, Any]:
        """Map token and profile data onto SocialCredential columns."""
        refresh_token = token_data.get("refresh_token") if self.supports_refresh else None
        expires_in = token_data.get("expires_in")
        expires_at = (
            datetime.utcnow() + timedelta(seconds=int(expires_in)) if expires_in else None
        )
        return {
            "access_token": token_data["access_token"],
            "refresh_token": refresh_token,
            "refresh_policy": (
                REFRESH_POLICY_REFRESH_TOKEN if refresh_token else REFRESH_POLICY_NONE
            ),
            "token_type": (token_data.get("token_type") or "bearer").lower(),
            "expires_at": expires_at,
            "scopes": self._parse_scopes(token_data.get("scope")),
            "account_id": profile.account_id,
            "account_name": profile.account_name,
            "metadata": profile.metadata,
        }

    def _parse_scopes(self, scope_value) -> list:
        if isinstance(scope_value, list):
            return scope_value
        raw = scope_value or self.scopes
        separator = "," if "," in raw else " "
        return [scope.strip() for scope in raw.split(separator) if scope.strip()]

    # --- Publishing ------------------------------------------------------

    @abstractmethod
    def post_content(
        self, credential, text: str, image_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Post content to the platform.

        Args:
            credential: SocialCredential for the posting user
            text: The content to post
            image_url: Optional public image URL

        Returns:
            Dict containing posting result with keys:
            - success: bool
            - post_id: str
            - post_url: str or None
            - error_message: None
            - platform_response: dict (raw platform response)

        Raises:
            PlatformError: On any provider or validation failure.
        """
        pass

    def validate_content(self, text: str, image_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate content for platform-specific requirements.

        Returns:
            Dict with validation result:
            - valid: bool
            - errors: list of error messages
            - warnings: list of warning messages
        """
        errors = []
        warnings = []

        if not text or not text.strip():
            errors.append("Text is required")
        if self.requires_image and not image_url:
            errors.append(f"{self.display_name} requires an image to publish.")
        if self.max_length and text and len(text) > self.max_length:
            errors.append(
                f"Text exceeds {self.display_name} limit of {self.max_length} characters"
            )

        return {"valid": len(errors) == 0, "errors": errors, "warnings": warnings}

    # --- HTTP ------------------------------------------------------------

    def _success_result(
        self, post_id, post_url=None, platform_response=None
    ) -> Dict[str, Any]:
        return {
            "success": True,
            "post_id": post_id,
            "post_url": post_url,
            "error_message": None,
            "error_code": None,
            "status_code": 200,
            "requires_reauth": False,
            "platform_response": platform_response,
        }

    @staticmethod
    def _json(response) -> Dict:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {"data": data}

    @staticmethod
    def _bearer(credential_or_token) -> Dict[str, str]:
        token = getattr(credential_or_token, "access_token", credential_or_token)
        return {"Authorization": f"Bearer {token}"}

    def _make_request(self, method, url, log_context="Platform API Request", **kwargs):
        """Make a provider API request and translate failures into PlatformError."""
        try:
            response = requests.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as http_err:
            status = http_err.response.status_code
            payload = None
            error_detail = http_err.response.text
            try:
                payload = http_err.response.json()
                error_detail = extract_error_message(payload) or error_detail
            except ValueError:
                pass

            logger.error(f"HTTP error during {log_context}: {status} - {error_detail}")
            message = f"{log_context} failed: {status} - {error_detail}"
            if status == 401:
                raise ReauthRequiredError(message, details=payload) from http_err
            if status == 403:
                raise PermissionDeniedError(message, details=payload) from http_err
            raise PlatformError(message, status_code=status, details=payload) from http_err
        except requests.exceptions.RequestException as req_err:
            logger.error(f"Request exception during {log_context}: {str(req_err)}")
            raise PlatformError(f"{log_context} request failed: {str(req_err)}") from req_err
