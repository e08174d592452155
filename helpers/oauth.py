"""
OAuth round-trip helpers.

The `state` parameter is an opaque, base64-encoded JSON document carrying the
user id, a millisecond timestamp and a random nonce. The nonce doubles as the
id of the pending authorization the callback completes.
"""

import base64
import binascii
import hashlib
import json
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


class OAuthStateError(ValueError):
    """Raised when an OAuth state parameter cannot be trusted."""

    pass


@dataclass
class OAuthState:
    user_id: int
    timestamp: int  # milliseconds since the epoch
    nonce: str
    platform: Optional[str] = None

    @property
    def age_seconds(self) -> float:
        return max(0.0, time.time() - self.timestamp / 1000.0)


def encode_state(user_id, platform=None, nonce=None) -> str:
    """Build the opaque state value sent to the provider."""
    payload = {
        "userId": user_id,
        "timestamp": int(time.time() * 1000),
        "random": nonce or secrets.token_hex(8),
    }
    if platform:
        payload["platform"] = platform
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def decode_state(state: str, max_age: Optional[int] = None) -> OAuthState:
    """
    Decode a state value produced by encode_state.

    Args:
        state: Raw `state` query parameter.
        max_age: Optional maximum age in seconds; 0 or None disables the check.

    Raises:
        OAuthStateError: If the value is malformed, lacks a user id or is too old.
    """
    try:
        payload = json.loads(base64.b64decode(state.encode("ascii"), validate=True))
    except (binascii.Error, UnicodeError, ValueError) as e:
        logger.warning(f"Failed to decode OAuth state: {e}")
        raise OAuthStateError("Invalid state parameter") from e

    if not isinstance(payload, dict):
        raise OAuthStateError("Invalid state parameter")

    user_id = payload.get("userId")
    if not user_id:
        raise OAuthStateError("Invalid state: missing userId")

    try:
        timestamp = int(payload.get("timestamp") or 0)
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning(f"OAuth state for user {user_id} has a bad timestamp: {e}")
        raise OAuthStateError("Invalid state parameter") from e

    decoded = OAuthState(
        user_id=user_id,
        timestamp=timestamp,
        nonce=str(payload.get("random") or ""),
        platform=payload.get("platform"),
    )

    if max_age and decoded.age_seconds > max_age:
        logger.warning(
            f"OAuth state for user {user_id} is {int(decoded.age_seconds)}s old (max {max_age}s)"
        )
        raise OAuthStateError("State expired")

    return decoded


def generate_code_verifier() -> str:
    """32 random bytes rendered as hex, within the RFC 7636 length bounds."""
    return secrets.token_bytes(32).hex()


def generate_code_challenge(verifier: str) -> str:
    """S256 challenge: unpadded base64url of the verifier's SHA-256 digest."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_pkce_pair():
    verifier = generate_code_verifier()
    return verifier, generate_code_challenge(verifier)
