"""
Awaitable OAuth authorization.

A connect flow registers a pending authorization keyed by the nonce carried in
the OAuth state. The callback writes the outcome to the same Redis key, and
whoever started the flow (a browser opener polling the status endpoint, or the
`connect-platform` CLI) waits on that key with a timeout.
"""

import json
import logging
import secrets
import time
from dataclasses import dataclass, asdict
from typing import Optional

from flask import current_app

from extensions import redis_client
from helpers.oauth import encode_state

logger = logging.getLogger(__name__)

AUTHORIZATION_KEY = "oauth_authorization:{state_id}"

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"
STATUS_EXPIRED = "expired"

TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED, STATUS_EXPIRED)


class AuthorizationError(Exception):
    """Base exception for the awaitable authorization flow."""

    pass


class AuthorizationTimeout(AuthorizationError):
    """No result arrived before the timeout."""

    pass


@dataclass
class PendingAuthorization:
    state_id: str
    user_id: int
    platform: str
    status: str = STATUS_PENDING
    created_at: float = 0.0
    completed_at: Optional[float] = None
    account_name: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(**{key: data.get(key) for key in cls.__dataclass_fields__ if key in data})


def _key(state_id: str) -> str:
    return AUTHORIZATION_KEY.format(state_id=state_id)


def _timeout_seconds() -> int:
    return int(current_app.config.get("OAUTH_AUTHORIZATION_TIMEOUT", 300))


def _freshness_seconds() -> int:
    return int(current_app.config.get("OAUTH_RESULT_FRESHNESS", 30))


def _load(state_id: str) -> Optional[PendingAuthorization]:
    if not state_id:
        return None
    raw = redis_client.get(_key(state_id))
    if not raw:
        return None
    try:
        return PendingAuthorization.from_dict(json.loads(raw))
    except (TypeError, ValueError) as e:
        logger.error(f"Discarding unreadable authorization record {state_id}: {e}")
        redis_client.delete(_key(state_id))
        return None


def _store(record: PendingAuthorization, ttl: int) -> None:
    redis_client.set(_key(record.state_id), json.dumps(record.to_dict()), ex=max(1, ttl))


def begin_authorization(user_id: int, platform: str):
    """
    Register a pending authorization and build the OAuth state for it.

    Returns:
        Tuple of (PendingAuthorization, encoded state string).
    """
    state_id = secrets.token_hex(16)
    record = PendingAuthorization(
        state_id=state_id,
        user_id=user_id,
        platform=platform,
        created_at=time.time(),
    )
    if redis_client.available:
        _store(record, _timeout_seconds())
    else:
        logger.warning(
            f"Redis unavailable; {platform} authorization for user {user_id} cannot be awaited"
        )
    logger.info(f"Started {platform} authorization {state_id} for user {user_id}")
    return record, encode_state(user_id, platform=platform, nonce=state_id)


def _finish(state_id: str, **changes) -> Optional[PendingAuthorization]:
    record = _load(state_id)
    if record is None:
        logger.info(f"No pending authorization {state_id}; result not relayed")
        return None
    if record.is_terminal:
        logger.info(
            f"Authorization {state_id} already {record.status}; ignoring later result"
        )
        return record

    for name, value in changes.items():
        setattr(record, name, value)
    record.completed_at = time.time()
    _store(record, _timeout_seconds())
    logger.info(f"Authorization {state_id} for user {record.user_id} {record.status}")
    return record


def complete_authorization(state_id: str, account_name: Optional[str] = None):
    """Mark the authorization successful. The first result written wins."""
    return _finish(state_id, status=STATUS_COMPLETED, account_name=account_name)


def fail_authorization(state_id: str, error: str, message: Optional[str] = None):
    """Mark the authorization failed. The first result written wins."""
    return _finish(state_id, status=STATUS_FAILED, error=error, message=message)


def cancel_authorization(state_id: str):
    """
    Cancel a pending authorization.

    The record is replaced by a short-lived cancelled marker, so a waiter sees
    the cancellation and a late callback is not relayed.
    """
    record = _load(state_id)
    if record is None or record.is_terminal:
        return record
    record.status = STATUS_CANCELLED
    record.completed_at = time.time()
    _store(record, _freshness_seconds())
    logger.info(f"Authorization {state_id} cancelled")
    return record


def get_authorization(state_id: str, now: Optional[float] = None):
    """
    Return the authorization record, or None if it is unknown.

    A terminal result older than the freshness window is discarded and
    reported as expired.
    """
    record = _load(state_id)
    if record is None or not record.is_terminal or record.status == STATUS_EXPIRED:
        return record

    now = now or time.time()
    if record.completed_at and now - record.completed_at > _freshness_seconds():
        logger.info(f"Authorization {state_id} result is stale; discarding")
        redis_client.delete(_key(state_id))
        record.status = STATUS_EXPIRED
    return record


def await_authorization(
    state_id: str,
    timeout: Optional[float] = None,
    interval: float = 2.0,
    sleep=time.sleep,
    clock=time.monotonic,
) -> PendingAuthorization:
    """
    Block until the authorization reaches a terminal status.

    Raises:
        AuthorizationError: The authorization is unknown or its record vanished.
        AuthorizationTimeout: No result arrived within `timeout` seconds.
    """
    timeout = _timeout_seconds() if timeout is None else timeout
    deadline = clock() + timeout

    while True:
        record = get_authorization(state_id)
        if record is None:
            raise AuthorizationError(f"Authorization {state_id} not found or expired")
        if record.is_terminal:
            return record
        if clock() >= deadline:
            raise AuthorizationTimeout(
                f"Authorization {state_id} did not complete within {timeout} seconds"
            )
        sleep(interval)
