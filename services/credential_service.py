import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError

from extensions import db
from helpers.content_generator import Platform
from models.social_credential import (
    SocialCredential,
    REFRESH_POLICY_NONE,
    REFRESH_POLICY_REFRESH_TOKEN,
)

logger = logging.getLogger(__name__)

CREDENTIAL_FIELDS = (
    "access_token",
    "refresh_token",
    "refresh_policy",
    "token_type",
    "expires_at",
    "scopes",
    "account_id",
    "account_name",
)


def _platform_value(platform) -> str:
    if isinstance(platform, Platform):
        return platform.value
    return Platform.from_name(platform).value


def get_credential(user_id: int, platform):
    """Return the stored credential for (user, platform), or None."""
    return SocialCredential.query.filter_by(
        user_id=user_id, platform=_platform_value(platform)
    ).first()


def list_credentials(user_id: int):
    return (
        SocialCredential.query.filter_by(user_id=user_id)
        .order_by(SocialCredential.platform)
        .all()
    )


def _apply_fields(credential, fields):
    for name in CREDENTIAL_FIELDS:
        if name in fields:
            setattr(credential, name, fields[name])
    if "metadata" in fields:
        credential.account_metadata = fields["metadata"] or {}
    if not credential.token_type:
        credential.token_type = "bearer"
    if not credential.refresh_token:
        credential.refresh_policy = REFRESH_POLICY_NONE


def upsert_credential(user_id: int, platform, fields: dict) -> SocialCredential:
    """
    Insert or overwrite the credential for (user_id, platform).

    Re-connecting replaces the previous token in place, so at most one row
    exists per pair. A concurrent insert that trips the unique constraint is
    retried once as an update.
    """
    platform_value = _platform_value(platform)

    for attempt in range(2):
        credential = SocialCredential.query.filter_by(
            user_id=user_id, platform=platform_value
        ).first()
        created = credential is None
        if created:
            credential = SocialCredential(user_id=user_id, platform=platform_value)
            db.session.add(credential)

        _apply_fields(credential, fields)
        credential.updated_at = datetime.utcnow()

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if attempt == 0 and created:
                logger.warning(
                    f"Concurrent credential insert for user {user_id} on {platform_value}; retrying as update"
                )
                continue
            raise
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            f"{'Created' if created else 'Updated'} {platform_value} credential for user {user_id}"
        )
        return credential


def apply_refreshed_tokens(credential: SocialCredential, token_data: dict) -> SocialCredential:
    """Store the result of a token refresh on an existing credential."""
    credential.access_token = token_data["access_token"]
    if token_data.get("refresh_token"):
        credential.refresh_token = token_data["refresh_token"]
        credential.refresh_policy = REFRESH_POLICY_REFRESH_TOKEN
    expires_in = token_data.get("expires_in")
    credential.expires_at = (
        datetime.utcnow() + timedelta(seconds=int(expires_in)) if expires_in else None
    )
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        f"Refreshed {credential.platform} token for user {credential.user_id}"
    )
    return credential


def delete_credential(user_id: int, platform) -> bool:
    """Delete the credential for (user, platform). Returns False if none existed."""
    credential = get_credential(user_id, platform)
    if not credential:
        return False
    try:
        db.session.delete(credential)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"Deleted {credential.platform} credential for user {user_id}")
    return True
