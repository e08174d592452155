from celery import shared_task
from flask import current_app, render_template
from flask_mail import Message
from datetime import datetime, timedelta
import logging

from models import SocialCredential
from extensions import mail, redis_client
from helpers.platforms import PlatformError, get_platform_manager
from services.credential_service import apply_refreshed_tokens

logger = logging.getLogger(__name__)

REFRESH_WINDOW = timedelta(days=1)
RECONNECT_NOTICE_KEY = "reconnect_notice_sent:{credential_id}"


def send_reconnect_email(credential) -> bool:
    """Email the credential's owner asking them to reconnect. Sent once per credential."""
    if not current_app.config.get("EMAIL_ENABLED"):
        logger.info("Email sending is disabled (EMAIL_ENABLED is False)")
        return False

    notice_key = RECONNECT_NOTICE_KEY.format(credential_id=credential.id)
    if redis_client.get(notice_key):
        logger.info(f"Reconnect email already sent for credential {credential.id}")
        return False

    user = credential.user
    manager = get_platform_manager(credential.platform)
    base_url = current_app.config.get("BASE_URL", "").rstrip("/")
    connect_path = "twitter" if credential.platform == "x" else credential.platform

    try:
        html = render_template(
            "emails/reconnect_platform.html",
            user=user,
            platform_name=manager.display_name,
            connect_url=f"{base_url}/auth/{connect_path}/connect",
        )
        msg = Message(
            subject=f"Reconnect your {manager.display_name} account",
            sender=current_app.config["MAIL_DEFAULT_SENDER"],
            recipients=[user.email],
            html=html,
        )
        mail.send(msg)
    except Exception as e:
        logger.error(f"Failed to send reconnect email to user {user.id}: {str(e)}")
        return False

    redis_client.set(notice_key, datetime.utcnow().isoformat(), ex=30 * 24 * 3600)
    logger.info(f"Sent {credential.platform} reconnect email to user {user.id}")
    return True


@shared_task(name="tasks.tokens.refresh_expiring_tokens", ignore_result=True)
def refresh_expiring_tokens():
    """
    Refresh credentials that expire within the next day.

    Credentials that cannot be refreshed (no refresh token, or the provider
    rejected the refresh) and have already expired trigger a reconnect email.
    """
    now = datetime.utcnow()
    threshold = now + REFRESH_WINDOW

    credentials = SocialCredential.query.filter(
        SocialCredential.expires_at.isnot(None),
        SocialCredential.expires_at < threshold,
    ).all()

    if not credentials:
        logger.info("No credentials found that are expiring soon.")
        return {"refreshed": 0, "failed": 0, "notified": 0}

    logger.info(f"Found {len(credentials)} credential(s) expiring before {threshold}.")
    refreshed = 0
    failed = 0
    notified = 0

    for credential in credentials:
        if not credential.can_refresh:
            if credential.is_expired(now) and send_reconnect_email(credential):
                notified += 1
            continue

        try:
            manager = get_platform_manager(credential.platform)
            token_data = manager.refresh_access_token(credential.refresh_token)
            apply_refreshed_tokens(credential, token_data)
            refreshed += 1
        except PlatformError as e:
            logger.warning(
                f"Failed to refresh {credential.platform} token for user {credential.user_id}: {e.message}"
            )
            failed += 1
            if credential.is_expired(now) and send_reconnect_email(credential):
                notified += 1
        except Exception as e:
            logger.error(
                f"Unexpected error refreshing credential {credential.id}: {str(e)}"
            )
            failed += 1

    logger.info(
        f"Token refresh task completed. Refreshed: {refreshed}, Failed: {failed}, Notified: {notified}."
    )
    return {"refreshed": refreshed, "failed": failed, "notified": notified}
