import os
from datetime import timedelta
from celery.schedules import crontab
import logging
import ssl

config_logger = logging.getLogger(__name__)


class Config:
    """Base configuration class."""

    # Flask configuration
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-please-change")
    TESTING = os.environ.get("TESTING", "false").lower() == "true"

    # Public URLs
    BASE_URL = os.environ.get("BASE_URL", "http://localhost:5001")
    FRONTEND_URL = os.environ.get("FRONTEND_URL", BASE_URL)

    # Database configuration
    _DEFAULT_SQLITE_PATH = os.path.join(
        os.path.abspath(os.path.dirname(__file__)), "contentwell.db"
    )
    _DEFAULT_SQLALCHEMY_DATABASE_URI = "sqlite:///" + _DEFAULT_SQLITE_PATH

    database_url_env = os.environ.get("DATABASE_URL")
    if database_url_env:
        if database_url_env.startswith("postgres://"):
            # Handle Heroku-style 'postgres://' prefix
            SQLALCHEMY_DATABASE_URI = database_url_env.replace(
                "postgres://", "postgresql://", 1
            )
        else:
            SQLALCHEMY_DATABASE_URI = database_url_env
    else:
        SQLALCHEMY_DATABASE_URI = _DEFAULT_SQLALCHEMY_DATABASE_URI

    if TESTING and not database_url_env:
        SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Redis (Celery broker, pending OAuth authorizations, generation locks)
    REDIS_URL_DEFAULT = "redis://localhost:6379/0"
    REDIS_URL = os.environ.get("REDIS_URL", REDIS_URL_DEFAULT)

    REDIS_CONNECTION_KWARGS = {"decode_responses": True}
    if REDIS_URL and REDIS_URL.startswith("rediss://"):
        REDIS_CONNECTION_KWARGS["ssl_cert_reqs"] = ssl.CERT_NONE
        if "?" not in REDIS_URL:
            REDIS_URL += "?ssl_cert_reqs=none"
        else:
            REDIS_URL += "&ssl_cert_reqs=none"

    CELERY_BROKER_SSL_CONFIG = None
    CELERY_BACKEND_SSL_CONFIG = {}
    if REDIS_URL and REDIS_URL.startswith("rediss://"):
        common_ssl_params = {"ssl_cert_reqs": ssl.CERT_NONE}
        CELERY_BROKER_SSL_CONFIG = common_ssl_params
        CELERY_BACKEND_SSL_CONFIG = common_ssl_params

    CELERY = dict(
        broker_url=REDIS_URL,
        result_backend=REDIS_URL,
        broker_use_ssl=CELERY_BROKER_SSL_CONFIG,
        redis_backend_settings=CELERY_BACKEND_SSL_CONFIG,
        task_ignore_result=True,  # Default, can be overridden per task
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        task_time_limit=1800,
        worker_max_tasks_per_child=200,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        beat_schedule={
            "refresh-social-tokens-daily": {
                "task": "tasks.tokens.refresh_expiring_tokens",
                "schedule": crontab(hour=3, minute=0),
            },
        },
    )

    # Gemini
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
    GEMINI_TEXT_MODEL = os.environ.get("GEMINI_TEXT_MODEL", "gemini-2.5-pro")
    GEMINI_FAST_MODEL = os.environ.get("GEMINI_FAST_MODEL", "gemini-2.5-flash")
    GEMINI_IMAGE_MODEL = os.environ.get("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")

    # LinkedIn (confidential client)
    LINKEDIN_CLIENT_ID = os.environ.get("LINKEDIN_CLIENT_ID")
    LINKEDIN_CLIENT_SECRET = os.environ.get("LINKEDIN_CLIENT_SECRET")
    LINKEDIN_REDIRECT_URI = os.environ.get("LINKEDIN_REDIRECT_URI")

    # X / Twitter (public PKCE client, no secret)
    TWITTER_CLIENT_ID = os.environ.get("TWITTER_CLIENT_ID")
    TWITTER_REDIRECT_URI = os.environ.get("TWITTER_REDIRECT_URI")

    # Facebook app, shared by the Instagram connect flow
    FACEBOOK_CLIENT_ID = os.environ.get("FACEBOOK_CLIENT_ID")
    FACEBOOK_CLIENT_SECRET = os.environ.get("FACEBOOK_CLIENT_SECRET")
    FACEBOOK_REDIRECT_URI = os.environ.get("FACEBOOK_REDIRECT_URI")
    INSTAGRAM_REDIRECT_URI = os.environ.get("INSTAGRAM_REDIRECT_URI")

    # Google Drive
    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET")
    GOOGLE_REDIRECT_URI = os.environ.get("GOOGLE_REDIRECT_URI")

    # OAuth round-trip timing (seconds). A max age of 0 disables the state age check.
    OAUTH_STATE_MAX_AGE = int(os.environ.get("OAUTH_STATE_MAX_AGE", 900))
    OAUTH_AUTHORIZATION_TIMEOUT = int(os.environ.get("OAUTH_AUTHORIZATION_TIMEOUT", 300))
    OAUTH_RESULT_FRESHNESS = int(os.environ.get("OAUTH_RESULT_FRESHNESS", 30))

    # SmartLead
    SMARTLEAD_API_BASE = os.environ.get(
        "SMARTLEAD_API_BASE", "https://server.smartlead.ai/api/v1"
    )
    SMARTLEAD_API_KEY = os.environ.get("SMARTLEAD_API_KEY")

    # Generated image storage
    GENERATED_IMAGES_DIR = os.environ.get(
        "GENERATED_IMAGES_DIR",
        os.path.join(os.path.abspath(os.path.dirname(__file__)), "generated_images"),
    )
    IMAGE_GENERATION_LOCK_SECONDS = int(
        os.environ.get("IMAGE_GENERATION_LOCK_SECONDS", 120)
    )

    # Client-side polling cadence reported by the API
    POLL_INTERVAL_MS = int(os.environ.get("POLL_INTERVAL_MS", 5000))

    # Mail configuration
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USE_TLS = os.environ.get("MAIL_USE_TLS", "true").lower() in ["true", "on", "1"]
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "noreply@example.com")
    EMAIL_ENABLED = os.environ.get("EMAIL_ENABLED", "false").lower() == "true"

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)


if hasattr(Config, "REDIS_URL") and Config.REDIS_URL:
    config_logger.info(f"Configuration: REDIS_URL is set to: {Config.REDIS_URL}")
    if "localhost" in Config.REDIS_URL or "127.0.0.1" in Config.REDIS_URL:
        config_logger.info("Configuration: REDIS_URL appears to be a local instance.")
    elif Config.REDIS_URL.startswith("rediss://"):
        config_logger.info(
            "Configuration: REDIS_URL appears to be a secure (rediss://) instance."
        )
else:
    config_logger.warning(
        "Configuration: REDIS_URL is not defined or is empty, even after considering defaults."
    )
