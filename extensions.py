from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_mail import Mail
import redis

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
mail = Mail()


class RedisClient:
    """Thin wrapper that degrades to no-ops when Redis is unreachable."""

    def __init__(self):
        self.client = None

    def init_app(self, app):
        redis_url = app.config.get("REDIS_URL")
        redis_kwargs = app.config.get("REDIS_CONNECTION_KWARGS", {}).copy()
        redis_kwargs.setdefault("decode_responses", True)

        if not redis_url:
            app.logger.warning(
                "RedisClient: REDIS_URL is not configured. Client will not be initialized."
            )
            self.client = None
            return

        app.logger.info(f"RedisClient: Attempting to connect using REDIS_URL: {redis_url}")

        try:
            self.client = redis.from_url(redis_url, **redis_kwargs)
            self.client.ping()
            app.logger.info(
                f"RedisClient: Successfully connected to Redis at {redis_url} and received PONG."
            )
        except redis.exceptions.ConnectionError as e:
            app.logger.error(
                f"RedisClient: Failed to connect to Redis at '{redis_url}'. ConnectionError: {e}"
            )
            self.client = None
        except Exception as e:
            app.logger.error(
                f"RedisClient: An unexpected error occurred while connecting to Redis at '{redis_url}': {e}"
            )
            self.client = None

    @property
    def available(self):
        return self.client is not None

    def get(self, key):
        if not self.client:
            return None
        return self.client.get(key)

    def set(self, key, value, ex=None, nx=False):
        if not self.client:
            return None
        return self.client.set(key, value, ex=ex, nx=nx)

    def delete(self, key):
        if not self.client:
            return None
        return self.client.delete(key)

    def ttl(self, key):
        if not self.client:
            return None
        return self.client.ttl(key)


redis_client = RedisClient()

login_manager.login_view = "auth.login"
login_manager.login_message_category = "info"
