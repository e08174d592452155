import os
import time

# Set TESTING environment variable before any imports to prevent config issues
os.environ["TESTING"] = "true"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest
import requests
from unittest.mock import Mock, patch

from app import create_app, db as _db
from extensions import redis_client


class FakeRedis:
    """Dict-backed stand-in for the handful of redis-py calls the app makes."""

    def __init__(self):
        self.store = {}
        self.expiry = {}

    def _purge(self, key):
        expires_at = self.expiry.get(key)
        if expires_at is not None and expires_at <= time.time():
            self.store.pop(key, None)
            self.expiry.pop(key, None)

    def get(self, key):
        self._purge(key)
        return self.store.get(key)

    def set(self, key, value, ex=None, nx=False):
        self._purge(key)
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex:
            self.expiry[key] = time.time() + ex
        else:
            self.expiry.pop(key, None)
        return True

    def delete(self, key):
        self.expiry.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    def ttl(self, key):
        self._purge(key)
        if key not in self.store:
            return -2
        if key not in self.expiry:
            return -1
        return int(self.expiry[key] - time.time())

    def ping(self):
        return True


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """
    Session-scoped fixture that automatically sets up the test environment.
    """
    yield
    if "TESTING" in os.environ:
        del os.environ["TESTING"]


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """
    Session-scoped test Flask application.
    """
    flask_app = create_app()

    flask_app.config.update(
        {
            "TESTING": True,
            "WTF_CSRF_ENABLED": False,
            "LOGIN_DISABLED": True,
            "SERVER_NAME": "localhost.localdomain",
            "APPLICATION_ROOT": "/",
            "PREFERRED_URL_SCHEME": "http",
            "BASE_URL": "http://localhost.localdomain",
            "GENERATED_IMAGES_DIR": str(tmp_path_factory.mktemp("generated")),
            "GEMINI_API_KEY": "test-gemini-key",
            "LINKEDIN_CLIENT_ID": "linkedin-client-id",
            "LINKEDIN_CLIENT_SECRET": "linkedin-client-secret",
            "LINKEDIN_REDIRECT_URI": "http://localhost.localdomain/auth/linkedin/callback",
            "TWITTER_CLIENT_ID": "twitter-client-id",
            "TWITTER_REDIRECT_URI": "http://localhost.localdomain/auth/twitter/callback",
            "FACEBOOK_CLIENT_ID": "facebook-client-id",
            "FACEBOOK_CLIENT_SECRET": "facebook-client-secret",
            "FACEBOOK_REDIRECT_URI": "http://localhost.localdomain/auth/facebook/callback",
            "INSTAGRAM_REDIRECT_URI": "http://localhost.localdomain/auth/instagram/callback",
            "GOOGLE_CLIENT_ID": "google-client-id",
            "GOOGLE_CLIENT_SECRET": "google-client-secret",
            "GOOGLE_REDIRECT_URI": "http://localhost.localdomain/auth/google/callback",
            "SMARTLEAD_API_KEY": "smartlead-key",
            "EMAIL_ENABLED": False,
            # Disable background tasks during testing
            "CELERY_TASK_ALWAYS_EAGER": True,
            "CELERY_TASK_EAGER_PROPAGATES": True,
        }
    )

    yield flask_app


@pytest.fixture(autouse=True)
def fake_redis():
    """Every test gets an empty in-memory Redis."""
    original = redis_client.client
    redis_client.client = FakeRedis()
    yield redis_client.client
    redis_client.client = original


@pytest.fixture()
def client(app):
    """
    Function-scoped test client for making HTTP requests.
    """
    return app.test_client()


@pytest.fixture()
def db(app):
    """
    Function-scoped test database with complete isolation.
    """
    with app.app_context():
        _db.create_all()

        yield _db

        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def session(db, app):
    """
    Provides a database session for each test.
    """
    with app.app_context():
        yield _db.session


@pytest.fixture
def cli_runner(app):
    """
    Custom CLI runner for testing CLI commands.
    """
    return app.test_cli_runner()


@pytest.fixture
def user(session):
    """A persisted password user."""
    from models import User

    test_user = User(email="owner@example.com", name="Campaign Owner")
    test_user.set_password("user_password_123")
    session.add(test_user)
    session.commit()
    return test_user


@pytest.fixture
def logged_in_client(client, user):
    """Test client with `user` signed in through the login route."""
    response = client.post(
        "/auth/login",
        json={"email": user.email, "password": "user_password_123"},
    )
    assert response.status_code == 200, response.get_data(as_text=True)
    return client


@pytest.fixture
def patch_celery_delay():
    """Stop view tests from reaching a broker."""
    with patch("views.api.generate_campaign_content_task") as content_task, patch(
        "views.leads.generate_contact_emails_task"
    ) as email_task:
        content_task.delay.return_value.id = "content-task-id"
        email_task.delay.return_value.id = "email-task-id"
        yield content_task, email_task


def _make_response(status_code=200, json_data=None, text="", headers=None, content=b""):
    """A requests.Response stand-in whose raise_for_status mirrors the status."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.content = content
    response.headers = headers or {}
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def response_factory():
    """Build fake provider responses: response_factory(status, json_data=..., headers=...)."""
    return _make_response
