"""
Tests for the awaitable OAuth authorization relay.
"""

import json
import time

import pytest

from helpers.oauth import decode_state
from services.authorization import (
    AUTHORIZATION_KEY,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_EXPIRED,
    STATUS_FAILED,
    STATUS_PENDING,
    AuthorizationError,
    AuthorizationTimeout,
    await_authorization,
    begin_authorization,
    cancel_authorization,
    complete_authorization,
    fail_authorization,
    get_authorization,
)


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.mark.unit
class TestBeginAuthorization:
    def test_state_carries_the_pending_id(self, app_ctx, fake_redis):
        record, state = begin_authorization(3, "linkedin")

        decoded = decode_state(state)
        assert decoded.nonce == record.state_id
        assert decoded.user_id == 3
        assert decoded.platform == "linkedin"

        key = AUTHORIZATION_KEY.format(state_id=record.state_id)
        stored = json.loads(fake_redis.get(key))
        assert stored["status"] == STATUS_PENDING
        assert 0 < fake_redis.ttl(key) <= app_ctx.config["OAUTH_AUTHORIZATION_TIMEOUT"]

    def test_ids_are_unique(self, app_ctx):
        first, _ = begin_authorization(3, "x")
        second, _ = begin_authorization(3, "x")
        assert first.state_id != second.state_id


@pytest.mark.unit
class TestFinishAuthorization:
    def test_complete(self, app_ctx):
        record, _ = begin_authorization(3, "linkedin")

        complete_authorization(record.state_id, account_name="Ada")
        stored = get_authorization(record.state_id)

        assert stored.status == STATUS_COMPLETED
        assert stored.account_name == "Ada"
        assert stored.completed_at is not None

    def test_first_result_wins(self, app_ctx):
        record, _ = begin_authorization(3, "linkedin")

        fail_authorization(record.state_id, "linkedin_auth_failed", "User cancelled")
        complete_authorization(record.state_id, account_name="Ada")

        stored = get_authorization(record.state_id)
        assert stored.status == STATUS_FAILED
        assert stored.error == "linkedin_auth_failed"
        assert stored.message == "User cancelled"
        assert stored.account_name is None

    def test_unknown_state_is_not_relayed(self, app_ctx, fake_redis):
        assert complete_authorization("no-such-id", account_name="Ada") is None
        assert fake_redis.store == {}

    def test_cancel_leaves_a_marker(self, app_ctx):
        record, _ = begin_authorization(3, "x")

        cancel_authorization(record.state_id)
        complete_authorization(record.state_id, account_name="Late")

        assert get_authorization(record.state_id).status == STATUS_CANCELLED

    def test_stale_result_expires(self, app_ctx, fake_redis):
        record, _ = begin_authorization(3, "x")
        complete_authorization(record.state_id)
        freshness = app_ctx.config["OAUTH_RESULT_FRESHNESS"]

        stale = get_authorization(record.state_id, now=time.time() + freshness + 1)

        assert stale.status == STATUS_EXPIRED
        assert get_authorization(record.state_id) is None

    def test_corrupt_record_is_discarded(self, app_ctx, fake_redis):
        fake_redis.set(AUTHORIZATION_KEY.format(state_id="bad"), "{not json")
        assert get_authorization("bad") is None
        assert fake_redis.get(AUTHORIZATION_KEY.format(state_id="bad")) is None


@pytest.mark.unit
class TestAwaitAuthorization:
    def test_returns_when_completed(self, app_ctx):
        record, _ = begin_authorization(3, "linkedin")
        clock = FakeClock()

        def sleep(seconds):
            clock.sleep(seconds)
            if len(clock.sleeps) == 2:
                complete_authorization(record.state_id, account_name="Ada")

        result = await_authorization(
            record.state_id, timeout=30, interval=1, sleep=sleep, clock=clock
        )

        assert result.status == STATUS_COMPLETED
        assert clock.sleeps == [1, 1]

    def test_times_out(self, app_ctx):
        record, _ = begin_authorization(3, "linkedin")
        clock = FakeClock()

        with pytest.raises(AuthorizationTimeout):
            await_authorization(
                record.state_id, timeout=5, interval=2, sleep=clock.sleep, clock=clock
            )
        assert clock.now >= 5

    def test_unknown_authorization(self, app_ctx):
        clock = FakeClock()
        with pytest.raises(AuthorizationError, match="not found or expired"):
            await_authorization("missing", timeout=5, sleep=clock.sleep, clock=clock)
        assert clock.sleeps == []
