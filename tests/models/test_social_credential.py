from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from models import SocialCredential
from models.social_credential import REFRESH_POLICY_NONE, REFRESH_POLICY_REFRESH_TOKEN


class CredentialTestHelpers:
    @staticmethod
    def build(user, **kwargs):
        fields = {
            "user_id": user.id,
            "platform": "linkedin",
            "access_token": "token",
            "scopes": [],
            "account_metadata": {},
        }
        fields.update(kwargs)
        return SocialCredential(**fields)


@pytest.mark.unit
class TestSocialCredential:
    def test_one_row_per_user_and_platform(self, session, user):
        session.add(CredentialTestHelpers.build(user))
        session.commit()

        session.add(CredentialTestHelpers.build(user, access_token="other"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_unknown_platform_rejected(self, session, user):
        session.add(CredentialTestHelpers.build(user, platform="myspace"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_defaults(self, session, user):
        credential = CredentialTestHelpers.build(user)
        session.add(credential)
        session.commit()

        assert credential.refresh_policy == REFRESH_POLICY_NONE
        assert credential.token_type == "bearer"
        assert credential.expires_at is None
        assert credential.status() == "active"

    @pytest.mark.parametrize(
        "expires_in,policy,refresh_token,expected",
        [
            (timedelta(hours=1), REFRESH_POLICY_NONE, None, "active"),
            (timedelta(hours=-1), REFRESH_POLICY_NONE, None, "expired"),
            (timedelta(hours=-1), REFRESH_POLICY_REFRESH_TOKEN, "r", "refreshable"),
            # a refresh policy without a stored token cannot refresh
            (timedelta(hours=-1), REFRESH_POLICY_REFRESH_TOKEN, None, "expired"),
        ],
    )
    def test_status(self, user, expires_in, policy, refresh_token, expected):
        credential = CredentialTestHelpers.build(
            user,
            expires_at=datetime.utcnow() + expires_in,
            refresh_policy=policy,
            refresh_token=refresh_token,
        )
        assert credential.status() == expected

    def test_deleting_user_removes_credentials(self, session, user):
        session.add(CredentialTestHelpers.build(user))
        session.commit()

        session.delete(user)
        session.commit()

        assert SocialCredential.query.count() == 0
