"""
Tests for the LinkedIn platform manager.
"""

import pytest
from unittest.mock import patch

from helpers.platforms.base import PlatformError, ProviderProfile, ReauthRequiredError
from helpers.platforms.linkedin import (
    LINKEDIN_REGISTER_UPLOAD_URL,
    LINKEDIN_UGC_POSTS_URL,
    LINKEDIN_USERINFO_URL,
    LinkedInManager,
    UPLOAD_MECHANISM_KEY,
)
from models.social_credential import REFRESH_POLICY_NONE


class TestConstants:
    POST_ID = "urn:li:share:7000"
    IMAGE_URL = "http://localhost.localdomain/generated/campaign_1/item_0.png"
    UPLOAD_URL = "https://api.linkedin.com/mediaUpload/abc"
    ASSET = "urn:li:digitalmediaAsset:D4E"
    USERINFO = {
        "sub": "abc123",
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "picture": "https://media.licdn.com/ada.png",
    }


class LinkedInTestHelpers:
    @staticmethod
    def post_response(response_factory):
        return response_factory(
            201, json_data={}, headers={"X-Restli-Id": TestConstants.POST_ID}
        )

    @staticmethod
    def register_response(response_factory):
        return response_factory(
            200,
            json_data={
                "value": {
                    "uploadMechanism": {
                        UPLOAD_MECHANISM_KEY: {"uploadUrl": TestConstants.UPLOAD_URL}
                    },
                    "asset": TestConstants.ASSET,
                }
            },
        )


@pytest.mark.unit
class TestLinkedInProfile:
    def test_fetch_profile(self, response_factory):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(json_data=TestConstants.USERINFO),
        ) as mock_request:
            profile = LinkedInManager().fetch_profile("token")

        assert mock_request.call_args.args == ("GET", LINKEDIN_USERINFO_URL)
        assert profile.account_id == "abc123"
        assert profile.account_name == "Ada Lovelace"
        assert profile.metadata["linkedinId"] == "abc123"
        assert profile.metadata["email"] == "ada@example.com"

    def test_fetch_profile_without_sub(self, response_factory):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(json_data={"name": "No Id"}),
        ):
            with pytest.raises(PlatformError) as exc_info:
                LinkedInManager().fetch_profile("token")
        assert exc_info.value.error_code == "profile_id_missing"

    def test_profile_failure_code(self, response_factory):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(500, json_data={"message": "down"}),
        ):
            with pytest.raises(PlatformError) as exc_info:
                LinkedInManager().fetch_profile("token")
        assert exc_info.value.error_code == "profile_fetch_failed"

    def test_credential_never_refreshes(self):
        fields = LinkedInManager().build_credential_fields(
            {"access_token": "tok", "refresh_token": "ignored", "expires_in": 5184000},
            ProviderProfile(account_id="abc123", account_name="Ada"),
        )

        assert fields["refresh_token"] is None
        assert fields["refresh_policy"] == REFRESH_POLICY_NONE
        assert fields["expires_at"] is not None


@pytest.mark.unit
class TestLinkedInPosting:
    def test_text_post_uses_restli_id(self, credential, response_factory):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=LinkedInTestHelpers.post_response(response_factory),
        ) as mock_request:
            result = LinkedInManager().post_content(credential, "Hello LinkedIn")

        assert result["success"] is True
        assert result["post_id"] == TestConstants.POST_ID
        assert (
            result["post_url"]
            == f"https://www.linkedin.com/feed/update/{TestConstants.POST_ID}/"
        )

        args, kwargs = mock_request.call_args
        assert args == ("POST", LINKEDIN_UGC_POSTS_URL)
        payload = kwargs["json"]
        assert payload["author"] == "urn:li:person:acct-123"
        share = payload["specificContent"]["com.linkedin.ugc.ShareContent"]
        assert share["shareMediaCategory"] == "NONE"
        assert share["shareCommentary"]["text"] == "Hello LinkedIn"
        assert kwargs["headers"]["X-Restli-Protocol-Version"] == "2.0.0"

    def test_image_post_uploads_asset(self, credential, response_factory):
        responses = [
            LinkedInTestHelpers.register_response(response_factory),
            response_factory(200, content=b"png-bytes"),
            response_factory(201),
            LinkedInTestHelpers.post_response(response_factory),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            result = LinkedInManager().post_content(
                credential, "With image", TestConstants.IMAGE_URL
            )

        assert result["post_id"] == TestConstants.POST_ID
        calls = mock_request.call_args_list
        assert calls[0].args == ("POST", LINKEDIN_REGISTER_UPLOAD_URL)
        assert calls[1].args == ("GET", TestConstants.IMAGE_URL)
        assert calls[2].args == ("PUT", TestConstants.UPLOAD_URL)
        assert calls[2].kwargs["data"] == b"png-bytes"
        share = calls[3].kwargs["json"]["specificContent"]["com.linkedin.ugc.ShareContent"]
        assert share["shareMediaCategory"] == "IMAGE"
        assert share["media"][0]["media"] == TestConstants.ASSET

    def test_failed_image_upload_falls_back_to_text(self, credential, response_factory):
        responses = [
            response_factory(500, json_data={"message": "upload broken"}),
            LinkedInTestHelpers.post_response(response_factory),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            result = LinkedInManager().post_content(
                credential, "Fallback", TestConstants.IMAGE_URL
            )

        assert result["success"] is True
        share = mock_request.call_args.kwargs["json"]["specificContent"][
            "com.linkedin.ugc.ShareContent"
        ]
        assert share["shareMediaCategory"] == "NONE"
        assert (
            share["shareCommentary"]["text"]
            == f"Fallback\n\nImage: {TestConstants.IMAGE_URL}"
        )

    def test_rejected_token_is_not_swallowed_by_image_fallback(
        self, credential, response_factory
    ):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(401, json_data={"message": "expired"}),
        ):
            with pytest.raises(ReauthRequiredError):
                LinkedInManager().post_content(credential, "Hi", TestConstants.IMAGE_URL)

    def test_image_host_401_falls_back_to_text(self, credential, response_factory):
        responses = [
            LinkedInTestHelpers.register_response(response_factory),
            response_factory(401, json_data={"message": "signed url expired"}),
            LinkedInTestHelpers.post_response(response_factory),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            result = LinkedInManager().post_content(
                credential, "Expired link", TestConstants.IMAGE_URL
            )

        assert result["success"] is True
        assert result["post_id"] == TestConstants.POST_ID
        assert mock_request.call_count == 3
        share = mock_request.call_args.kwargs["json"]["specificContent"][
            "com.linkedin.ugc.ShareContent"
        ]
        assert share["shareMediaCategory"] == "NONE"

    def test_upload_put_401_still_requires_reauth(self, credential, response_factory):
        responses = [
            LinkedInTestHelpers.register_response(response_factory),
            response_factory(200, content=b"png-bytes"),
            response_factory(401, json_data={"message": "token revoked"}),
        ]
        with patch("helpers.platforms.base.requests.request", side_effect=responses):
            with pytest.raises(ReauthRequiredError):
                LinkedInManager().post_content(credential, "Hi", TestConstants.IMAGE_URL)

    def test_missing_account_id(self, credential):
        credential.account_id = None
        with patch("helpers.platforms.base.requests.request") as mock_request:
            with pytest.raises(PlatformError) as exc_info:
                LinkedInManager().post_content(credential, "Hi")

        assert exc_info.value.error_code == "account_id_missing"
        mock_request.assert_not_called()


@pytest.mark.unit
class TestLinkedInValidation:
    def test_over_limit(self):
        result = LinkedInManager().validate_content("x" * 3001)
        assert result["valid"] is False
        assert result["errors"] == ["Text exceeds LinkedIn limit of 3000 characters"]

    def test_near_limit_warning(self):
        result = LinkedInManager().validate_content("x" * 2600)
        assert result["valid"] is True
        assert result["warnings"] == ["Content is close to LinkedIn's character limit"]
