"""
Tests for the Facebook and Instagram platform managers.
"""

import pytest
from unittest.mock import patch

from helpers.platforms.base import ContentValidationError, PlatformError, ReauthRequiredError
from helpers.platforms.facebook import FACEBOOK_TOKEN_URL, GRAPH_API_BASE_URL, FacebookManager
from helpers.platforms.instagram import InstagramManager


class TestConstants:
    PAGE = {"id": "page-1", "name": "Bakery", "access_token": "page-token"}
    OTHER_PAGE = {"id": "page-2", "name": "Cafe", "access_token": "other-page-token"}
    IMAGE_URL = "http://localhost.localdomain/generated/campaign_1/item_0.png"


@pytest.mark.unit
class TestFacebookOAuth:
    def test_token_exchange_uses_get(self, app, response_factory):
        with app.app_context(), patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(json_data={"access_token": "fb-token"}),
        ) as mock_request:
            FacebookManager().exchange_code("code")

        args, kwargs = mock_request.call_args
        assert args == ("GET", FACEBOOK_TOKEN_URL)
        assert kwargs["params"]["client_secret"] == "facebook-client-secret"

    def test_instagram_uses_its_own_redirect_uri(self, app):
        with app.app_context():
            _, _, redirect_uri = InstagramManager().get_oauth_config()
        assert redirect_uri.endswith("/auth/instagram/callback")

    def test_scopes_are_comma_separated(self):
        fields = FacebookManager()._parse_scopes(None)
        assert fields == ["pages_show_list", "pages_manage_posts", "pages_read_engagement"]

    def test_fetch_profile_remembers_first_page(self, response_factory):
        responses = [
            response_factory(json_data={"id": "user-1", "name": "Ada"}),
            response_factory(json_data={"data": [TestConstants.PAGE, TestConstants.OTHER_PAGE]}),
        ]
        with patch("helpers.platforms.base.requests.request", side_effect=responses):
            profile = FacebookManager().fetch_profile("fb-token")

        assert profile.account_id == "user-1"
        assert profile.metadata == {"page_id": "page-1", "page_name": "Bakery"}

    def test_fetch_profile_without_page_access(self, response_factory):
        responses = [
            response_factory(json_data={"id": "user-1", "name": "Ada"}),
            response_factory(403, json_data={"error": {"message": "missing permission"}}),
        ]
        with patch("helpers.platforms.base.requests.request", side_effect=responses):
            profile = FacebookManager().fetch_profile("fb-token")

        assert profile.account_id == "user-1"
        assert profile.metadata == {}


@pytest.mark.unit
class TestFacebookPosting:
    def test_posts_to_page_chosen_at_connect(self, credential, response_factory):
        credential.account_metadata = {"page_id": "page-2"}
        responses = [
            response_factory(json_data={"data": [TestConstants.PAGE, TestConstants.OTHER_PAGE]}),
            response_factory(json_data={"id": "page-2_post-1"}),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            FacebookManager().post_content(credential, "Fresh bread")

        args, kwargs = mock_request.call_args
        assert args == ("POST", f"{GRAPH_API_BASE_URL}/page-2/feed")
        assert kwargs["data"]["access_token"] == "other-page-token"

    def test_text_post_goes_to_page_feed(self, credential, response_factory):
        responses = [
            response_factory(json_data={"data": [TestConstants.PAGE]}),
            response_factory(json_data={"id": "page-1_post-9"}),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            result = FacebookManager().post_content(credential, "Fresh bread")

        assert result["post_id"] == "page-1_post-9"
        args, kwargs = mock_request.call_args
        assert args == ("POST", f"{GRAPH_API_BASE_URL}/page-1/feed")
        assert kwargs["data"] == {"message": "Fresh bread", "access_token": "page-token"}

    def test_photo_post(self, credential, response_factory):
        responses = [
            response_factory(json_data={"data": [TestConstants.PAGE]}),
            response_factory(json_data={"id": "photo-1", "post_id": "page-1_post-10"}),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            result = FacebookManager().post_content(
                credential, "Fresh bread", TestConstants.IMAGE_URL
            )

        assert result["post_id"] == "page-1_post-10"
        assert mock_request.call_args.args == ("POST", f"{GRAPH_API_BASE_URL}/page-1/photos")

    def test_photo_failure_falls_back_to_link_post(self, credential, response_factory):
        responses = [
            response_factory(json_data={"data": [TestConstants.PAGE]}),
            response_factory(400, json_data={"error": {"message": "bad image"}}),
            response_factory(json_data={"id": "page-1_post-11"}),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            result = FacebookManager().post_content(
                credential, "Fresh bread", TestConstants.IMAGE_URL
            )

        assert result["post_id"] == "page-1_post-11"
        assert mock_request.call_args.kwargs["data"]["link"] == TestConstants.IMAGE_URL

    def test_no_pages(self, credential, response_factory):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(json_data={"data": []}),
        ):
            with pytest.raises(PlatformError) as exc_info:
                FacebookManager().post_content(credential, "Hi")

        assert exc_info.value.error_code == "no_pages"
        assert exc_info.value.status_code == 400

    def test_expired_token(self, credential, response_factory):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(
                401, json_data={"error": {"message": "Session has expired"}}
            ),
        ):
            with pytest.raises(ReauthRequiredError, match="Session has expired"):
                FacebookManager().post_content(credential, "Hi")


@pytest.mark.unit
class TestInstagramPosting:
    def test_image_is_required(self, credential):
        with patch("helpers.platforms.base.requests.request") as mock_request:
            with pytest.raises(ContentValidationError):
                InstagramManager().post_content(credential, "No image")
        mock_request.assert_not_called()

    def test_validate_requires_image(self):
        result = InstagramManager().validate_content("caption")
        assert result["errors"] == ["Instagram requires an image to publish."]

    def test_container_then_publish(self, credential, response_factory):
        responses = [
            response_factory(
                json_data={
                    "data": [
                        {"id": "page-0"},
                        {
                            "id": "page-1",
                            "access_token": "page-token",
                            "instagram_business_account": {"id": "ig-1"},
                        },
                    ]
                }
            ),
            response_factory(json_data={"id": "container-1"}),
            response_factory(json_data={"id": "media-1"}),
        ]
        with patch(
            "helpers.platforms.base.requests.request", side_effect=responses
        ) as mock_request:
            result = InstagramManager().post_content(
                credential, "Caption", TestConstants.IMAGE_URL
            )

        assert result["post_id"] == "media-1"
        calls = mock_request.call_args_list
        assert calls[1].args == ("POST", f"{GRAPH_API_BASE_URL}/ig-1/media")
        assert calls[1].kwargs["params"]["image_url"] == TestConstants.IMAGE_URL
        assert calls[2].args == ("POST", f"{GRAPH_API_BASE_URL}/ig-1/media_publish")
        assert calls[2].kwargs["params"]["creation_id"] == "container-1"

    def test_no_business_account(self, credential, response_factory):
        with patch(
            "helpers.platforms.base.requests.request",
            return_value=response_factory(json_data={"data": [{"id": "page-0"}]}),
        ):
            with pytest.raises(PlatformError) as exc_info:
                InstagramManager().post_content(credential, "Caption", TestConstants.IMAGE_URL)

        assert exc_info.value.error_code == "no_instagram_account"
