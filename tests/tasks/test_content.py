import pytest
from unittest.mock import patch, MagicMock

from helpers.content_generator import ContactEmail, ContentGenerationError
from models import Campaign, Contact, GeneratedContent, GeneratedEmail
from tasks.content import generate_campaign_content_task, generate_contact_emails_task


# --- Test Constants ---
class TestConstants:
    """Test constants for consistent data across tests."""

    MISSING_CAMPAIGN_ID = 999999

    GENERATED_ITEMS = [
        {"content_type": "blog", "generated_text": "Blog body", "metadata": {"title": "Blog"}},
        {
            "content_type": "social",
            "subtype": "linkedin",
            "generated_text": "Post",
            "metadata": {"title": "LinkedIn"},
        },
    ]


# --- Test Helpers ---
class TaskTestHelpers:
    """Helper methods for testing."""

    @staticmethod
    def create_campaign(session, user, **kwargs):
        defaults = {
            "user_id": user.id,
            "name": "Auto Launch",
            "idea": "CRM for bakeries",
            "brand_voice": "Warm",
            "mode": "auto",
            "content_types": {"blog": True, "socialPosts": True, "webpages": False},
            "platforms": {"linkedin": True},
        }
        defaults.update(kwargs)
        campaign = Campaign(**defaults)
        session.add(campaign)
        session.commit()
        return campaign


@pytest.mark.unit
class TestTaskConfiguration:
    def test_content_task_configuration(self):
        task = generate_campaign_content_task

        assert task.ignore_result is False
        assert task.name == "tasks.content.generate_campaign_content_task"

    def test_email_task_configuration(self):
        assert generate_contact_emails_task.name == "tasks.content.generate_contact_emails_task"


class TestGenerateCampaignContentTask:
    @patch("tasks.content.ContentGenerator")
    def test_saves_generated_items(self, mock_generator_class, session, user):
        campaign = TaskTestHelpers.create_campaign(session, user)
        mock_generator = MagicMock()
        mock_generator.generate_campaign_content.return_value = TestConstants.GENERATED_ITEMS
        mock_generator_class.from_config.return_value = mock_generator

        result = generate_campaign_content_task.run(campaign.id)

        assert result == 2
        saved = GeneratedContent.query.filter_by(campaign_id=campaign.id).all()
        assert {item.content_type for item in saved} == {"blog", "social"}
        assert any(item.platform == "linkedin" for item in saved)

    @patch("tasks.content.ContentGenerator")
    def test_missing_campaign(self, mock_generator_class, session):
        assert generate_campaign_content_task.run(TestConstants.MISSING_CAMPAIGN_ID) is None
        mock_generator_class.from_config.assert_not_called()

    @patch("tasks.content.ContentGenerator")
    def test_generation_error_fails_after_one_call(self, mock_generator_class, session, user):
        campaign = TaskTestHelpers.create_campaign(session, user)
        mock_generate = mock_generator_class.from_config.return_value.generate_campaign_content
        mock_generate.side_effect = ContentGenerationError("Gemini returned invalid JSON")

        with pytest.raises(ContentGenerationError, match="invalid JSON"):
            generate_campaign_content_task.run(campaign.id)

        mock_generate.assert_called_once()
        assert GeneratedContent.query.count() == 0

    @patch("tasks.content.ContentGenerator")
    def test_apply_does_not_retry(self, mock_generator_class, session, user):
        campaign = TaskTestHelpers.create_campaign(session, user)
        mock_generate = mock_generator_class.from_config.return_value.generate_campaign_content
        mock_generate.side_effect = ContentGenerationError("bad json")

        result = generate_campaign_content_task.apply(args=(campaign.id,), throw=False)

        assert result.failed()
        assert isinstance(result.result, ContentGenerationError)
        assert mock_generate.call_count == 1


class TestGenerateContactEmailsTask:
    @patch("tasks.content.ContentGenerator")
    def test_generates_emails(self, mock_generator_class, session, user):
        campaign = TaskTestHelpers.create_campaign(session, user, mode="review")
        session.add(
            Contact(
                campaign_id=campaign.id,
                first_name="Ada",
                last_name="Lovelace",
                email="ada@example.com",
                company="Acme",
                title="CTO",
                raw_data={},
            )
        )
        session.commit()
        mock_generator_class.from_config.return_value.generate_contact_email.return_value = (
            ContactEmail(subject="Hi", body="Hello Ada", research_summary="Role-based")
        )

        result = generate_contact_emails_task.run(campaign.id)

        assert result == {"generated": 1, "failed": 0}
        assert GeneratedEmail.query.filter_by(campaign_id=campaign.id).count() == 1

    def test_missing_campaign(self, session):
        assert generate_contact_emails_task.run(TestConstants.MISSING_CAMPAIGN_ID) is None

    @patch("tasks.content.ContentGenerator")
    def test_config_error_propagates(self, mock_generator_class, session, user):
        campaign = TaskTestHelpers.create_campaign(session, user, mode="review")
        mock_generator_class.from_config.side_effect = ContentGenerationError(
            "GEMINI_API_KEY is not configured"
        )

        with pytest.raises(ContentGenerationError, match="not configured"):
            generate_contact_emails_task.run(campaign.id)

        assert GeneratedEmail.query.count() == 0
