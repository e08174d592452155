import pytest


@pytest.mark.unit
class TestCeleryWiring:
    def test_flask_celery_instance(self, app):
        celery = app.extensions["celery"]

        assert "tasks.content.generate_campaign_content_task" in celery.tasks
        assert "tasks.tokens.refresh_expiring_tokens" in celery.tasks
        assert celery.conf.task_serializer == "json"

    def test_worker_target_shares_beat_schedule(self):
        import celery_app

        schedule = celery_app.celery.conf.beat_schedule
        assert schedule["refresh-social-tokens-daily"]["task"] == (
            "tasks.tokens.refresh_expiring_tokens"
        )
        assert "tasks.tokens" in celery_app.celery.conf.include

    def test_make_celery_exposes_app_instance(self, app):
        import make_celery

        try:
            assert make_celery.celery is make_celery.flask_app.extensions["celery"]
        finally:
            # Building a second app made its Celery instance the default.
            app.extensions["celery"].set_default()
