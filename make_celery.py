# make_celery.py
# Builds the Flask app and exposes its Celery instance for
# `celery -A make_celery.celery worker` and `celery -A make_celery.celery beat`.

from app import create_app

flask_app = create_app()

# celery_init_app stores the configured instance on the app.
celery = flask_app.extensions["celery"]
