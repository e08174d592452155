# celery_app.py
# Target for `celery -A celery_app`. The Flask-aware Celery instance is built in
# app.py's celery_init_app; this standalone one only needs the broker settings
# and the task modules so a worker can find the tasks.

import tasks.content
import tasks.tokens

from celery import Celery
from config import Config

celery = Celery(
    __name__,
    broker=Config.REDIS_URL,
    backend=Config.REDIS_URL,
    include=[
        "tasks.content",
        "tasks.tokens",
    ],
)

# Keep the worker's settings (serializers, beat schedule) in step with the Flask app.
if hasattr(Config, "CELERY") and isinstance(Config.CELERY, dict):
    celery.conf.update(Config.CELERY)
