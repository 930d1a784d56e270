"""Celery application instance shared across the backend.

Start a worker and the scheduler with:
    celery -A app.celery_app worker -Q compliance -l info --concurrency=2
    celery -A app.celery_app beat -l info
"""

from celery import Celery
from celery.schedules import crontab

from config import settings

BROKER_URL = settings.REDIS_URL

celery_app = Celery("compliance_calendar", broker=BROKER_URL, backend=BROKER_URL)

# Global task settings
celery_app.conf.task_acks_late = True
celery_app.conf.task_reject_on_worker_lost = True
celery_app.conf.task_default_retry_delay = 30  # seconds
celery_app.conf.timezone = settings.DEFAULT_TIMEZONE
celery_app.conf.enable_utc = True

celery_app.conf.task_routes = {
    "app.workers.compliance.*": {"queue": "compliance"},
}

celery_app.conf.beat_schedule = {
    "dispatch-compliance-reminders": {
        "task": "app.workers.compliance.dispatch_reminders",
        "schedule": crontab(minute=0),
    },
    "sweep-missed-compliance": {
        "task": "app.workers.compliance.sweep_missed",
        "schedule": crontab(minute=0, hour=0),
    },
    "materialize-recurring-compliance": {
        "task": "app.workers.compliance.materialize_recurring",
        "schedule": crontab(minute=0, hour=3, day_of_week="sun"),
    },
    "purge-sent-reminders": {
        "task": "app.workers.compliance.purge_sent_reminders",
        "schedule": crontab(minute=30, hour=1),
    },
}

# --- Ensure tasks are registered ---
import app.workers.compliance  # noqa: E402,F401
