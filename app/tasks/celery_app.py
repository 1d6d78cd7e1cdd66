from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

celery_app = Celery(
    "rank_monitor",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# Celery Beat schedule: one ranking pass per day, cache cleanup once a day
celery_app.conf.beat_schedule = {
    "check-all-rankings": {
        "task": "check_all_rankings",
        "schedule": crontab(hour=settings.rank_check_hour, minute=settings.rank_check_minute),
    },
    "clean-expired-cache": {
        "task": "clean_expired_cache",
        "schedule": crontab(hour=3, minute=30),
    },
}

# Auto-discover tasks from tasks modules
celery_app.autodiscover_tasks(["app.tasks"])

# Explicit include as fallback for autodiscover (needed for CLI worker startup)
celery_app.conf.include = [
    "app.tasks.rank_tasks",
    "app.tasks.maintenance_tasks",
]
