from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

broker_url = settings.REDIS_URL or "redis://localhost:6379/0"

celery_app = Celery(
    "competitor_intel",
    broker=broker_url,
    backend=broker_url,
)

celery_app.conf.update(
    task_routes={"app.services.jobs.run_agent_job": {"queue": "agents"}},
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("app.services.jobs",),
    beat_schedule={
        # Keep only the newest JOB_HISTORY_KEEP completed jobs per user
        "cleanup-old-jobs": {
            "task": "app.services.jobs.cleanup_old_jobs",
            "schedule": crontab(hour=3, minute=0),
        },
        "crawl-due-domains": {
            "task": "app.services.jobs.crawl_due_domains",
            "schedule": crontab(minute=5),
        },
        "fail-stale-jobs": {
            "task": "app.services.jobs.fail_stale_jobs",
            "schedule": crontab(minute="*/15"),
        },
    },
)
