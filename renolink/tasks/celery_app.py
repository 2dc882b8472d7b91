from celery import Celery
from celery.schedules import crontab

from renolink.config import settings

app = Celery(
    "renolink",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "renolink.tasks.ledger_tasks.*": {"queue": "ledger"},
    },
    beat_schedule={
        "check-all-ledgers": {
            "task": "renolink.tasks.ledger_tasks.check_all_ledgers",
            "schedule": crontab(minute=settings.LEDGER_RECONCILE_CRON_MINUTE),  # hourly
        },
    },
)

app.autodiscover_tasks(["renolink.tasks.ledger_tasks"])
