from datetime import timedelta

from celery import Celery

from appointments.core.config import settings

celery_app = Celery(
    "appointments",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["appointments.tasks.expirations"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "expire-pending-bookings": {
            "task": "bookings.expire_pending",
            "schedule": timedelta(seconds=settings.expiry_sweep_interval_seconds),
        },
    },
)
