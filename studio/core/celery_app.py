"""Celery application for background tasks (thumbnail generation)."""
from celery import Celery
from celery.signals import worker_process_init

from studio.core.config import settings
from studio.core.logging import setup_logging

celery_app = Celery(
    "studio",
    broker=settings.CELERY_BROKER_URL,
    include=["studio.workers.thumbnails"],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)


@worker_process_init.connect
def _init_worker_logging(**_kwargs) -> None:
    setup_logging()
