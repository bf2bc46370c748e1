from celery import Celery

from maskpaint.config import settings


celery_app = Celery(
    "maskpaint",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["maskpaint.tasks"],
)

celery_app.conf.update(
    task_default_queue="default",
    task_track_started=True,
    task_always_eager=settings.celery_task_always_eager,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)
