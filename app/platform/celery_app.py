from celery import Celery
from kombu import Queue

from app.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - scan.execution: Full scan runs (one browser per run)
    - celery: Periodic tasks (scheduled-scan sweep)
    """
    celery_app = Celery(
        "accessibility_scanner",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=settings.CELERY_TASK_TRACK_STARTED,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        result_expires=3600,

        task_routes={
            "app.features.scan.workers.tasks.run_scan": {"queue": "scan.execution"},
            "app.features.scan.workers.periodic_tasks.run_expired_scans": {"queue": "celery"},
        },

        task_queues=(
            Queue("default"),
            Queue("celery"),
            Queue("scan.execution"),
        ),

        task_default_queue="default",

        # One browser per worker process at a time
        worker_prefetch_multiplier=1,

        # Scans are not retried: acknowledge on receipt
        task_acks_late=False,

        beat_schedule={
            "run-expired-scans": {
                "task": "app.features.scan.workers.periodic_tasks.run_expired_scans",
                "schedule": settings.SCHEDULER_SWEEP_INTERVAL,
            },
        },
    )

    celery_app.autodiscover_tasks(["app.features.scan.workers"])

    return celery_app


celery_app = create_celery_app()
