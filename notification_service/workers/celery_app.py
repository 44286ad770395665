from celery import Celery
from celery.schedules import crontab

from notification_service.core.config import settings

# Create Celery instance
celery_app = Celery(
    "notification_service",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        'notification_service.workers.tasks',
    ]
)

# Configure Celery
celery_app.conf.update(
    # Task serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Task routing
    task_routes={
        'notification_service.workers.tasks.*': {'queue': 'notification_tasks'},
    },

    # Worker configuration, sized independently of the API process
    worker_concurrency=settings.DISPATCH_WORKER_CONCURRENCY,
    worker_prefetch_multiplier=1,
    task_acks_late=True,

    # Beat schedule for periodic tasks
    beat_schedule={
        "consume-dispatch-queue": {
            "task": "notification_service.workers.tasks.consume_dispatch_queue",
            "schedule": 2.0,
        },
        # Move due retries back onto the dispatch queue
        "pump-delayed-queue": {
            "task": "notification_service.workers.tasks.pump_delayed_queue",
            "schedule": 5.0,
        },
        "sweep-processing-queue": {
            "task": "notification_service.workers.tasks.sweep_processing_queue",
            "schedule": 30.0,
        },
        "requeue-stale-notifications": {
            "task": "notification_service.workers.tasks.requeue_stale_notifications",
            "schedule": 60.0,
        },
        "purge-terminal-notifications": {
            "task": "notification_service.workers.tasks.purge_terminal_notifications",
            "schedule": crontab(hour=3, minute=0),  # Daily at 3 AM
        },
    },
)
