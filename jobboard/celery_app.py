"""
ART Job Board - Celery Configuration

Celery configuration for background task processing.
Uses Redis as the message broker and result backend.
"""

from celery import Celery
from celery.schedules import crontab

from jobboard.config import settings


# Create Celery app
celery_app = Celery(
    'art_jobboard',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['jobboard.tasks.celery_tasks'],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    # Timezone
    timezone=settings.celery_timezone,
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=600,  # 10 minutes
    task_soft_time_limit=540,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=86400,  # 24 hours

    # Beat schedule for periodic tasks
    beat_schedule={
        # Previous month's tiers, early on the 1st
        'evaluate-monthly-tiers': {
            'task': 'jobboard.tasks.celery_tasks.evaluate_monthly_tiers_task',
            'schedule': crontab(day_of_month=1, hour=1, minute=0),
        },
    },
)
