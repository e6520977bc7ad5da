# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# The worker only runs maintenance jobs:
# - purge-expired-trash: daily at TRASH_PURGE_HOUR (UTC) on the
#   "maintenance" queue
#
# Request handling never enqueues work, so the default queue stays idle
# unless a job is triggered by hand.
# =============================================================================

from celery.schedules import crontab

from app.config import settings

PURGE_TASK = "workers.tasks.purge_expired_trash"


class CeleryConfig:
    """
    Applied to the Celery app via app.config_from_object().
    """

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    # A purge interrupted by a worker restart is simply run again
    task_acks_late = True
    worker_prefetch_multiplier = 1

    # Deleting across every trash table of every user
    task_time_limit = 900
    task_soft_time_limit = 840

    # Purge summaries are only kept for inspection
    result_expires = 24 * 3600

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Queues
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {"exchange": "default", "routing_key": "default"},
        "maintenance": {"exchange": "maintenance", "routing_key": "maintenance"},
    }
    task_default_queue = "default"
    task_routes = {
        PURGE_TASK: {"queue": "maintenance"},
    }

    # Each table is purged independently, a failed run retries once an hour later
    task_annotations = {
        PURGE_TASK: {"max_retries": 2, "default_retry_delay": 3600},
    }

    # -------------------------------------------------------------------------
    # Schedule (celery beat)
    # -------------------------------------------------------------------------

    beat_schedule = {
        "purge-expired-trash": {
            "task": PURGE_TASK,
            "schedule": crontab(hour=settings.TRASH_PURGE_HOUR, minute=0),
        },
    }

    timezone = "UTC"
    enable_utc = True
