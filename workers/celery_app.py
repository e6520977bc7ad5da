# =============================================================================
# workers/celery_app.py - Celery Application
# =============================================================================
# Creates the Celery instance that runs the maintenance jobs.
#
# Usage:
#   # Worker and scheduler in one process (enough for the daily purge)
#   celery -A workers.celery_app worker --beat -Q default,maintenance --loglevel=info
#
#   # Check status
#   celery -A workers.celery_app status
# =============================================================================

import logging

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, worker_ready
from dotenv import load_dotenv

# .env values must be in the environment before app.config is imported
load_dotenv()

from app.config import settings  # noqa: E402
from lib.supabase_client import SupabaseClient  # noqa: E402

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _redact(url: str) -> str:
    """Broker URL without credentials, for logs."""
    return url.split("@")[-1] if "@" in url else url


def create_celery_app() -> Celery:
    """
    Create the worker application.

    Broker and result backend both use REDIS_URL; the rest of the
    configuration lives in workers.config.CeleryConfig.
    """
    app = Celery(
        "verifolio_worker",
        broker=settings.REDIS_URL,
        backend=settings.REDIS_URL,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")

    logger.info(f"Celery app created with broker: {_redact(settings.REDIS_URL)}")
    return app


celery_app = create_celery_app()


@celery_app.task(bind=True, name="workers.healthcheck")
def healthcheck(self):
    """
    Report that a worker is consuming and how long trash is kept.

    Usage:
        from workers.celery_app import healthcheck
        healthcheck.delay().get(timeout=5)
    """
    return {"status": "OK", "retention_days": settings.TRASH_RETENTION_DAYS}


# =============================================================================
# Celery Signals (Lifecycle Hooks)
# =============================================================================

@worker_ready.connect
def worker_ready_handler(sender=None, **extra):
    """Log the schedule the worker will follow."""
    for name, entry in celery_app.conf.beat_schedule.items():
        logger.info(f"Scheduled job {name}: {entry['task']} at {entry['schedule']}")


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **extra):
    """Log when a task starts."""
    logger.info(f"Task started: {task.name} [{task_id}]")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **extra):
    """Log the task outcome and drop the Supabase client it used."""
    logger.info(f"Task completed: {task.name} [{task_id}] - State: {state} - Result: {retval}")
    # Jobs run once a day, a fresh client per run avoids stale connections
    SupabaseClient.reset()


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, **extra):
    """Log when a task fails."""
    logger.error(f"Task failed: {sender.name} [{task_id}] - Error: {exception}")


if __name__ == "__main__":
    celery_app.start()
