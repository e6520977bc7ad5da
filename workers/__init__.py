# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# background maintenance jobs.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (trash purge)
# - config.py: Worker-specific settings and beat schedule
#
# Usage:
#   # Start worker with the scheduler
#   celery -A workers.celery_app worker --beat --loglevel=info
#
#   # Purge now (from API or shell)
#   from workers.tasks import purge_expired_trash
#   result = purge_expired_trash.delay()
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
