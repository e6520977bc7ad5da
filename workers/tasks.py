# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Periodic maintenance jobs.
#
# Tasks:
# - purge_expired_trash: Permanently delete rows trashed longer than
#   TRASH_RETENTION_DAYS (scheduled daily, see workers.config)
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from app.config import settings
from core.services.trash_service import TrashService
from lib.supabase_client import SupabaseClientError

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="workers.tasks.purge_expired_trash")
def purge_expired_trash(self, user_id: str | None = None) -> dict[str, Any]:
    """
    Permanently delete rows soft-deleted more than TRASH_RETENTION_DAYS ago.

    A table that fails is skipped by TrashService.cleanup_expired; the run
    is only retried when no Supabase client can be created at all.

    Args:
        user_id: Only purge this user's trash; every user when None

    Returns:
        {"deleted_count", "retention_days"}
    """
    logger.info(f"Purging trash older than {settings.TRASH_RETENTION_DAYS} days")
    try:
        deleted = TrashService.cleanup_expired(user_id=user_id)
    except SupabaseClientError as e:
        logger.error(f"Trash purge could not reach Supabase: {e}")
        raise self.retry(exc=e)

    return {
        "deleted_count": deleted,
        "retention_days": settings.TRASH_RETENTION_DAYS,
    }
