# =============================================================================
# core/services/trash_service.py - Trash (soft-deleted rows)
# =============================================================================
# Lists, restores and permanently deletes soft-deleted rows across every
# trash-enabled table (see core.models.trash.TRASH_TABLES).
#
# Bulk operations (empty, cleanup) go table by table: a failing table is
# logged and skipped so the others are still processed.
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError

from app.config import settings
from app.exceptions import NotFoundError
from core.models.trash import TRASH_TABLES, TrashEntityType
from core.services.activity_service import ActivityService
from core.services.client_service import contact_full_name
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import normalize_uuid, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


def days_remaining(deleted_at: str | datetime, now: datetime | None = None) -> int:
    """Whole days left before the purge job removes a trashed row."""
    elapsed = (now or utc_now()) - parse_timestamp(deleted_at)
    return max(0, settings.TRASH_RETENTION_DAYS - elapsed.days)


def trash_title(entity_type: TrashEntityType, row: dict[str, Any]) -> str:
    """Display label of a trashed row."""
    if entity_type == TrashEntityType.CONTACT:
        return contact_full_name(row)
    if entity_type == TrashEntityType.CLIENT:
        return row.get("nom") or ""
    if entity_type in (TrashEntityType.QUOTE, TrashEntityType.INVOICE):
        return row.get("numero") or ""
    return row.get("title") or ""


class TrashService:
    """
    Service for trash operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def list_trashed(user_id: UUID | str) -> list[dict[str, Any]]:
        """
        Every trashed row of the user, most recently deleted first.

        Returns:
            [{id, entity_type, title, deleted_at, days_remaining}, ...]
        """
        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)
        now = utc_now()
        items: list[dict[str, Any]] = []

        for entity_type, meta in TRASH_TABLES.items():
            rows = (
                client.table(meta["table"])
                .select(meta["columns"])
                .eq(meta["owner"], user_id_str)
                .not_.is_("deleted_at", "null")
                .order("deleted_at", desc=True)
                .execute()
            ).data or []

            items.extend(
                {
                    "id": row["id"],
                    "entity_type": entity_type.value,
                    "title": trash_title(entity_type, row),
                    "deleted_at": row["deleted_at"],
                    "days_remaining": days_remaining(row["deleted_at"], now),
                }
                for row in rows
            )

        items.sort(key=lambda item: parse_timestamp(item["deleted_at"]), reverse=True)
        return items

    @staticmethod
    def restore(user_id: UUID | str, entity_type: TrashEntityType, entity_id: UUID | str) -> dict[str, Any]:
        """
        Take a row out of the trash.

        Raises:
            NotFoundError: If the row isn't in the user's trash
        """
        meta = TRASH_TABLES[entity_type]
        client = SupabaseClient.get_client()
        row = first_row(
            client.table(meta["table"])
            .update({"deleted_at": None})
            .eq("id", normalize_uuid(entity_id))
            .eq(meta["owner"], normalize_uuid(user_id))
            .not_.is_("deleted_at", "null")
            .execute()
        )
        if row is None:
            raise NotFoundError(entity_type.value, str(entity_id))

        logger.info(f"Restored {entity_type.value} {entity_id}")
        ActivityService.log(user_id, "restore", entity_type.value, row["id"], trash_title(entity_type, row))
        return row

    @staticmethod
    def permanently_delete(user_id: UUID | str, entity_type: TrashEntityType, entity_id: UUID | str) -> None:
        """
        Delete a trashed row for good. Active rows are never touched.

        Raises:
            NotFoundError: If the row isn't in the user's trash
        """
        meta = TRASH_TABLES[entity_type]
        response = (
            SupabaseClient.get_client()
            .table(meta["table"])
            .delete()
            .eq("id", normalize_uuid(entity_id))
            .eq(meta["owner"], normalize_uuid(user_id))
            .not_.is_("deleted_at", "null")
            .execute()
        )
        if not response.data:
            raise NotFoundError(entity_type.value, str(entity_id))
        logger.info(f"Permanently deleted {entity_type.value} {entity_id}")

    @staticmethod
    def empty_trash(user_id: UUID | str) -> int:
        """Permanently delete every trashed row of the user; returns the count."""
        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)
        total = 0

        for entity_type, meta in TRASH_TABLES.items():
            try:
                response = (
                    client.table(meta["table"])
                    .delete()
                    .eq(meta["owner"], user_id_str)
                    .not_.is_("deleted_at", "null")
                    .execute()
                )
            except (APIError, SupabaseClientError) as e:
                logger.error(f"Empty trash failed for {meta['table']}: {e}")
                continue
            total += len(response.data or [])

        logger.info(f"Emptied trash for user {user_id}: {total} rows")
        return total

    @staticmethod
    def cleanup_expired(user_id: UUID | str | None = None, now: datetime | None = None) -> int:
        """
        Permanently delete rows trashed longer than the retention period.

        Args:
            user_id: Only this user's rows; all users when None (purge job)
            now: Reference time, defaults to the current UTC time

        Returns:
            Number of deleted rows
        """
        cutoff = ((now or utc_now()) - timedelta(days=settings.TRASH_RETENTION_DAYS)).isoformat()
        client = SupabaseClient.get_client()
        total = 0

        for meta in TRASH_TABLES.values():
            query = client.table(meta["table"]).delete().lt("deleted_at", cutoff)
            if user_id is not None:
                query = query.eq(meta["owner"], normalize_uuid(user_id))
            try:
                response = query.execute()
            except (APIError, SupabaseClientError) as e:
                logger.error(f"Trash cleanup failed for {meta['table']}: {e}")
                continue
            total += len(response.data or [])

        logger.info(f"Trash cleanup removed {total} rows older than {cutoff}")
        return total
