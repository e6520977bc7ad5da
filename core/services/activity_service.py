# =============================================================================
# core/services/activity_service.py - Activity Log
# =============================================================================
# Records who did what on which entity, for the dashboard timeline.
# Logging is best effort: a failed write never fails the operation that
# triggered it.
# =============================================================================

import logging
from typing import Literal
from uuid import UUID

from postgrest.exceptions import APIError

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

ActivityAction = Literal["create", "update", "delete", "restore", "status_change"]


class ActivityService:
    """Writes rows into activity_logs."""

    @staticmethod
    def log(
        user_id: UUID | str,
        action: ActivityAction,
        entity_type: str,
        entity_id: UUID | str,
        entity_title: str | None = None,
    ) -> None:
        """
        Append an entry to the activity log.

        Args:
            user_id: Acting user
            action: What happened
            entity_type: "deal", "mission", "client", "expense", ...
            entity_id: Affected row
            entity_title: Display label at the time of the action
        """
        client = SupabaseClient.get_client()
        try:
            client.table("activity_logs").insert({
                "user_id": normalize_uuid(user_id),
                "action": action,
                "entity_type": entity_type,
                "entity_id": normalize_uuid(entity_id),
                "entity_title": entity_title,
            }).execute()
        except (APIError, SupabaseClientError) as e:
            logger.warning(f"Failed to log {action} on {entity_type} {entity_id}: {e}")
