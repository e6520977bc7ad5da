# =============================================================================
# core/services/label_service.py - Tags & Badges
# =============================================================================
# Deals, missions and tasks carry free-text tags and badges stored in
# <entity>_tags / <entity>_badges with a unique (entity_id, tag|badge)
# constraint. Ownership of the parent entity is checked by the caller.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError
from core.services.common import insert_unique
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)


class LabelService:
    """
    Tag and badge operations for one entity kind.

    Example:
        deal_labels = LabelService("deal")
        deal_labels.add_tag(deal_id, "web", "blue")
    """

    def __init__(self, entity: str):
        self.entity = entity
        self.fk = f"{entity}_id"
        self.tags_table = f"{entity}_tags"
        self.badges_table = f"{entity}_badges"

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    def list_tags(self, entity_id: UUID | str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table(self.tags_table)
            .select("*")
            .eq(self.fk, normalize_uuid(entity_id))
            .execute()
        ).data or []

    def add_tag(self, entity_id: UUID | str, tag: str, color: str = "gray") -> dict[str, Any]:
        """
        Add a tag.

        Raises:
            ConflictError: If the entity already has this tag
        """
        row = insert_unique(
            self.tags_table,
            {self.fk: normalize_uuid(entity_id), "tag": tag, "color": color},
            f"This tag already exists on this {self.entity}",
        )
        logger.info(f"Added tag '{tag}' to {self.entity} {entity_id}")
        return row

    def remove_tag(self, entity_id: UUID | str, tag: str) -> None:
        client = SupabaseClient.get_client()
        response = (
            client.table(self.tags_table)
            .delete()
            .eq(self.fk, normalize_uuid(entity_id))
            .eq("tag", tag)
            .execute()
        )
        if not response.data:
            raise NotFoundError("tag", tag)

    # -------------------------------------------------------------------------
    # Badges
    # -------------------------------------------------------------------------

    def list_badges(self, entity_id: UUID | str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table(self.badges_table)
            .select("*")
            .eq(self.fk, normalize_uuid(entity_id))
            .execute()
        ).data or []

    def add_badge(
        self,
        entity_id: UUID | str,
        badge: str,
        variant: str = "default",
    ) -> dict[str, Any]:
        """
        Add a badge.

        Raises:
            ConflictError: If the entity already has this badge
        """
        row = insert_unique(
            self.badges_table,
            {self.fk: normalize_uuid(entity_id), "badge": badge, "variant": variant},
            f"This badge already exists on this {self.entity}",
        )
        logger.info(f"Added badge '{badge}' to {self.entity} {entity_id}")
        return row

    def remove_badge(self, entity_id: UUID | str, badge: str) -> None:
        client = SupabaseClient.get_client()
        response = (
            client.table(self.badges_table)
            .delete()
            .eq(self.fk, normalize_uuid(entity_id))
            .eq("badge", badge)
            .execute()
        )
        if not response.data:
            raise NotFoundError("badge", badge)

