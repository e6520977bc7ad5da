# =============================================================================
# core/models/trash.py - Trash Schemas
# =============================================================================
# Soft-deleted rows (deleted_at set) of the entities below make up the trash.
# They can be restored, or deleted for good; the purge job removes them once
# they are older than the retention period.
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class TrashEntityType(str, Enum):
    CLIENT = "client"
    CONTACT = "contact"
    DEAL = "deal"
    MISSION = "mission"
    QUOTE = "quote"
    INVOICE = "invoice"
    PROPOSAL = "proposal"


# Table, owner column and title columns for each trash-enabled entity
TRASH_TABLES: dict[TrashEntityType, dict[str, str]] = {
    TrashEntityType.CLIENT: {"table": "clients", "owner": "user_id", "columns": "id, nom, deleted_at"},
    TrashEntityType.CONTACT: {"table": "contacts", "owner": "user_id", "columns": "id, nom, prenom, deleted_at"},
    TrashEntityType.DEAL: {"table": "deals", "owner": "user_id", "columns": "id, title, deleted_at"},
    TrashEntityType.MISSION: {"table": "missions", "owner": "user_id", "columns": "id, title, deleted_at"},
    TrashEntityType.QUOTE: {"table": "quotes", "owner": "user_id", "columns": "id, numero, deleted_at"},
    TrashEntityType.INVOICE: {"table": "invoices", "owner": "user_id", "columns": "id, numero, deleted_at"},
    TrashEntityType.PROPOSAL: {"table": "proposals", "owner": "owner_user_id", "columns": "id, title, deleted_at"},
}


class TrashedItem(BaseModel):
    """
    One row in the trash listing.

    Example:
        {
            "id": "550e8400-...",
            "entity_type": "deal",
            "title": "Refonte site vitrine",
            "deleted_at": "2025-02-01T10:00:00Z",
            "days_remaining": 27
        }
    """

    id: UUID
    entity_type: TrashEntityType
    title: str
    deleted_at: datetime
    days_remaining: int = Field(..., ge=0, description="Days before automatic purge")
