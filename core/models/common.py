# =============================================================================
# core/models/common.py - Shared Request Schemas
# =============================================================================
# Small payloads reused by several resources:
# - TagCreate / BadgeCreate: tags and badges on deals, missions and tasks
# - BulkIdsRequest: bulk delete of clients, quotes and invoices
# - ReorderRequest: ordered id lists (template items, verifolio lists)
# =============================================================================

from uuid import UUID

from pydantic import BaseModel, Field


class TagCreate(BaseModel):
    """
    Schema for adding a tag to an entity.

    Example:
        {"tag": "web", "color": "blue"}
    """

    tag: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Tag text (unique per entity)"
    )

    color: str = Field(
        default="gray",
        max_length=20,
        description="Display color"
    )


class BadgeCreate(BaseModel):
    """
    Schema for adding a badge to an entity.

    Example:
        {"badge": "Relance", "variant": "yellow"}
    """

    badge: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Badge label (unique per entity)"
    )

    variant: str = Field(
        default="default",
        max_length=20,
        description="Display variant"
    )


class BulkIdsRequest(BaseModel):
    """Ids targeted by a bulk operation."""

    ids: list[UUID] = Field(
        ...,
        min_length=1,
        description="Ids of the rows to act on"
    )


class ReorderRequest(BaseModel):
    """Full list of child ids in their new order."""

    ids: list[UUID] = Field(
        ...,
        min_length=1,
        description="Ids in the desired order (index becomes sort_order)"
    )
