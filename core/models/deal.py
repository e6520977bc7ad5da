# =============================================================================
# core/models/deal.py - Deal Schemas
# =============================================================================
# A deal is a sales opportunity with a client. Once won, it turns into a
# mission (see core/models/mission.py).
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class DealStatus(str, Enum):
    """
    Pipeline stage of a deal.

    - new: just received
    - draft: a quote or proposal is being prepared
    - sent: quote/proposal sent to the client
    - won / lost: outcome
    - archived: hidden from the pipeline

    Any stage may be set from any other; going from sent back to draft
    flags the deal for review (REVIEW badge).
    """
    NEW = "new"
    DRAFT = "draft"
    SENT = "sent"
    WON = "won"
    LOST = "lost"
    ARCHIVED = "archived"


class PredefinedBadge(str, Enum):
    """Badges with a fixed label and color."""
    URGENT = "URGENT"
    VIP = "VIP"
    REVIEW = "REVIEW"

    @property
    def variant(self) -> str:
        return PREDEFINED_BADGE_VARIANTS[self]


PREDEFINED_BADGE_VARIANTS: dict[PredefinedBadge, str] = {
    PredefinedBadge.URGENT: "red",
    PredefinedBadge.VIP: "yellow",
    PredefinedBadge.REVIEW: "blue",
}


class DealCreate(BaseModel):
    """
    Schema for creating a deal.

    Contacts default to every contact of the client when omitted.

    Example:
        {
            "client_id": "550e8400-...",
            "title": "Refonte site vitrine",
            "estimated_amount": 4500,
            "tags": ["web"]
        }
    """

    client_id: UUID = Field(
        ...,
        description="Client this opportunity belongs to"
    )

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Short deal title"
    )

    description: str | None = None

    estimated_amount: float | None = Field(
        default=None,
        ge=0,
        description="Estimated amount (excl. VAT)"
    )

    currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="ISO currency code, defaults to EUR"
    )

    received_at: datetime | None = Field(
        default=None,
        description="When the request came in, defaults to now"
    )

    contacts: list[UUID] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    badges: list[str] = Field(default_factory=list)


class DealUpdate(BaseModel):
    """Partial deal update. Status changes go through PATCH /deals/{id}/status."""

    client_id: UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    estimated_amount: float | None = Field(default=None, ge=0)
    final_amount: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    received_at: datetime | None = None


class DealStatusUpdate(BaseModel):
    """Example: {"status": "won"}"""

    status: DealStatus


class DealContactsReplace(BaseModel):
    """Full list of the deal's contacts; the first one becomes primary."""

    contact_ids: list[UUID] = Field(default_factory=list)
