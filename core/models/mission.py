# =============================================================================
# core/models/mission.py - Mission Schemas
# =============================================================================
# A mission is the delivery of a won deal. Its status follows a strict
# lifecycle, encoded in MISSION_TRANSITIONS:
#
#   in_progress -> delivered -> to_invoice -> invoiced -> paid -> closed
#         \______________\____________\
#                                      -> cancelled
#
# Cancellation is only possible while nothing has been invoiced.
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class MissionStatus(str, Enum):
    """Lifecycle status of a mission."""
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    TO_INVOICE = "to_invoice"
    INVOICED = "invoiced"
    PAID = "paid"
    CLOSED = "closed"
    CANCELLED = "cancelled"


# Allowed next statuses for each status; closed and cancelled are final.
MISSION_TRANSITIONS: dict[MissionStatus, tuple[MissionStatus, ...]] = {
    MissionStatus.IN_PROGRESS: (MissionStatus.DELIVERED, MissionStatus.CANCELLED),
    MissionStatus.DELIVERED: (MissionStatus.TO_INVOICE, MissionStatus.CANCELLED),
    MissionStatus.TO_INVOICE: (MissionStatus.INVOICED, MissionStatus.CANCELLED),
    MissionStatus.INVOICED: (MissionStatus.PAID,),
    MissionStatus.PAID: (MissionStatus.CLOSED,),
    MissionStatus.CLOSED: (),
    MissionStatus.CANCELLED: (),
}


def allowed_transitions(status: MissionStatus) -> list[str]:
    """Status values reachable from status, as plain strings."""
    return [s.value for s in MISSION_TRANSITIONS[status]]


class MissionCreate(BaseModel):
    """
    Schema for creating a mission.

    Example:
        {
            "client_id": "550e8400-...",
            "deal_id": "660e8400-...",
            "title": "Refonte site vitrine"
        }
    """

    client_id: UUID
    deal_id: UUID | None = Field(
        default=None,
        description="Originating deal (at most one mission per deal)"
    )
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    estimated_amount: float | None = Field(default=None, ge=0)
    visible_on_verifolio: bool = Field(
        default=True,
        description="Show this mission on the public portfolio"
    )
    started_at: datetime | None = None
    contacts: list[UUID] = Field(default_factory=list)


class MissionUpdate(BaseModel):
    """Partial mission update. Status changes go through PATCH /missions/{id}/status."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    estimated_amount: float | None = Field(default=None, ge=0)
    final_amount: float | None = Field(default=None, ge=0)
    visible_on_verifolio: bool | None = None
    started_at: datetime | None = None
    delivered_at: datetime | None = None


class MissionStatusUpdate(BaseModel):
    """Example: {"status": "delivered"}"""

    status: MissionStatus


class MissionInvoiceLink(BaseModel):
    invoice_id: UUID


class MissionSupplierCreate(BaseModel):
    """Attach a supplier (a client row flagged is_supplier) to a mission."""

    supplier_id: UUID
    notes: str | None = None
