# =============================================================================
# core/models/proposal.py - Proposal Schemas
# =============================================================================
# A proposal is a commercial document built from a template for a deal.
# Template sections are copied into proposal_sections so each proposal can
# be edited independently, and {{variables}} in them are rendered on read.
# =============================================================================

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class ProposalStatus(str, Enum):
    """
    - DRAFT: being written
    - SENT: shared with the client (stamps sent_at)
    - ACCEPTED / REFUSED: client answer (stamps accepted_at / refused_at)
    """
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REFUSED = "REFUSED"


# Timestamp column stamped when a proposal enters a status
STATUS_TIMESTAMPS: dict[ProposalStatus, str] = {
    ProposalStatus.SENT: "sent_at",
    ProposalStatus.ACCEPTED: "accepted_at",
    ProposalStatus.REFUSED: "refused_at",
}


class ProposalCreate(BaseModel):
    """
    Schema for creating a proposal. The client is taken from the deal.

    Example:
        {"deal_id": "550e8400-...", "template_id": "660e8400-..."}
    """

    deal_id: UUID
    template_id: UUID = Field(
        ...,
        description="User-owned or system template whose sections are copied"
    )
    title: str | None = Field(
        default=None,
        max_length=255,
        description='Defaults to "Proposition - <deal title>"'
    )


class ProposalUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    theme_override: dict | None = None
    preset_id: str | None = None
    visual_options_override: dict | None = None


class ProposalStatusUpdate(BaseModel):
    status: ProposalStatus


class ProposalSectionUpdate(BaseModel):
    title: str | None = None
    body: str | None = None
    position: int | None = Field(default=None, ge=0)
    is_enabled: bool | None = None


class ProposalVariableInput(BaseModel):
    key: str = Field(..., min_length=1, max_length=100, pattern=r"^\w+$")
    value: str = ""


class ProposalVariablesReplace(BaseModel):
    """Full replacement of a proposal's custom variables."""

    variables: list[ProposalVariableInput] = Field(default_factory=list)
