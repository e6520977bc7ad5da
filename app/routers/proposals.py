# =============================================================================
# app/routers/proposals.py - Proposal Endpoints
# =============================================================================
# Proposals are built from a deal and a template. The share link served by
# app/routers/public.py uses the proposal's public_token.
# All endpoints here require authentication.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.proposal import (
    ProposalCreate,
    ProposalSectionUpdate,
    ProposalStatus,
    ProposalStatusUpdate,
    ProposalUpdate,
    ProposalVariablesReplace,
)
from core.services.proposal_service import ProposalService

router = APIRouter()

ProposalId = Annotated[UUID, Path(description="Proposal UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_proposal(payload: ProposalCreate, user: CurrentUser):
    """Create a draft proposal for a deal from a template."""
    return {"data": ProposalService.create_from_deal(user.id, payload)}


@router.get("")
async def list_proposals(
    user: CurrentUser,
    proposal_status: Annotated[ProposalStatus | None, Query(alias="status")] = None,
    client_id: Annotated[UUID | None, Query()] = None,
    deal_id: Annotated[UUID | None, Query()] = None,
):
    return {
        "data": ProposalService.list_proposals(
            user.id, status=proposal_status, client_id=client_id, deal_id=deal_id
        )
    }


@router.get("/{proposal_id}")
async def get_proposal(proposal_id: ProposalId, user: CurrentUser):
    """Proposal with sections, variables, recipients, deal, client and company."""
    return {"data": ProposalService.get_proposal(user.id, proposal_id)}


@router.patch("/{proposal_id}")
async def update_proposal(proposal_id: ProposalId, payload: ProposalUpdate, user: CurrentUser):
    return {"data": ProposalService.update_proposal(user.id, proposal_id, payload)}


@router.delete("/{proposal_id}")
async def delete_proposal(proposal_id: ProposalId, user: CurrentUser):
    ProposalService.delete_proposal(user.id, proposal_id)
    return {"success": True}


@router.patch("/{proposal_id}/status")
async def set_proposal_status(proposal_id: ProposalId, payload: ProposalStatusUpdate, user: CurrentUser):
    return {"data": ProposalService.set_status(user.id, proposal_id, payload.status)}


@router.patch("/{proposal_id}/sections/{section_id}")
async def update_section(
    proposal_id: ProposalId,
    section_id: Annotated[UUID, Path(description="Section UUID")],
    payload: ProposalSectionUpdate,
    user: CurrentUser,
):
    return {"data": ProposalService.update_section(user.id, proposal_id, section_id, payload)}


@router.put("/{proposal_id}/variables")
async def set_variables(proposal_id: ProposalId, payload: ProposalVariablesReplace, user: CurrentUser):
    """Replace every custom variable of the proposal."""
    return {"data": ProposalService.set_variables(user.id, proposal_id, payload.variables)}


@router.get("/{proposal_id}/render")
async def render_proposal(proposal_id: ProposalId, user: CurrentUser):
    """Enabled sections with {{variables}} substituted."""
    proposal = ProposalService.get_proposal(user.id, proposal_id)
    return {"data": ProposalService.render(proposal)}
