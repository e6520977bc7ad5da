# =============================================================================
# app/routers/deals.py - Deal Endpoints
# =============================================================================
# Deals move freely between statuses. Once won, a deal can be turned into a
# mission with POST /deals/{id}/create-mission.
# All endpoints require authentication.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.common import BadgeCreate, TagCreate
from core.models.deal import (
    DealContactsReplace,
    DealCreate,
    DealStatus,
    DealStatusUpdate,
    DealUpdate,
    PredefinedBadge,
)
from core.services.deal_service import DealService

router = APIRouter()

DealId = Annotated[UUID, Path(description="Deal UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deal(payload: DealCreate, user: CurrentUser):
    """
    Create a deal for a client.

    Contacts, tags and badges given in the body are attached right away.
    """
    return {"data": DealService.create_deal(user.id, payload)}


@router.get("")
async def list_deals(
    user: CurrentUser,
    deal_status: Annotated[DealStatus | None, Query(alias="status", description="Filter by status")] = None,
    client_id: Annotated[UUID | None, Query(description="Filter by client")] = None,
):
    return {"data": DealService.list_deals(user.id, status=deal_status, client_id=client_id)}


@router.get("/tag-library")
async def get_tag_library(user: CurrentUser):
    """Tags already used on the user's deals, most used first."""
    return {"data": DealService.get_tag_library(user.id)}


@router.get("/{deal_id}")
async def get_deal(deal_id: DealId, user: CurrentUser):
    """Deal with client, contacts, documents, tags, badges and mission."""
    return {"data": DealService.get_deal(user.id, deal_id)}


@router.patch("/{deal_id}")
async def update_deal(deal_id: DealId, payload: DealUpdate, user: CurrentUser):
    return {"data": DealService.update_deal(user.id, deal_id, payload)}


@router.delete("/{deal_id}")
async def delete_deal(deal_id: DealId, user: CurrentUser):
    """Move a deal to the trash."""
    DealService.delete_deal(user.id, deal_id)
    return {"success": True}


@router.patch("/{deal_id}/status")
async def update_deal_status(deal_id: DealId, payload: DealStatusUpdate, user: CurrentUser):
    return {"data": DealService.update_status(user.id, deal_id, payload.status)}


@router.post("/{deal_id}/back-to-draft")
async def back_to_draft(deal_id: DealId, user: CurrentUser):
    """Reopen a deal as draft; a sent deal gets the REVIEW badge."""
    return {"data": DealService.back_to_draft(user.id, deal_id)}


# -----------------------------------------------------------------------------
# Contacts
# -----------------------------------------------------------------------------

@router.get("/{deal_id}/contacts")
async def list_deal_contacts(deal_id: DealId, user: CurrentUser):
    return {"data": DealService.list_contacts(user.id, deal_id)}


@router.put("/{deal_id}/contacts")
async def replace_deal_contacts(deal_id: DealId, payload: DealContactsReplace, user: CurrentUser):
    return {"data": DealService.replace_contacts(user.id, deal_id, payload.contact_ids)}


# -----------------------------------------------------------------------------
# Tags & Badges
# -----------------------------------------------------------------------------

@router.post("/{deal_id}/tags", status_code=status.HTTP_201_CREATED)
async def add_deal_tag(deal_id: DealId, payload: TagCreate, user: CurrentUser):
    return {"data": DealService.add_tag(user.id, deal_id, payload.tag, payload.color)}


@router.delete("/{deal_id}/tags/{tag}")
async def remove_deal_tag(deal_id: DealId, tag: str, user: CurrentUser):
    DealService.remove_tag(user.id, deal_id, tag)
    return {"success": True}


@router.post("/{deal_id}/badges", status_code=status.HTTP_201_CREATED)
async def add_deal_badge(deal_id: DealId, payload: BadgeCreate, user: CurrentUser):
    return {"data": DealService.add_badge(user.id, deal_id, payload.badge, payload.variant)}


@router.post("/{deal_id}/badges/predefined/{code}", status_code=status.HTTP_201_CREATED)
async def add_predefined_badge(deal_id: DealId, code: PredefinedBadge, user: CurrentUser):
    """Add URGENT, VIP or REVIEW with its fixed variant."""
    return {"data": DealService.add_predefined_badge(user.id, deal_id, code)}


@router.delete("/{deal_id}/badges/{badge}")
async def remove_deal_badge(deal_id: DealId, badge: str, user: CurrentUser):
    DealService.remove_badge(user.id, deal_id, badge)
    return {"success": True}


# -----------------------------------------------------------------------------
# Mission
# -----------------------------------------------------------------------------

@router.post("/{deal_id}/create-mission")
async def create_mission_from_deal(deal_id: DealId, user: CurrentUser):
    """
    Create the mission of a won deal.

    Returns the existing mission (already_existed=true) when the deal
    already has one.
    """
    return {"data": DealService.create_mission_from_deal(user.id, deal_id)}
