# =============================================================================
# app/routers/missions.py - Mission Endpoints
# =============================================================================
# Missions follow a fixed lifecycle:
#   in_progress -> delivered -> to_invoice -> invoiced -> paid -> closed
# PATCH /missions/{id}/status rejects any other move with 409.
# All endpoints require authentication.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.common import BadgeCreate, TagCreate
from core.models.mission import (
    MissionCreate,
    MissionInvoiceLink,
    MissionStatus,
    MissionStatusUpdate,
    MissionSupplierCreate,
    MissionUpdate,
)
from core.services.mission_service import MissionService

router = APIRouter()

MissionId = Annotated[UUID, Path(description="Mission UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_mission(payload: MissionCreate, user: CurrentUser):
    """Create a mission (one per deal)."""
    return {"data": MissionService.create_mission(user.id, payload)}


@router.get("")
async def list_missions(
    user: CurrentUser,
    mission_status: Annotated[MissionStatus | None, Query(alias="status", description="Filter by status")] = None,
    client_id: Annotated[UUID | None, Query(description="Filter by client")] = None,
    visible_on_verifolio: Annotated[bool | None, Query(description="Filter by portfolio visibility")] = None,
):
    return {
        "data": MissionService.list_missions(
            user.id,
            status=mission_status,
            client_id=client_id,
            visible_on_verifolio=visible_on_verifolio,
        )
    }


@router.get("/{mission_id}")
async def get_mission(mission_id: MissionId, user: CurrentUser):
    """Mission with client, deal, contacts, invoices, tags and badges."""
    return {"data": MissionService.get_mission(user.id, mission_id)}


@router.patch("/{mission_id}")
async def update_mission(mission_id: MissionId, payload: MissionUpdate, user: CurrentUser):
    return {"data": MissionService.update_mission(user.id, mission_id, payload)}


@router.delete("/{mission_id}")
async def delete_mission(mission_id: MissionId, user: CurrentUser):
    """Move a mission to the trash."""
    MissionService.delete_mission(user.id, mission_id)
    return {"success": True}


@router.patch("/{mission_id}/status")
async def update_mission_status(mission_id: MissionId, payload: MissionStatusUpdate, user: CurrentUser):
    """
    Move the mission to its next status.

    Cancellation is only possible before the mission is invoiced.
    """
    return {"data": MissionService.update_status(user.id, mission_id, payload.status)}


# -----------------------------------------------------------------------------
# Invoices
# -----------------------------------------------------------------------------

@router.post("/{mission_id}/invoices", status_code=status.HTTP_201_CREATED)
async def link_invoice(mission_id: MissionId, payload: MissionInvoiceLink, user: CurrentUser):
    return {"data": MissionService.link_invoice(user.id, mission_id, payload.invoice_id)}


@router.delete("/{mission_id}/invoices/{invoice_id}")
async def unlink_invoice(
    mission_id: MissionId,
    invoice_id: Annotated[UUID, Path(description="Invoice UUID")],
    user: CurrentUser,
):
    MissionService.unlink_invoice(user.id, mission_id, invoice_id)
    return {"success": True}


# -----------------------------------------------------------------------------
# Suppliers
# -----------------------------------------------------------------------------

@router.get("/{mission_id}/suppliers")
async def list_suppliers(mission_id: MissionId, user: CurrentUser):
    return {"data": MissionService.list_suppliers(user.id, mission_id)}


@router.post("/{mission_id}/suppliers", status_code=status.HTTP_201_CREATED)
async def add_supplier(mission_id: MissionId, payload: MissionSupplierCreate, user: CurrentUser):
    return {"data": MissionService.add_supplier(user.id, mission_id, payload)}


@router.delete("/{mission_id}/suppliers/{mission_supplier_id}")
async def remove_supplier(
    mission_id: MissionId,
    mission_supplier_id: Annotated[UUID, Path(description="mission_suppliers row UUID")],
    user: CurrentUser,
):
    MissionService.remove_supplier(user.id, mission_supplier_id)
    return {"success": True}


# -----------------------------------------------------------------------------
# Tags & Badges
# -----------------------------------------------------------------------------

@router.post("/{mission_id}/tags", status_code=status.HTTP_201_CREATED)
async def add_mission_tag(mission_id: MissionId, payload: TagCreate, user: CurrentUser):
    return {"data": MissionService.add_tag(user.id, mission_id, payload.tag, payload.color)}


@router.delete("/{mission_id}/tags/{tag}")
async def remove_mission_tag(mission_id: MissionId, tag: str, user: CurrentUser):
    MissionService.remove_tag(user.id, mission_id, tag)
    return {"success": True}


@router.post("/{mission_id}/badges", status_code=status.HTTP_201_CREATED)
async def add_mission_badge(mission_id: MissionId, payload: BadgeCreate, user: CurrentUser):
    return {"data": MissionService.add_badge(user.id, mission_id, payload.badge, payload.variant)}


@router.delete("/{mission_id}/badges/{badge}")
async def remove_mission_badge(mission_id: MissionId, badge: str, user: CurrentUser):
    MissionService.remove_badge(user.id, mission_id, badge)
    return {"success": True}
