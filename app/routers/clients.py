# =============================================================================
# app/routers/clients.py - Client Endpoints
# =============================================================================
# CRUD, bulk operations and contact links for clients (and suppliers).
# All endpoints require authentication.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.client import ClientBulkUpdate, ClientContactLink, ClientCreate, ClientType, ClientUpdate
from core.models.common import BulkIdsRequest
from core.services.client_service import ClientService

router = APIRouter()

ClientId = Annotated[UUID, Path(description="Client UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(payload: ClientCreate, user: CurrentUser):
    """Create a client. Pass is_supplier=true to create a supplier."""
    return {"data": ClientService.create_client(user.id, payload)}


@router.get("")
async def list_clients(
    user: CurrentUser,
    client_type: Annotated[ClientType | None, Query(alias="type", description="Filter by legal form")] = None,
    is_supplier: Annotated[bool | None, Query(description="Only suppliers / non-suppliers")] = None,
    search: Annotated[str | None, Query(description="Case-insensitive match on name")] = None,
):
    """List active clients ordered by name."""
    return {
        "data": ClientService.list_clients(
            user.id,
            client_type=client_type,
            is_supplier=is_supplier,
            search=search,
        )
    }


# -----------------------------------------------------------------------------
# Bulk (declared before /{client_id})
# -----------------------------------------------------------------------------

@router.delete("/bulk")
async def bulk_delete_clients(payload: BulkIdsRequest, user: CurrentUser):
    """Move several clients to the trash."""
    deleted = ClientService.bulk_delete(user.id, payload.ids)
    return {"success": True, "deleted": deleted}


@router.patch("/bulk")
async def bulk_update_clients(payload: ClientBulkUpdate, user: CurrentUser):
    """Change the type of several clients."""
    updated = ClientService.bulk_update(user.id, payload.ids, payload.updates)
    return {"success": True, "updated": updated}


# -----------------------------------------------------------------------------
# Single Client
# -----------------------------------------------------------------------------

@router.get("/{client_id}")
async def get_client(client_id: ClientId, user: CurrentUser):
    """Client with its linked contacts."""
    return {"data": ClientService.get_client(user.id, client_id)}


@router.patch("/{client_id}")
async def update_client(client_id: ClientId, payload: ClientUpdate, user: CurrentUser):
    return {"data": ClientService.update_client(user.id, client_id, payload)}


@router.delete("/{client_id}")
async def delete_client(client_id: ClientId, user: CurrentUser):
    """Move a client to the trash."""
    ClientService.delete_client(user.id, client_id)
    return {"success": True}


@router.post("/{client_id}/contacts", status_code=status.HTTP_201_CREATED)
async def link_contact(client_id: ClientId, payload: ClientContactLink, user: CurrentUser):
    """Link an existing contact to the client."""
    return {"data": ClientService.link_contact(user.id, client_id, payload)}


@router.delete("/{client_id}/contacts/{contact_id}")
async def unlink_contact(
    client_id: ClientId,
    contact_id: Annotated[UUID, Path(description="Contact UUID")],
    user: CurrentUser,
):
    ClientService.unlink_contact(user.id, client_id, contact_id)
    return {"success": True}
