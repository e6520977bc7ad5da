# =============================================================================
# app/routers/contacts.py - Contact Endpoints
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from app.dependencies import CurrentUser
from core.models.client import ContactCreate, ContactUpdate
from core.services.client_service import ContactService

router = APIRouter()

ContactId = Annotated[UUID, Path(description="Contact UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contact(payload: ContactCreate, user: CurrentUser):
    return {"data": ContactService.create_contact(user.id, payload)}


@router.get("")
async def list_contacts(user: CurrentUser):
    return {"data": ContactService.list_contacts(user.id)}


@router.get("/{contact_id}")
async def get_contact(contact_id: ContactId, user: CurrentUser):
    return {"data": ContactService.get_contact(user.id, contact_id)}


@router.patch("/{contact_id}")
async def update_contact(contact_id: ContactId, payload: ContactUpdate, user: CurrentUser):
    return {"data": ContactService.update_contact(user.id, contact_id, payload)}


@router.delete("/{contact_id}")
async def delete_contact(contact_id: ContactId, user: CurrentUser):
    """Move a contact to the trash."""
    ContactService.delete_contact(user.id, contact_id)
    return {"success": True}
