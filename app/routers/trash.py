# =============================================================================
# app/routers/trash.py - Trash Endpoints
# =============================================================================
# Soft-deleted clients, contacts, deals, missions, quotes, invoices and
# proposals. Rows are purged automatically after TRASH_RETENTION_DAYS
# (see workers.tasks.purge_expired_trash).
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from app.dependencies import CurrentUser
from core.models.trash import TrashEntityType
from core.services.trash_service import TrashService

router = APIRouter()

EntityId = Annotated[UUID, Path(description="Trashed row UUID")]


@router.get("")
async def list_trash(user: CurrentUser):
    """Trashed rows, most recently deleted first, with days_remaining."""
    return {"data": TrashService.list_trashed(user.id)}


@router.delete("")
async def empty_trash(user: CurrentUser):
    """Permanently delete everything in the trash."""
    deleted = TrashService.empty_trash(user.id)
    return {"success": True, "deleted_count": deleted}


@router.post("/{entity_type}/{entity_id}/restore")
async def restore_item(entity_type: TrashEntityType, entity_id: EntityId, user: CurrentUser):
    return {"data": TrashService.restore(user.id, entity_type, entity_id)}


@router.delete("/{entity_type}/{entity_id}")
async def delete_item_permanently(entity_type: TrashEntityType, entity_id: EntityId, user: CurrentUser):
    """Delete a trashed row for good. Active rows answer 404."""
    TrashService.permanently_delete(user.id, entity_type, entity_id)
    return {"success": True}
