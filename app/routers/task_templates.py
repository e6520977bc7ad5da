# =============================================================================
# app/routers/task_templates.py - Task Template Endpoints
# =============================================================================
# A template is an ordered list of items, each due day_offset days after
# the reference date given when the template is applied.
# All endpoints require authentication.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.common import ReorderRequest
from core.models.task import (
    ApplyTemplateRequest,
    TemplateCreate,
    TemplateItemCreate,
    TemplateItemUpdate,
    TemplateTargetType,
    TemplateUpdate,
)
from core.services.task_service import TaskTemplateService

router = APIRouter()

TemplateId = Annotated[UUID, Path(description="Template UUID")]
ItemId = Annotated[UUID, Path(description="Template item UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_template(payload: TemplateCreate, user: CurrentUser):
    return {"data": TaskTemplateService.create_template(user.id, payload)}


@router.get("")
async def list_templates(
    user: CurrentUser,
    target_entity_type: Annotated[TemplateTargetType | None, Query()] = None,
    is_active: Annotated[bool | None, Query()] = None,
):
    """Templates by name with item_count and max_day_offset."""
    return {
        "data": TaskTemplateService.list_templates(
            user.id,
            target_entity_type=target_entity_type.value if target_entity_type else None,
            is_active=is_active,
        )
    }


@router.get("/{template_id}")
async def get_template(template_id: TemplateId, user: CurrentUser):
    return {"data": TaskTemplateService.get_template(user.id, template_id)}


@router.patch("/{template_id}")
async def update_template(template_id: TemplateId, payload: TemplateUpdate, user: CurrentUser):
    return {"data": TaskTemplateService.update_template(user.id, template_id, payload)}


@router.delete("/{template_id}")
async def delete_template(template_id: TemplateId, user: CurrentUser):
    TaskTemplateService.delete_template(user.id, template_id)
    return {"success": True}


# -----------------------------------------------------------------------------
# Items
# -----------------------------------------------------------------------------

@router.post("/{template_id}/items", status_code=status.HTTP_201_CREATED)
async def add_item(template_id: TemplateId, payload: TemplateItemCreate, user: CurrentUser):
    return {"data": TaskTemplateService.add_item(user.id, template_id, payload)}


@router.put("/{template_id}/items/reorder")
async def reorder_items(template_id: TemplateId, payload: ReorderRequest, user: CurrentUser):
    return {"data": TaskTemplateService.reorder_items(user.id, template_id, payload.ids)}


@router.patch("/{template_id}/items/{item_id}")
async def update_item(template_id: TemplateId, item_id: ItemId, payload: TemplateItemUpdate, user: CurrentUser):
    return {"data": TaskTemplateService.update_item(user.id, template_id, item_id, payload)}


@router.delete("/{template_id}/items/{item_id}")
async def delete_item(template_id: TemplateId, item_id: ItemId, user: CurrentUser):
    TaskTemplateService.delete_item(user.id, template_id, item_id)
    return {"success": True}


# -----------------------------------------------------------------------------
# Apply
# -----------------------------------------------------------------------------

@router.post("/{template_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_template(template_id: TemplateId, payload: ApplyTemplateRequest, user: CurrentUser):
    """Create one task per item on the target entity."""
    tasks = TaskTemplateService.apply_template(
        user.id,
        template_id,
        payload.entity_type,
        payload.entity_id,
        reference_date=payload.reference_date,
    )
    return {"data": tasks, "created": len(tasks)}
