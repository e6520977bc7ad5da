# =============================================================================
# app/routers/tasks.py - Task Endpoints
# =============================================================================
# Manual and system tasks, optionally attached to a deal, mission, client
# or contact. System tasks can be completed but never deleted.
# All endpoints require authentication.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.common import BadgeCreate
from core.models.task import TaskCreate, TaskEntityType, TaskOwnerScope, TaskStatus, TaskUpdate
from core.services.task_service import TaskService

router = APIRouter()

TaskId = Annotated[UUID, Path(description="Task UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskCreate, user: CurrentUser):
    return {"data": TaskService.create_task(user.id, payload)}


@router.get("")
async def list_tasks(
    user: CurrentUser,
    task_status: Annotated[TaskStatus | None, Query(alias="status")] = None,
    entity_type: Annotated[TaskEntityType | None, Query()] = None,
    entity_id: Annotated[UUID | None, Query()] = None,
    is_system: Annotated[bool | None, Query()] = None,
    owner_scope: Annotated[TaskOwnerScope | None, Query()] = None,
    owner_entity_id: Annotated[UUID | None, Query()] = None,
    overdue: Annotated[bool, Query(description="Only open tasks past their due date")] = False,
):
    """Tasks by due date, each with its deal/mission/client/contact/owner summary."""
    return {
        "data": TaskService.list_tasks(
            user.id,
            status=task_status,
            entity_type=entity_type,
            entity_id=entity_id,
            is_system=is_system,
            owner_scope=owner_scope,
            owner_entity_id=owner_entity_id,
            overdue=overdue,
        )
    }


@router.get("/counts")
async def get_open_counts(user: CurrentUser):
    """Open task counts: {total, overdue, system}."""
    return {"data": TaskService.get_open_counts(user.id)}


@router.get("/entity/{entity_type}/{entity_id}")
async def get_entity_tasks(
    entity_type: TaskEntityType,
    entity_id: Annotated[UUID, Path(description="Deal, mission, client or contact UUID")],
    user: CurrentUser,
):
    """Tasks of one entity with {total_tasks, completed_tasks, pending_tasks, progress_percent}."""
    return {"data": TaskService.get_entity_tasks(user.id, entity_type, entity_id)}


@router.get("/{task_id}")
async def get_task(task_id: TaskId, user: CurrentUser):
    return {"data": TaskService.get_task(user.id, task_id)}


@router.patch("/{task_id}")
async def update_task(task_id: TaskId, payload: TaskUpdate, user: CurrentUser):
    return {"data": TaskService.update_task(user.id, task_id, payload)}


@router.delete("/{task_id}")
async def delete_task(task_id: TaskId, user: CurrentUser):
    """Delete a manual task. System tasks answer 403."""
    TaskService.delete_task(user.id, task_id)
    return {"success": True}


@router.post("/{task_id}/complete")
async def complete_task(task_id: TaskId, user: CurrentUser):
    return {"data": TaskService.complete_task(user.id, task_id)}


@router.post("/{task_id}/reopen")
async def reopen_task(task_id: TaskId, user: CurrentUser):
    return {"data": TaskService.reopen_task(user.id, task_id)}


@router.post("/{task_id}/badges", status_code=status.HTTP_201_CREATED)
async def add_task_badge(task_id: TaskId, payload: BadgeCreate, user: CurrentUser):
    return {"data": TaskService.add_badge(user.id, task_id, payload.badge, payload.variant)}


@router.delete("/{task_id}/badges/{badge}")
async def remove_task_badge(task_id: TaskId, badge: str, user: CurrentUser):
    TaskService.remove_badge(user.id, task_id, badge)
    return {"success": True}
