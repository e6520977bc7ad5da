# =============================================================================
# core/models/task.py - Task & Task Template Schemas
# =============================================================================
# Tasks are to-dos attached to a deal, mission, client or contact. Manual
# tasks are created by the user; system tasks are created by automations and
# cannot be deleted.
#
# Task templates are reusable checklists: applying one to an entity creates
# one task per item, due reference_date + day_offset.
# =============================================================================

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class TaskStatus(str, Enum):
    """
    - open: to do
    - en_attente: blocked, waiting on someone (see wait_reason)
    - done: completed
    """
    OPEN = "open"
    EN_ATTENTE = "en_attente"
    DONE = "done"


class TaskEntityType(str, Enum):
    DEAL = "deal"
    MISSION = "mission"
    CLIENT = "client"
    CONTACT = "contact"


class TaskOwnerScope(str, Enum):
    """
    Who is expected to act on the task.

    - me: the user
    - client / supplier: an external party, identified by owner_entity_id
    """
    ME = "me"
    CLIENT = "client"
    SUPPLIER = "supplier"


class TemplateTargetType(str, Enum):
    DEAL = "deal"
    MISSION = "mission"
    CLIENT = "client"


# =============================================================================
# Tasks
# =============================================================================

class TaskCreate(BaseModel):
    """
    Schema for creating a manual task.

    Example:
        {
            "title": "Relancer le client",
            "due_date": "2025-03-01",
            "entity_type": "deal",
            "entity_id": "550e8400-..."
        }
    """

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    due_date: date | None = None
    entity_type: TaskEntityType | None = None
    entity_id: UUID | None = None
    owner_scope: TaskOwnerScope = TaskOwnerScope.ME
    owner_entity_id: UUID | None = Field(
        default=None,
        description="Client or supplier id; required unless owner_scope is 'me'"
    )
    wait_reason: str | None = None
    status: TaskStatus = TaskStatus.OPEN


class TaskUpdate(BaseModel):
    """
    Partial task update.

    A wait_reason sent together with a status other than en_attente is
    ignored.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    due_date: date | None = None
    status: TaskStatus | None = None
    owner_scope: TaskOwnerScope | None = None
    owner_entity_id: UUID | None = None
    wait_reason: str | None = None


# =============================================================================
# Templates
# =============================================================================

class TemplateItemCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    day_offset: int = Field(default=0, ge=0, description="Days after the reference date")
    sort_order: int | None = Field(default=None, ge=0)
    owner_scope: TaskOwnerScope = TaskOwnerScope.ME


class TemplateItemUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    day_offset: int | None = Field(default=None, ge=0)
    sort_order: int | None = Field(default=None, ge=0)
    owner_scope: TaskOwnerScope | None = None


class TemplateCreate(BaseModel):
    """
    Example:
        {
            "name": "Onboarding client",
            "target_entity_type": "mission",
            "items": [
                {"title": "Kick-off", "day_offset": 0},
                {"title": "Point d'étape", "day_offset": 14}
            ]
        }
    """

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    target_entity_type: TemplateTargetType | None = None
    items: list[TemplateItemCreate] = Field(default_factory=list)


class TemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    target_entity_type: TemplateTargetType | None = None
    is_active: bool | None = None


class ApplyTemplateRequest(BaseModel):
    entity_type: TaskEntityType
    entity_id: UUID
    reference_date: date | None = Field(
        default=None,
        description="Day 0 of the template, defaults to today"
    )

    @model_validator(mode="after")
    def _contact_not_supported(self) -> "ApplyTemplateRequest":
        if self.entity_type == TaskEntityType.CONTACT:
            raise ValueError("Templates apply to deals, missions or clients")
        return self
