# =============================================================================
# core/services/task_service.py - Tasks & Task Templates
# =============================================================================
# Tasks are to-dos hanging off a deal, mission, client or contact.
# Templates are reusable checklists turned into tasks with apply_template().
#
# Tasks are hard-deleted (no trash); system tasks can't be deleted at all.
# =============================================================================

import logging
from datetime import date, timedelta
from typing import Any
from uuid import UUID

from app.exceptions import ForbiddenOperationError, NotFoundError, ValidationFailedError
from core.models.task import (
    TaskCreate,
    TaskEntityType,
    TaskOwnerScope,
    TaskStatus,
    TaskUpdate,
    TemplateCreate,
    TemplateItemCreate,
    TemplateItemUpdate,
    TemplateUpdate,
)
from core.services.common import changes_from, insert_unique, require_owned
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, today_iso

logger = logging.getLogger(__name__)


def _require_task(user_id: UUID | str, task_id: UUID | str) -> dict[str, Any]:
    # Tasks have no deleted_at column
    row = SupabaseClient.fetch_owned("tasks", task_id, user_id, soft_delete=False)
    if row is None:
        raise NotFoundError("task", str(task_id))
    return row


ENTITY_TABLES = {
    TaskEntityType.DEAL: "deals",
    TaskEntityType.MISSION: "missions",
    TaskEntityType.CLIENT: "clients",
    TaskEntityType.CONTACT: "contacts",
}


def _require_entity(
    user_id: UUID | str,
    entity_type: TaskEntityType | None,
    entity_id: UUID | str | None,
) -> None:
    """Raise NotFoundError unless the linked entity is the user's."""
    if entity_type is None or entity_id is None:
        return
    require_owned(ENTITY_TABLES[entity_type], entity_id, user_id, entity_type.value, columns="id")


def _require_owner_entity(
    user_id: UUID | str,
    owner_scope: TaskOwnerScope | None,
    owner_entity_id: UUID | str | None,
) -> None:
    # Clients and suppliers both live in the clients table
    if owner_entity_id is None:
        return
    entity = owner_scope.value if owner_scope and owner_scope != TaskOwnerScope.ME else "client"
    require_owned("clients", owner_entity_id, user_id, entity, columns="id")


def _by_id(
    table: str,
    columns: str,
    ids: set[str],
    user_id: UUID | str,
) -> dict[str, dict[str, Any]]:
    """Fetch the user's rows by id into a map; no query when ids is empty."""
    if not ids:
        return {}
    client = SupabaseClient.get_client()
    rows = (
        client.table(table)
        .select(columns)
        .in_("id", sorted(ids))
        .eq("user_id", normalize_uuid(user_id))
        .execute()
    ).data or []
    return {row["id"]: row for row in rows}


def enrich_tasks(tasks: list[dict[str, Any]], user_id: UUID | str) -> list[dict[str, Any]]:
    """
    Attach summaries of the linked entity to each task.

    A deal/mission/contact task also gets its client, a mission task its
    deal, and client/supplier-owned tasks an "owner" {id, nom, type}.
    Only rows owned by user_id are attached.
    """
    if not tasks:
        return tasks

    ids: dict[str, set[str]] = {t.value: set() for t in TaskEntityType}
    owner_ids: set[str] = set()
    for task in tasks:
        if task.get("entity_type") in ids and task.get("entity_id"):
            ids[task["entity_type"]].add(task["entity_id"])
        if task.get("owner_scope") != TaskOwnerScope.ME.value and task.get("owner_entity_id"):
            owner_ids.add(task["owner_entity_id"])

    missions = _by_id("missions", "id, title, client_id, deal_id", ids["mission"], user_id)
    for mission in missions.values():
        if mission.get("deal_id"):
            ids["deal"].add(mission["deal_id"])
    deals = _by_id("deals", "id, title, client_id", ids["deal"], user_id)
    contacts = _by_id("contacts", "id, prenom, nom, client_id", ids["contact"], user_id)

    client_ids = set(ids["client"]) | owner_ids
    for row in [*deals.values(), *missions.values(), *contacts.values()]:
        if row.get("client_id"):
            client_ids.add(row["client_id"])
    clients = _by_id("clients", "id, nom", client_ids, user_id)

    enriched = []
    for task in tasks:
        item = dict(task)
        entity_type, entity_id = task.get("entity_type"), task.get("entity_id")

        if entity_type == TaskEntityType.DEAL.value and entity_id in deals:
            item["deal"] = deals[entity_id]
            item["client"] = clients.get(deals[entity_id].get("client_id"))
        elif entity_type == TaskEntityType.MISSION.value and entity_id in missions:
            mission = missions[entity_id]
            item["mission"] = mission
            item["client"] = clients.get(mission.get("client_id"))
            item["deal"] = deals.get(mission.get("deal_id"))
        elif entity_type == TaskEntityType.CLIENT.value:
            item["client"] = clients.get(entity_id)
        elif entity_type == TaskEntityType.CONTACT.value and entity_id in contacts:
            item["contact"] = contacts[entity_id]
            item["client"] = clients.get(contacts[entity_id].get("client_id"))

        owner = clients.get(task.get("owner_entity_id"))
        if owner and task.get("owner_scope") != TaskOwnerScope.ME.value:
            item["owner"] = {"id": owner["id"], "nom": owner.get("nom"), "type": task["owner_scope"]}

        enriched.append(item)
    return enriched


def compute_progress(tasks: list[dict[str, Any]]) -> dict[str, int]:
    """Completion summary of an entity's tasks."""
    total = len(tasks)
    completed = sum(1 for t in tasks if t.get("status") == TaskStatus.DONE.value)
    return {
        "total_tasks": total,
        "completed_tasks": completed,
        "pending_tasks": total - completed,
        "progress_percent": round(completed * 100 / total) if total else 0,
    }


# =============================================================================
# Tasks
# =============================================================================

class TaskService:
    """
    Service for task operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_task(user_id: UUID | str, payload: TaskCreate) -> dict[str, Any]:
        """
        Create a manual task.

        Raises:
            NotFoundError: If the linked entity or the owner isn't the user's
            ValidationFailedError: If a client/supplier-owned task has no owner_entity_id
        """
        if payload.owner_scope != TaskOwnerScope.ME and not payload.owner_entity_id:
            raise ValidationFailedError(
                "owner_entity_id is required for client/supplier tasks",
                suggestion="Pass the client or supplier id, or use owner_scope 'me'",
            )
        _require_entity(user_id, payload.entity_type, payload.entity_id)
        _require_owner_entity(user_id, payload.owner_scope, payload.owner_entity_id)

        data = payload.model_dump(mode="json")
        data["user_id"] = normalize_uuid(user_id)
        data["is_system"] = False

        task = SupabaseClient.insert_one("tasks", data)
        logger.info(f"Created task: {task['id']} for user: {user_id}")
        return task

    @staticmethod
    def list_tasks(
        user_id: UUID | str,
        status: TaskStatus | None = None,
        entity_type: TaskEntityType | None = None,
        entity_id: UUID | str | None = None,
        is_system: bool | None = None,
        owner_scope: TaskOwnerScope | None = None,
        owner_entity_id: UUID | str | None = None,
        overdue: bool = False,
    ) -> list[dict[str, Any]]:
        """
        List tasks by due date (undated last), then newest first.

        Args:
            overdue: Only open tasks whose due date is before today
        """
        client = SupabaseClient.get_client()
        query = client.table("tasks").select("*").eq("user_id", normalize_uuid(user_id))

        if status:
            query = query.eq("status", status.value)
        if entity_type:
            query = query.eq("entity_type", entity_type.value)
        if entity_id:
            query = query.eq("entity_id", normalize_uuid(entity_id))
        if is_system is not None:
            query = query.eq("is_system", is_system)
        if owner_scope:
            query = query.eq("owner_scope", owner_scope.value)
        if owner_entity_id:
            query = query.eq("owner_entity_id", normalize_uuid(owner_entity_id))

        tasks = query.order("due_date").order("created_at", desc=True).execute().data or []

        if overdue:
            today = today_iso()
            tasks = [
                t for t in tasks
                if t.get("due_date") and t["due_date"] < today and t.get("status") == TaskStatus.OPEN.value
            ]

        return enrich_tasks(tasks, user_id)

    @staticmethod
    def get_task(user_id: UUID | str, task_id: UUID | str) -> dict[str, Any]:
        task = _require_task(user_id, task_id)
        task["badges"] = (
            SupabaseClient.get_client()
            .table("task_badges")
            .select("*")
            .eq("task_id", task["id"])
            .execute()
        ).data or []
        return task

    @staticmethod
    def update_task(
        user_id: UUID | str,
        task_id: UUID | str,
        payload: TaskUpdate,
    ) -> dict[str, Any]:
        """
        Partial update. A wait_reason only sticks when the task is (or is
        being put) en_attente; the stored reason is kept otherwise.
        """
        task = _require_task(user_id, task_id)
        changes = changes_from(payload)
        if "owner_entity_id" in changes:
            scope = payload.owner_scope or TaskOwnerScope(task.get("owner_scope") or TaskOwnerScope.ME.value)
            _require_owner_entity(user_id, scope, payload.owner_entity_id)

        if "wait_reason" in changes and changes.get("status") not in (None, TaskStatus.EN_ATTENTE.value):
            changes.pop("wait_reason")

        if not changes:
            return task

        client = SupabaseClient.get_client()
        updated = first_row(
            client.table("tasks")
            .update(changes)
            .eq("id", task["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        return updated or {**task, **changes}

    @staticmethod
    def complete_task(user_id: UUID | str, task_id: UUID | str) -> dict[str, Any]:
        return TaskService.update_task(user_id, task_id, TaskUpdate(status=TaskStatus.DONE))

    @staticmethod
    def reopen_task(user_id: UUID | str, task_id: UUID | str) -> dict[str, Any]:
        return TaskService.update_task(user_id, task_id, TaskUpdate(status=TaskStatus.OPEN))

    @staticmethod
    def delete_task(user_id: UUID | str, task_id: UUID | str) -> None:
        """
        Raises:
            NotFoundError: If the task isn't the user's
            ForbiddenOperationError: If it's a system task
        """
        task = _require_task(user_id, task_id)
        if task.get("is_system"):
            raise ForbiddenOperationError(
                "System tasks cannot be deleted",
                suggestion="Complete the task instead",
            )

        SupabaseClient.get_client().table("tasks").delete().eq("id", task["id"]).eq(
            "user_id", normalize_uuid(user_id)
        ).execute()
        logger.info(f"Deleted task: {task_id}")

    @staticmethod
    def get_open_counts(user_id: UUID | str) -> dict[str, int]:
        """Counts over open tasks: {total, overdue, system}."""
        client = SupabaseClient.get_client()
        open_tasks = (
            client.table("tasks")
            .select("due_date, is_system")
            .eq("user_id", normalize_uuid(user_id))
            .eq("status", TaskStatus.OPEN.value)
            .execute()
        ).data or []

        today = today_iso()
        return {
            "total": len(open_tasks),
            "overdue": sum(1 for t in open_tasks if t.get("due_date") and t["due_date"] < today),
            "system": sum(1 for t in open_tasks if t.get("is_system")),
        }

    @staticmethod
    def get_entity_tasks(
        user_id: UUID | str,
        entity_type: TaskEntityType,
        entity_id: UUID | str,
    ) -> dict[str, Any]:
        """Tasks of one entity (open first) with a progress summary."""
        client = SupabaseClient.get_client()
        tasks = (
            client.table("tasks")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .eq("entity_type", entity_type.value)
            .eq("entity_id", normalize_uuid(entity_id))
            .order("status", desc=True)
            .order("due_date")
            .execute()
        ).data or []
        return {"tasks": tasks, "progress": compute_progress(tasks)}

    # -------------------------------------------------------------------------
    # Badges
    # -------------------------------------------------------------------------

    @staticmethod
    def add_badge(
        user_id: UUID | str,
        task_id: UUID | str,
        badge: str,
        variant: str = "gray",
    ) -> dict[str, Any]:
        task = _require_task(user_id, task_id)
        return insert_unique(
            "task_badges",
            {"task_id": task["id"], "badge": badge, "variant": variant},
            "This badge already exists on this task",
        )

    @staticmethod
    def remove_badge(user_id: UUID | str, task_id: UUID | str, badge: str) -> None:
        task = _require_task(user_id, task_id)
        SupabaseClient.get_client().table("task_badges").delete().eq(
            "task_id", task["id"]
        ).eq("badge", badge).execute()


# =============================================================================
# Templates
# =============================================================================

def _require_template(user_id: UUID | str, template_id: UUID | str) -> dict[str, Any]:
    row = SupabaseClient.fetch_owned("task_templates", template_id, user_id, soft_delete=False)
    if row is None:
        raise NotFoundError("template", str(template_id))
    return row


def _template_items(template_id: str) -> list[dict[str, Any]]:
    client = SupabaseClient.get_client()
    return (
        client.table("task_template_items")
        .select("*")
        .eq("template_id", template_id)
        .order("sort_order")
        .execute()
    ).data or []


class TaskTemplateService:
    """Service for task templates and their items."""

    @staticmethod
    def create_template(user_id: UUID | str, payload: TemplateCreate) -> dict[str, Any]:
        """Create a template; items without a sort_order keep their list position."""
        template = SupabaseClient.insert_one("task_templates", {
            "user_id": normalize_uuid(user_id),
            "name": payload.name,
            "description": payload.description,
            "target_entity_type": payload.target_entity_type.value if payload.target_entity_type else None,
            "is_active": True,
        })
        logger.info(f"Created task template: {template['id']} for user: {user_id}")

        items = []
        if payload.items:
            client = SupabaseClient.get_client()
            client.table("task_template_items").insert([
                {
                    "template_id": template["id"],
                    "title": item.title,
                    "description": item.description,
                    "day_offset": item.day_offset,
                    "sort_order": index if item.sort_order is None else item.sort_order,
                    "owner_scope": item.owner_scope.value,
                }
                for index, item in enumerate(payload.items)
            ]).execute()
            items = _template_items(template["id"])

        template["items"] = items
        return template

    @staticmethod
    def list_templates(
        user_id: UUID | str,
        target_entity_type: str | None = None,
        is_active: bool | None = None,
    ) -> list[dict[str, Any]]:
        """Templates by name, each with item_count and max_day_offset."""
        client = SupabaseClient.get_client()
        query = client.table("task_templates").select("*").eq("user_id", normalize_uuid(user_id))
        if target_entity_type:
            query = query.eq("target_entity_type", target_entity_type)
        if is_active is not None:
            query = query.eq("is_active", is_active)
        templates = query.order("name").execute().data or []

        template_ids = [t["id"] for t in templates]
        items: list[dict[str, Any]] = []
        if template_ids:
            items = (
                client.table("task_template_items")
                .select("template_id, day_offset")
                .in_("template_id", template_ids)
                .execute()
            ).data or []

        for template in templates:
            offsets = [i.get("day_offset") or 0 for i in items if i["template_id"] == template["id"]]
            template["item_count"] = len(offsets)
            template["max_day_offset"] = max(offsets, default=0)
        return templates

    @staticmethod
    def get_template(user_id: UUID | str, template_id: UUID | str) -> dict[str, Any]:
        template = _require_template(user_id, template_id)
        template["items"] = _template_items(template["id"])
        return template

    @staticmethod
    def update_template(
        user_id: UUID | str,
        template_id: UUID | str,
        payload: TemplateUpdate,
    ) -> dict[str, Any]:
        template = _require_template(user_id, template_id)
        changes = changes_from(payload)
        if not changes:
            return template
        client = SupabaseClient.get_client()
        return first_row(
            client.table("task_templates")
            .update(changes)
            .eq("id", template["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        ) or {**template, **changes}

    @staticmethod
    def delete_template(user_id: UUID | str, template_id: UUID | str) -> None:
        template = _require_template(user_id, template_id)
        client = SupabaseClient.get_client()
        client.table("task_template_items").delete().eq("template_id", template["id"]).execute()
        client.table("task_templates").delete().eq("id", template["id"]).execute()
        logger.info(f"Deleted task template: {template_id}")

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    @staticmethod
    def add_item(
        user_id: UUID | str,
        template_id: UUID | str,
        payload: TemplateItemCreate,
    ) -> dict[str, Any]:
        """Append an item (after the last one unless sort_order is given)."""
        template = _require_template(user_id, template_id)
        sort_order = payload.sort_order
        if sort_order is None:
            sort_order = SupabaseClient.next_sort_order(
                "task_template_items", {"template_id": template["id"]}
            )
        return SupabaseClient.insert_one("task_template_items", {
            "template_id": template["id"],
            "title": payload.title,
            "description": payload.description,
            "day_offset": payload.day_offset,
            "sort_order": sort_order,
            "owner_scope": payload.owner_scope.value,
        })

    @staticmethod
    def update_item(
        user_id: UUID | str,
        template_id: UUID | str,
        item_id: UUID | str,
        payload: TemplateItemUpdate,
    ) -> dict[str, Any]:
        template = _require_template(user_id, template_id)
        client = SupabaseClient.get_client()
        changes = changes_from(payload)

        item = first_row(
            client.table("task_template_items")
            .select("*")
            .eq("id", normalize_uuid(item_id))
            .eq("template_id", template["id"])
            .limit(1)
            .execute()
        )
        if not item:
            raise NotFoundError("template_item", str(item_id))
        if not changes:
            return item

        return first_row(
            client.table("task_template_items").update(changes).eq("id", item["id"]).execute()
        ) or {**item, **changes}

    @staticmethod
    def delete_item(user_id: UUID | str, template_id: UUID | str, item_id: UUID | str) -> None:
        template = _require_template(user_id, template_id)
        response = (
            SupabaseClient.get_client()
            .table("task_template_items")
            .delete()
            .eq("id", normalize_uuid(item_id))
            .eq("template_id", template["id"])
            .execute()
        )
        if not response.data:
            raise NotFoundError("template_item", str(item_id))

    @staticmethod
    def reorder_items(
        user_id: UUID | str,
        template_id: UUID | str,
        item_ids: list[UUID | str],
    ) -> list[dict[str, Any]]:
        """Set sort_order to each item's position in item_ids."""
        template = _require_template(user_id, template_id)
        client = SupabaseClient.get_client()
        for index, item_id in enumerate(item_ids):
            client.table("task_template_items").update({"sort_order": index}).eq(
                "id", normalize_uuid(item_id)
            ).eq("template_id", template["id"]).execute()
        return _template_items(template["id"])

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    @staticmethod
    def apply_template(
        user_id: UUID | str,
        template_id: UUID | str,
        entity_type: TaskEntityType,
        entity_id: UUID | str,
        reference_date: date | None = None,
    ) -> list[dict[str, Any]]:
        """
        Create one open task per template item, due reference_date + day_offset.

        Returns:
            Created tasks in item order

        Raises:
            NotFoundError: If the template isn't the user's or the entity isn't
            ValidationFailedError: If the template is inactive
        """
        template = _require_template(user_id, template_id)
        _require_entity(user_id, entity_type, entity_id)
        if template.get("is_active") is False:
            raise ValidationFailedError(
                "This template is inactive",
                suggestion="Activate the template before applying it",
            )

        items = _template_items(template["id"])
        if not items:
            return []

        reference_date = reference_date or date.today()
        rows = [
            {
                "user_id": normalize_uuid(user_id),
                "title": item["title"],
                "description": item.get("description"),
                "due_date": (reference_date + timedelta(days=item.get("day_offset") or 0)).isoformat(),
                "entity_type": entity_type.value,
                "entity_id": normalize_uuid(entity_id),
                "owner_scope": item.get("owner_scope") or TaskOwnerScope.ME.value,
                "status": TaskStatus.OPEN.value,
                "is_system": False,
                "template_id": template["id"],
            }
            for item in items
        ]
        tasks = SupabaseClient.get_client().table("tasks").insert(rows).execute().data or []
        logger.info(f"Applied template {template_id} to {entity_type.value} {entity_id}: {len(tasks)} tasks")
        return tasks
