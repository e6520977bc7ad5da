# =============================================================================
# core/services/common.py - Shared Service Helpers
# =============================================================================
# Small building blocks used by every service:
# - require_owned: tenant-scoped lookup that raises NotFoundError
# - require_owned_ids: the same check for a list of referenced ids
# - soft_delete: stamp deleted_at on an owned row
# - changes_from: turn a partial-update model into a column dict
# - insert_unique: insert that turns unique violations into ConflictError
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError
from pydantic import BaseModel

from app.exceptions import ConflictError, NotFoundError, ValidationFailedError
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row, is_unique_violation
from lib.utils import normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)


def require_owned(
    table: str,
    row_id: str | UUID,
    user_id: str | UUID,
    entity: str,
    owner_column: str = "user_id",
    columns: str = "*",
    soft_delete: bool = True,
) -> dict[str, Any]:
    """
    Fetch a row the user owns or raise NotFoundError.

    Rows owned by another user are reported as missing so their existence
    isn't revealed.
    """
    row = SupabaseClient.fetch_owned(
        table,
        row_id,
        user_id,
        owner_column=owner_column,
        columns=columns,
        soft_delete=soft_delete,
    )
    if row is None:
        raise NotFoundError(entity, str(row_id))
    return row


def require_owned_ids(
    table: str,
    ids: list[Any],
    user_id: str | UUID,
    entity: str,
    owner_column: str = "user_id",
    soft_delete: bool = True,
) -> list[str]:
    """
    Check that every id is a row the user owns.

    Returns:
        The ids normalized, duplicates removed, in request order

    Raises:
        NotFoundError: For the first id that is missing, trashed or foreign
    """
    wanted = list(dict.fromkeys(normalize_uuid(i) for i in ids))
    if not wanted:
        return []

    query = (
        SupabaseClient.get_client()
        .table(table)
        .select("id")
        .in_("id", wanted)
        .eq(owner_column, normalize_uuid(user_id))
    )
    if soft_delete:
        query = query.is_("deleted_at", "null")
    found = {row["id"] for row in query.execute().data or []}

    for row_id in wanted:
        if row_id not in found:
            raise NotFoundError(entity, row_id)
    return wanted


def soft_delete(
    table: str,
    row_id: str | UUID,
    user_id: str | UUID,
    entity: str,
    owner_column: str = "user_id",
) -> dict[str, Any]:
    """
    Move a row to the trash.

    Returns:
        The trashed row

    Raises:
        NotFoundError: If the row is missing, foreign or already trashed
    """
    client = SupabaseClient.get_client()
    response = (
        client.table(table)
        .update({"deleted_at": utc_now_iso()})
        .eq("id", normalize_uuid(row_id))
        .eq(owner_column, normalize_uuid(user_id))
        .is_("deleted_at", "null")
        .execute()
    )
    row = first_row(response)
    if row is None:
        raise NotFoundError(entity, str(row_id))

    logger.info(f"Soft deleted {entity} {row_id}")
    return row


def update_owned(
    table: str,
    row_id: str | UUID,
    user_id: str | UUID,
    changes: dict[str, Any],
    entity: str,
    owner_column: str = "user_id",
) -> dict[str, Any]:
    """
    Apply changes to an active owned row and return the updated row.

    An empty change set returns the current row untouched.
    """
    if not changes:
        return require_owned(table, row_id, user_id, entity, owner_column=owner_column)

    client = SupabaseClient.get_client()
    response = (
        client.table(table)
        .update(changes)
        .eq("id", normalize_uuid(row_id))
        .eq(owner_column, normalize_uuid(user_id))
        .is_("deleted_at", "null")
        .execute()
    )
    row = first_row(response)
    if row is None:
        raise NotFoundError(entity, str(row_id))
    return row


def changes_from(payload: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    """Columns explicitly sent in a partial update, JSON-ready (UUIDs and dates as strings)."""
    return payload.model_dump(exclude_unset=True, exclude=exclude, mode="json")


def insert_unique(
    table: str,
    data: dict[str, Any],
    conflict_message: str,
) -> dict[str, Any]:
    """
    Insert a row protected by a unique constraint.

    Raises:
        ConflictError: On unique violation
    """
    try:
        return SupabaseClient.insert_one(table, data)
    except APIError as e:
        if is_unique_violation(e):
            raise ConflictError(conflict_message, code="DUPLICATE")
        raise


def insert_children(table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Insert rows created alongside their parent (contacts, tags, badges).

    These writes are secondary: a failure is logged and the parent
    operation carries on.
    """
    if not rows:
        return []
    client = SupabaseClient.get_client()
    try:
        return client.table(table).insert(rows).execute().data or []
    except (APIError, SupabaseClientError) as e:
        logger.error(f"Failed to insert {len(rows)} rows into {table}: {e}")
        return []


def require_ids(ids: list[Any]) -> list[str]:
    """Bulk endpoints need a non-empty id list."""
    if not ids:
        raise ValidationFailedError("ids is required (non-empty list)")
    return [normalize_uuid(i) for i in ids]


def linked_contacts(
    link_table: str,
    fk: str,
    parent_id: str | UUID,
    user_id: str | UUID,
) -> list[dict[str, Any]]:
    """
    Rows of a <parent>_contacts link table, each with its active contact.

    Links pointing at trashed contacts, or at contacts of another user,
    are left out.
    """
    client = SupabaseClient.get_client()
    links = (
        client.table(link_table)
        .select("*")
        .eq(fk, normalize_uuid(parent_id))
        .execute()
    ).data or []

    contact_ids = [link["contact_id"] for link in links]
    if not contact_ids:
        return []

    contacts = (
        client.table("contacts")
        .select("*")
        .in_("id", contact_ids)
        .eq("user_id", normalize_uuid(user_id))
        .is_("deleted_at", "null")
        .execute()
    ).data or []
    contacts_by_id = {c["id"]: c for c in contacts}

    return [
        {**link, "contact": contacts_by_id[link["contact_id"]]}
        for link in links
        if link["contact_id"] in contacts_by_id
    ]
