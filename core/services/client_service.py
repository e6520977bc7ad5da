# =============================================================================
# core/services/client_service.py - Client & Contact Business Logic
# =============================================================================
# Handles client and contact CRUD, bulk operations and the client_contacts
# link table. Separates HTTP concerns from database/business logic.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import ValidationFailedError
from core.models.client import (
    ClientContactLink,
    ClientCreate,
    ClientType,
    ClientUpdate,
    ContactCreate,
    ContactUpdate,
)
from core.services.activity_service import ActivityService
from core.services.common import (
    changes_from,
    insert_unique,
    linked_contacts,
    require_ids,
    require_owned,
    soft_delete,
    update_owned,
)
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

# Fields that may be changed on several clients at once
BULK_UPDATABLE_FIELDS = {"type"}


def contact_full_name(contact: dict[str, Any]) -> str:
    """First name and last name, or just the last name."""
    if contact.get("prenom"):
        return f"{contact['prenom']} {contact.get('nom') or ''}".strip()
    return contact.get("nom") or ""


class ClientService:
    """
    Service for client management operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_client(user_id: UUID | str, payload: ClientCreate) -> dict[str, Any]:
        """
        Create a client.

        Args:
            user_id: Owner
            payload: Validated client fields

        Returns:
            Created client row
        """
        data = payload.model_dump(mode="json")
        data["user_id"] = normalize_uuid(user_id)

        client = SupabaseClient.insert_one("clients", data)
        logger.info(f"Created client: {client['id']} for user: {user_id}")
        ActivityService.log(user_id, "create", "client", client["id"], client.get("nom"))
        return client

    @staticmethod
    def list_clients(
        user_id: UUID | str,
        client_type: ClientType | None = None,
        is_supplier: bool | None = None,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List active clients ordered by name.

        Args:
            user_id: Owner
            client_type: Only this legal form
            is_supplier: Only suppliers (True) or non-suppliers (False)
            search: Case-insensitive substring of the name
        """
        client = SupabaseClient.get_client()
        query = (
            client.table("clients")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .is_("deleted_at", "null")
        )
        if client_type:
            query = query.eq("type", client_type.value)
        if is_supplier is not None:
            query = query.eq("is_supplier", is_supplier)
        if search:
            query = query.ilike("nom", f"%{search}%")

        return query.order("nom").execute().data or []

    @staticmethod
    def get_client(user_id: UUID | str, client_id: UUID | str) -> dict[str, Any]:
        """
        Get a client with its linked contacts.

        Raises:
            NotFoundError: If the client is missing, trashed or foreign
        """
        row = require_owned("clients", client_id, user_id, "client")
        row["contacts"] = linked_contacts("client_contacts", "client_id", row["id"], user_id)
        return row

    @staticmethod
    def update_client(
        user_id: UUID | str,
        client_id: UUID | str,
        payload: ClientUpdate,
    ) -> dict[str, Any]:
        row = update_owned("clients", client_id, user_id, changes_from(payload), "client")
        ActivityService.log(user_id, "update", "client", row["id"], row.get("nom"))
        return row

    @staticmethod
    def delete_client(user_id: UUID | str, client_id: UUID | str) -> None:
        """Move a client to the trash."""
        row = soft_delete("clients", client_id, user_id, "client")
        ActivityService.log(user_id, "delete", "client", row["id"], row.get("nom"))

    # -------------------------------------------------------------------------
    # Bulk Operations
    # -------------------------------------------------------------------------

    @staticmethod
    def bulk_delete(user_id: UUID | str, ids: list[UUID | str]) -> int:
        """
        Trash several clients at once.

        Returns:
            Number of clients actually trashed (missing/foreign ids are skipped)
        """
        id_list = require_ids(ids)
        client = SupabaseClient.get_client()
        response = (
            client.table("clients")
            .update({"deleted_at": utc_now_iso()})
            .eq("user_id", normalize_uuid(user_id))
            .in_("id", id_list)
            .is_("deleted_at", "null")
            .execute()
        )
        deleted = len(response.data or [])
        logger.info(f"Bulk deleted {deleted} clients for user: {user_id}")
        return deleted

    @staticmethod
    def bulk_update(
        user_id: UUID | str,
        ids: list[UUID | str],
        updates: dict[str, Any],
    ) -> int:
        """
        Change the type of several clients.

        Raises:
            ValidationFailedError: If no allowed field is given or the type is invalid
        """
        id_list = require_ids(ids)
        changes = {k: v for k, v in updates.items() if k in BULK_UPDATABLE_FIELDS}
        if not changes:
            raise ValidationFailedError(
                "No valid field to update",
                suggestion=f"Allowed fields: {', '.join(sorted(BULK_UPDATABLE_FIELDS))}",
            )

        valid_types = [t.value for t in ClientType]
        if changes["type"] not in valid_types:
            raise ValidationFailedError(
                f"Invalid type ({', '.join(valid_types)})",
                details={"type": changes["type"]},
            )

        client = SupabaseClient.get_client()
        response = (
            client.table("clients")
            .update(changes)
            .eq("user_id", normalize_uuid(user_id))
            .in_("id", id_list)
            .is_("deleted_at", "null")
            .execute()
        )
        return len(response.data or [])

    # -------------------------------------------------------------------------
    # Contact Links
    # -------------------------------------------------------------------------

    @staticmethod
    def link_contact(
        user_id: UUID | str,
        client_id: UUID | str,
        payload: ClientContactLink,
    ) -> dict[str, Any]:
        """
        Link a contact to a client.

        Marking the link primary clears the primary flag of the client's
        other contacts.

        Raises:
            NotFoundError: If the client or contact isn't the user's
            ConflictError: If the contact is already linked
        """
        require_owned("clients", client_id, user_id, "client", columns="id")
        require_owned("contacts", payload.contact_id, user_id, "contact", columns="id")

        client_id_str = normalize_uuid(client_id)
        if payload.is_primary:
            SupabaseClient.get_client().table("client_contacts").update(
                {"is_primary": False}
            ).eq("client_id", client_id_str).execute()

        return insert_unique(
            "client_contacts",
            {
                "client_id": client_id_str,
                "contact_id": normalize_uuid(payload.contact_id),
                "is_primary": payload.is_primary,
                "role": payload.role,
            },
            "This contact is already linked to this client",
        )

    @staticmethod
    def unlink_contact(
        user_id: UUID | str,
        client_id: UUID | str,
        contact_id: UUID | str,
    ) -> None:
        require_owned("clients", client_id, user_id, "client", columns="id")
        SupabaseClient.get_client().table("client_contacts").delete().eq(
            "client_id", normalize_uuid(client_id)
        ).eq("contact_id", normalize_uuid(contact_id)).execute()


class ContactService:
    """Service for contact CRUD."""

    @staticmethod
    def create_contact(user_id: UUID | str, payload: ContactCreate) -> dict[str, Any]:
        data = payload.model_dump(mode="json")
        data["user_id"] = normalize_uuid(user_id)
        contact = SupabaseClient.insert_one("contacts", data)
        logger.info(f"Created contact: {contact['id']} for user: {user_id}")
        return contact

    @staticmethod
    def list_contacts(user_id: UUID | str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table("contacts")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .is_("deleted_at", "null")
            .order("nom")
            .execute()
        ).data or []

    @staticmethod
    def get_contact(user_id: UUID | str, contact_id: UUID | str) -> dict[str, Any]:
        return require_owned("contacts", contact_id, user_id, "contact")

    @staticmethod
    def update_contact(
        user_id: UUID | str,
        contact_id: UUID | str,
        payload: ContactUpdate,
    ) -> dict[str, Any]:
        return update_owned("contacts", contact_id, user_id, changes_from(payload), "contact")

    @staticmethod
    def delete_contact(user_id: UUID | str, contact_id: UUID | str) -> None:
        soft_delete("contacts", contact_id, user_id, "contact")
