# =============================================================================
# core/services/mission_service.py - Mission Business Logic
# =============================================================================
# Handles mission CRUD, the status lifecycle, invoice links, suppliers and
# tags/badges. A mission is usually created from a won deal
# (DealService.create_mission_from_deal) but can also be created directly.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import ConflictError, InvalidTransitionError
from core.models.mission import (
    MISSION_TRANSITIONS,
    MissionCreate,
    MissionStatus,
    MissionSupplierCreate,
    MissionUpdate,
    allowed_transitions,
)
from core.services.activity_service import ActivityService
from core.services.common import (
    changes_from,
    insert_children,
    insert_unique,
    linked_contacts,
    require_owned,
    require_owned_ids,
    soft_delete,
    update_owned,
)
from core.services.label_service import LabelService
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

mission_labels = LabelService("mission")


class MissionService:
    """
    Service for mission management operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_mission(user_id: UUID | str, payload: MissionCreate) -> dict[str, Any]:
        """
        Create a mission.

        Contacts are linked with the first one as primary, and the tags of
        the originating deal are copied over.

        Args:
            user_id: Owner
            payload: Mission fields

        Returns:
            Created mission row

        Raises:
            NotFoundError: If the client, the deal or a contact isn't the user's
            ConflictError: If the deal already has a mission
        """
        client = SupabaseClient.get_client()
        require_owned("clients", payload.client_id, user_id, "client", columns="id")

        deal_id = normalize_uuid(payload.deal_id) if payload.deal_id else None
        if deal_id:
            require_owned("deals", deal_id, user_id, "deal", columns="id")
            existing = first_row(
                client.table("missions")
                .select("id")
                .eq("deal_id", deal_id)
                .is_("deleted_at", "null")
                .limit(1)
                .execute()
            )
            if existing:
                raise ConflictError(
                    "A mission already exists for this deal",
                    code="MISSION_EXISTS",
                    details={"mission_id": existing["id"]},
                )

        contact_ids = require_owned_ids("contacts", payload.contacts, user_id, "contact")

        mission = SupabaseClient.insert_one("missions", {
            "user_id": normalize_uuid(user_id),
            "deal_id": deal_id,
            "client_id": normalize_uuid(payload.client_id),
            "title": payload.title,
            "description": payload.description,
            "estimated_amount": payload.estimated_amount,
            "visible_on_verifolio": payload.visible_on_verifolio,
            "status": MissionStatus.IN_PROGRESS.value,
            "started_at": payload.started_at.isoformat() if payload.started_at else utc_now_iso(),
        })
        logger.info(f"Created mission: {mission['id']} for user: {user_id}")

        insert_children("mission_contacts", [
            {
                "mission_id": mission["id"],
                "contact_id": contact_id,
                "is_primary": index == 0,
            }
            for index, contact_id in enumerate(contact_ids)
        ])

        if deal_id:
            deal_tags = (
                client.table("deal_tags")
                .select("tag, color")
                .eq("deal_id", deal_id)
                .execute()
            ).data or []
            insert_children("mission_tags", [
                {"mission_id": mission["id"], "tag": t["tag"], "color": t.get("color") or "gray"}
                for t in deal_tags
            ])

        ActivityService.log(user_id, "create", "mission", mission["id"], mission.get("title"))
        return mission

    @staticmethod
    def list_missions(
        user_id: UUID | str,
        status: MissionStatus | None = None,
        client_id: UUID | str | None = None,
        visible_on_verifolio: bool | None = None,
    ) -> list[dict[str, Any]]:
        """List active missions, newest first."""
        client = SupabaseClient.get_client()
        query = (
            client.table("missions")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .is_("deleted_at", "null")
        )
        if status:
            query = query.eq("status", status.value)
        if client_id:
            query = query.eq("client_id", normalize_uuid(client_id))
        if visible_on_verifolio is not None:
            query = query.eq("visible_on_verifolio", visible_on_verifolio)

        return query.order("created_at", desc=True).execute().data or []

    @staticmethod
    def get_mission(user_id: UUID | str, mission_id: UUID | str) -> dict[str, Any]:
        """
        Get a mission with its relations.

        Returns:
            Mission row plus "client", "deal", "contacts", "invoices",
            "tags" and "badges"

        Raises:
            NotFoundError: If missing, trashed or foreign
        """
        mission = require_owned("missions", mission_id, user_id, "mission")
        client = SupabaseClient.get_client()
        mission_id_str = mission["id"]

        owner_id = normalize_uuid(user_id)
        mission["client"] = first_row(
            client.table("clients")
            .select("id, nom")
            .eq("id", mission["client_id"])
            .eq("user_id", owner_id)
            .limit(1)
            .execute()
        )
        mission["deal"] = None
        if mission.get("deal_id"):
            mission["deal"] = first_row(
                client.table("deals")
                .select("id, title, status")
                .eq("id", mission["deal_id"])
                .eq("user_id", owner_id)
                .limit(1)
                .execute()
            )
        mission["contacts"] = linked_contacts("mission_contacts", "mission_id", mission_id_str, user_id)

        links = (
            client.table("mission_invoices")
            .select("*")
            .eq("mission_id", mission_id_str)
            .execute()
        ).data or []
        invoice_ids = [link["invoice_id"] for link in links]
        mission["invoices"] = []
        if invoice_ids:
            mission["invoices"] = (
                client.table("invoices")
                .select("id, numero, status, total_ttc")
                .in_("id", invoice_ids)
                .eq("user_id", owner_id)
                .is_("deleted_at", "null")
                .execute()
            ).data or []

        mission["tags"] = mission_labels.list_tags(mission_id_str)
        mission["badges"] = mission_labels.list_badges(mission_id_str)
        return mission

    @staticmethod
    def update_mission(
        user_id: UUID | str,
        mission_id: UUID | str,
        payload: MissionUpdate,
    ) -> dict[str, Any]:
        mission = update_owned("missions", mission_id, user_id, changes_from(payload), "mission")
        ActivityService.log(user_id, "update", "mission", mission["id"], mission.get("title"))
        return mission

    @staticmethod
    def update_status(
        user_id: UUID | str,
        mission_id: UUID | str,
        new_status: MissionStatus,
    ) -> dict[str, Any]:
        """
        Move a mission to a new status.

        Setting the current status again returns the mission unchanged.

        Raises:
            NotFoundError: If missing, trashed or foreign
            InvalidTransitionError: If the lifecycle doesn't allow the change
        """
        mission = require_owned("missions", mission_id, user_id, "mission")
        current = MissionStatus(mission["status"])

        if current == new_status:
            return mission

        if new_status not in MISSION_TRANSITIONS[current]:
            raise InvalidTransitionError(
                "mission", current.value, new_status.value, allowed_transitions(current)
            )

        updated = update_owned(
            "missions", mission_id, user_id, {"status": new_status.value}, "mission"
        )
        logger.info(f"Mission {mission_id} status: {current.value} -> {new_status.value}")
        ActivityService.log(user_id, "status_change", "mission", updated["id"], updated.get("title"))
        return updated

    @staticmethod
    def delete_mission(user_id: UUID | str, mission_id: UUID | str) -> None:
        mission = soft_delete("missions", mission_id, user_id, "mission")
        ActivityService.log(user_id, "delete", "mission", mission["id"], mission.get("title"))

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    @staticmethod
    def link_invoice(
        user_id: UUID | str,
        mission_id: UUID | str,
        invoice_id: UUID | str,
    ) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the mission or invoice isn't the user's
            ConflictError: If the invoice is already linked
        """
        require_owned("missions", mission_id, user_id, "mission", columns="id")
        require_owned("invoices", invoice_id, user_id, "invoice", columns="id")
        return insert_unique(
            "mission_invoices",
            {"mission_id": normalize_uuid(mission_id), "invoice_id": normalize_uuid(invoice_id)},
            "This invoice is already linked to this mission",
        )

    @staticmethod
    def unlink_invoice(
        user_id: UUID | str,
        mission_id: UUID | str,
        invoice_id: UUID | str,
    ) -> None:
        require_owned("missions", mission_id, user_id, "mission", columns="id")
        SupabaseClient.get_client().table("mission_invoices").delete().eq(
            "mission_id", normalize_uuid(mission_id)
        ).eq("invoice_id", normalize_uuid(invoice_id)).execute()

    # -------------------------------------------------------------------------
    # Suppliers
    # -------------------------------------------------------------------------

    @staticmethod
    def list_suppliers(user_id: UUID | str, mission_id: UUID | str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table("mission_suppliers")
            .select("*")
            .eq("mission_id", normalize_uuid(mission_id))
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at")
            .execute()
        ).data or []

    @staticmethod
    def add_supplier(
        user_id: UUID | str,
        mission_id: UUID | str,
        payload: MissionSupplierCreate,
    ) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the mission or supplier isn't the user's
            ConflictError: If the supplier is already on the mission
        """
        require_owned("missions", mission_id, user_id, "mission", columns="id")
        require_owned("clients", payload.supplier_id, user_id, "supplier", columns="id")
        return insert_unique(
            "mission_suppliers",
            {
                "user_id": normalize_uuid(user_id),
                "mission_id": normalize_uuid(mission_id),
                "supplier_id": normalize_uuid(payload.supplier_id),
                "notes": payload.notes,
            },
            "This supplier is already linked to this mission",
        )

    @staticmethod
    def remove_supplier(user_id: UUID | str, mission_supplier_id: UUID | str) -> None:
        SupabaseClient.get_client().table("mission_suppliers").delete().eq(
            "id", normalize_uuid(mission_supplier_id)
        ).eq("user_id", normalize_uuid(user_id)).execute()

    # -------------------------------------------------------------------------
    # Tags & Badges
    # -------------------------------------------------------------------------

    @staticmethod
    def add_tag(user_id: UUID | str, mission_id: UUID | str, tag: str, color: str = "gray") -> dict[str, Any]:
        require_owned("missions", mission_id, user_id, "mission", columns="id")
        return mission_labels.add_tag(mission_id, tag, color)

    @staticmethod
    def remove_tag(user_id: UUID | str, mission_id: UUID | str, tag: str) -> None:
        require_owned("missions", mission_id, user_id, "mission", columns="id")
        mission_labels.remove_tag(mission_id, tag)

    @staticmethod
    def add_badge(
        user_id: UUID | str,
        mission_id: UUID | str,
        badge: str,
        variant: str = "default",
    ) -> dict[str, Any]:
        require_owned("missions", mission_id, user_id, "mission", columns="id")
        return mission_labels.add_badge(mission_id, badge, variant)

    @staticmethod
    def remove_badge(user_id: UUID | str, mission_id: UUID | str, badge: str) -> None:
        require_owned("missions", mission_id, user_id, "mission", columns="id")
        mission_labels.remove_badge(mission_id, badge)
