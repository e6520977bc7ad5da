# =============================================================================
# core/services/deal_service.py - Deal Business Logic
# =============================================================================
# Handles the sales pipeline:
# - Deal CRUD with automatic contact linking from the client
# - Status changes (free) and the "back to draft" review flow
# - Tags, badges and predefined badges
# - Turning a won deal into a mission
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import ConflictError, ValidationFailedError
from core.models.deal import DealCreate, DealStatus, DealUpdate, PredefinedBadge
from core.models.mission import MissionCreate
from core.services.activity_service import ActivityService
from core.services.common import (
    changes_from,
    insert_children,
    linked_contacts,
    require_owned,
    require_owned_ids,
    soft_delete,
    update_owned,
)
from core.services.label_service import LabelService
from core.services.mission_service import MissionService
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

deal_labels = LabelService("deal")


def _contact_rows(
    deal_id: str,
    requested: list[str],
    client_links: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """
    Build deal_contacts rows.

    Explicit contacts win over the client's contacts. The client's primary
    contact stays primary when it is linked, otherwise the first one is.
    """
    contact_ids = requested or [link["contact_id"] for link in client_links]
    primary_id = next(
        (link["contact_id"] for link in client_links if link.get("is_primary")),
        None,
    )
    return [
        {
            "deal_id": deal_id,
            "contact_id": contact_id,
            "is_primary": contact_id == primary_id if primary_id else index == 0,
        }
        for index, contact_id in enumerate(contact_ids)
    ]


class DealService:
    """
    Service for deal management operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_deal(user_id: UUID | str, payload: DealCreate) -> dict[str, Any]:
        """
        Create a deal in status "new".

        Args:
            user_id: Owner
            payload: Deal fields, optional contacts/tags/badges

        Returns:
            Created deal row

        Raises:
            NotFoundError: If the client or a listed contact isn't the user's
        """
        client_row = require_owned("clients", payload.client_id, user_id, "client", columns="id")
        requested = require_owned_ids("contacts", payload.contacts, user_id, "contact")

        deal = SupabaseClient.insert_one("deals", {
            "user_id": normalize_uuid(user_id),
            "client_id": client_row["id"],
            "title": payload.title,
            "description": payload.description,
            "estimated_amount": payload.estimated_amount,
            "currency": payload.currency or settings.DEFAULT_CURRENCY,
            "received_at": payload.received_at.isoformat() if payload.received_at else utc_now_iso(),
            "status": DealStatus.NEW.value,
        })
        logger.info(f"Created deal: {deal['id']} for user: {user_id}")

        client_links = (
            SupabaseClient.get_client()
            .table("client_contacts")
            .select("contact_id, is_primary")
            .eq("client_id", client_row["id"])
            .execute()
        ).data or []
        insert_children("deal_contacts", _contact_rows(deal["id"], requested, client_links))

        insert_children("deal_tags", [{"deal_id": deal["id"], "tag": tag} for tag in payload.tags])
        insert_children("deal_badges", [{"deal_id": deal["id"], "badge": b} for b in payload.badges])

        ActivityService.log(user_id, "create", "deal", deal["id"], deal.get("title"))
        return deal

    @staticmethod
    def list_deals(
        user_id: UUID | str,
        status: DealStatus | None = None,
        client_id: UUID | str | None = None,
    ) -> list[dict[str, Any]]:
        """List active deals, newest first."""
        client = SupabaseClient.get_client()
        query = (
            client.table("deals")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .is_("deleted_at", "null")
        )
        if status:
            query = query.eq("status", status.value)
        if client_id:
            query = query.eq("client_id", normalize_uuid(client_id))

        return query.order("created_at", desc=True).execute().data or []

    @staticmethod
    def get_deal(user_id: UUID | str, deal_id: UUID | str) -> dict[str, Any]:
        """
        Get a deal with its relations.

        Documents are the deal's active quotes and proposals, newest first,
        each wrapped as {id, document_type, quote_id, proposal_id, quote,
        proposal, created_at}.

        Raises:
            NotFoundError: If missing, trashed or foreign
        """
        deal = require_owned("deals", deal_id, user_id, "deal")
        client = SupabaseClient.get_client()
        deal_id_str = deal["id"]

        owner_id = normalize_uuid(user_id)
        deal["client"] = first_row(
            client.table("clients")
            .select("id, nom")
            .eq("id", deal["client_id"])
            .eq("user_id", owner_id)
            .limit(1)
            .execute()
        )
        deal["contacts"] = linked_contacts("deal_contacts", "deal_id", deal_id_str, user_id)

        quotes = (
            client.table("quotes")
            .select("*")
            .eq("deal_id", deal_id_str)
            .eq("user_id", owner_id)
            .is_("deleted_at", "null")
            .execute()
        ).data or []
        proposals = (
            client.table("proposals")
            .select("*")
            .eq("deal_id", deal_id_str)
            .eq("owner_user_id", owner_id)
            .is_("deleted_at", "null")
            .execute()
        ).data or []

        documents = [
            {
                "id": q["id"],
                "deal_id": deal_id_str,
                "document_type": "quote",
                "quote_id": q["id"],
                "proposal_id": None,
                "quote": q,
                "proposal": None,
                "created_at": q.get("created_at"),
            }
            for q in quotes
        ] + [
            {
                "id": p["id"],
                "deal_id": deal_id_str,
                "document_type": "proposal",
                "quote_id": None,
                "proposal_id": p["id"],
                "quote": None,
                "proposal": p,
                "created_at": p.get("created_at"),
            }
            for p in proposals
        ]
        documents.sort(key=lambda d: d["created_at"] or "", reverse=True)
        deal["documents"] = documents

        deal["tags"] = deal_labels.list_tags(deal_id_str)
        deal["badges"] = deal_labels.list_badges(deal_id_str)

        deal["mission"] = None
        if deal.get("mission_id"):
            deal["mission"] = first_row(
                client.table("missions")
                .select("id, title, status")
                .eq("id", deal["mission_id"])
                .is_("deleted_at", "null")
                .limit(1)
                .execute()
            )
        return deal

    @staticmethod
    def update_deal(
        user_id: UUID | str,
        deal_id: UUID | str,
        payload: DealUpdate,
    ) -> dict[str, Any]:
        changes = changes_from(payload)
        if "client_id" in changes:
            require_owned("clients", changes["client_id"], user_id, "client", columns="id")

        deal = update_owned("deals", deal_id, user_id, changes, "deal")
        ActivityService.log(user_id, "update", "deal", deal["id"], deal.get("title"))
        return deal

    @staticmethod
    def update_status(
        user_id: UUID | str,
        deal_id: UUID | str,
        new_status: DealStatus,
    ) -> dict[str, Any]:
        """Set any pipeline stage; deals have no transition rules."""
        deal = update_owned("deals", deal_id, user_id, {"status": new_status.value}, "deal")
        logger.info(f"Deal {deal_id} status -> {new_status.value}")
        ActivityService.log(user_id, "status_change", "deal", deal["id"], deal.get("title"))
        return deal

    @staticmethod
    def back_to_draft(user_id: UUID | str, deal_id: UUID | str) -> dict[str, Any]:
        """
        Put a deal back in draft.

        Coming back from "sent" means the client asked for changes, so the
        REVIEW badge is added.
        """
        current = require_owned("deals", deal_id, user_id, "deal", columns="id, status")
        deal = DealService.update_status(user_id, deal_id, DealStatus.DRAFT)

        if current["status"] == DealStatus.SENT.value:
            review = PredefinedBadge.REVIEW
            try:
                deal_labels.add_badge(deal["id"], review.value, review.variant)
            except ConflictError:
                logger.debug(f"Deal {deal_id} already has the REVIEW badge")
        return deal

    @staticmethod
    def delete_deal(user_id: UUID | str, deal_id: UUID | str) -> None:
        deal = soft_delete("deals", deal_id, user_id, "deal")
        ActivityService.log(user_id, "delete", "deal", deal["id"], deal.get("title"))

    # -------------------------------------------------------------------------
    # Contacts
    # -------------------------------------------------------------------------

    @staticmethod
    def list_contacts(user_id: UUID | str, deal_id: UUID | str) -> dict[str, Any]:
        """
        Contacts linked to the deal, plus every contact of its client with a
        linked_to_deal flag (to pick from).
        """
        deal = require_owned("deals", deal_id, user_id, "deal", columns="id, client_id")
        deal_contacts = linked_contacts("deal_contacts", "deal_id", deal["id"], user_id)
        linked_ids = {dc["contact_id"] for dc in deal_contacts}

        client_contacts = [
            {**cc, "linked_to_deal": cc["contact_id"] in linked_ids}
            for cc in linked_contacts("client_contacts", "client_id", deal["client_id"], user_id)
        ]
        return {"deal_contacts": deal_contacts, "client_contacts": client_contacts}

    @staticmethod
    def replace_contacts(
        user_id: UUID | str,
        deal_id: UUID | str,
        contact_ids: list[UUID | str],
    ) -> list[dict[str, Any]]:
        """
        Replace the deal's contacts; the first one becomes primary.

        Raises:
            NotFoundError: If the deal or one of the contacts isn't the user's
        """
        deal = require_owned("deals", deal_id, user_id, "deal", columns="id")
        contact_ids = require_owned_ids("contacts", contact_ids, user_id, "contact")
        client = SupabaseClient.get_client()
        client.table("deal_contacts").delete().eq("deal_id", deal["id"]).execute()

        rows = [
            {"deal_id": deal["id"], "contact_id": cid, "is_primary": index == 0}
            for index, cid in enumerate(contact_ids)
        ]
        if not rows:
            return []
        return client.table("deal_contacts").insert(rows).execute().data or []

    # -------------------------------------------------------------------------
    # Tags & Badges
    # -------------------------------------------------------------------------

    @staticmethod
    def add_tag(user_id: UUID | str, deal_id: UUID | str, tag: str, color: str = "gray") -> dict[str, Any]:
        require_owned("deals", deal_id, user_id, "deal", columns="id")
        return deal_labels.add_tag(deal_id, tag, color)

    @staticmethod
    def remove_tag(user_id: UUID | str, deal_id: UUID | str, tag: str) -> None:
        require_owned("deals", deal_id, user_id, "deal", columns="id")
        deal_labels.remove_tag(deal_id, tag)

    @staticmethod
    def add_badge(
        user_id: UUID | str,
        deal_id: UUID | str,
        badge: str,
        variant: str = "default",
    ) -> dict[str, Any]:
        require_owned("deals", deal_id, user_id, "deal", columns="id")
        return deal_labels.add_badge(deal_id, badge, variant)

    @staticmethod
    def add_predefined_badge(
        user_id: UUID | str,
        deal_id: UUID | str,
        code: PredefinedBadge,
    ) -> dict[str, Any]:
        """Add URGENT, VIP or REVIEW with its fixed color."""
        return DealService.add_badge(user_id, deal_id, code.value, code.variant)

    @staticmethod
    def remove_badge(user_id: UUID | str, deal_id: UUID | str, badge: str) -> None:
        require_owned("deals", deal_id, user_id, "deal", columns="id")
        deal_labels.remove_badge(deal_id, badge)

    @staticmethod
    def get_tag_library(user_id: UUID | str) -> list[dict[str, Any]]:
        """Tags the user already used, most used first."""
        client = SupabaseClient.get_client()
        return (
            client.table("user_tag_library")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("usage_count", desc=True)
            .order("tag")
            .execute()
        ).data or []

    # -------------------------------------------------------------------------
    # Mission
    # -------------------------------------------------------------------------

    @staticmethod
    def create_mission_from_deal(user_id: UUID | str, deal_id: UUID | str) -> dict[str, Any]:
        """
        Turn a won deal into a mission.

        Returns:
            {"mission": row, "already_existed": bool}

        Raises:
            NotFoundError: If the deal isn't the user's
            ValidationFailedError: If the deal isn't won
        """
        deal = require_owned("deals", deal_id, user_id, "deal")
        if deal["status"] != DealStatus.WON.value:
            raise ValidationFailedError(
                "The deal must be won to create a mission",
                suggestion="Set the deal status to 'won' first",
                details={"status": deal["status"]},
            )

        if deal.get("mission_id"):
            existing = SupabaseClient.fetch_owned("missions", deal["mission_id"], user_id)
            if existing:
                return {"mission": existing, "already_existed": True}

        contact_links = (
            SupabaseClient.get_client()
            .table("deal_contacts")
            .select("contact_id")
            .eq("deal_id", deal["id"])
            .execute()
        ).data or []

        mission = MissionService.create_mission(user_id, MissionCreate(
            client_id=deal["client_id"],
            deal_id=deal["id"],
            title=deal["title"],
            description=deal.get("description"),
            estimated_amount=deal.get("final_amount") or deal.get("estimated_amount"),
            visible_on_verifolio=False,
            contacts=[link["contact_id"] for link in contact_links],
        ))

        update_owned("deals", deal["id"], user_id, {"mission_id": mission["id"]}, "deal")
        logger.info(f"Created mission {mission['id']} from deal {deal_id}")
        return {"mission": mission, "already_existed": False}
