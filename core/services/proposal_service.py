# =============================================================================
# core/services/proposal_service.py - Proposal Business Logic
# =============================================================================
# Proposals are owned through owner_user_id (not user_id). A proposal is
# created from a deal and a template, gets its own copy of the template
# sections and a public token used by the unauthenticated share link.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError

from app.config import settings
from app.exceptions import DatabaseError, NotFoundError
from core.models.proposal import (
    STATUS_TIMESTAMPS,
    ProposalCreate,
    ProposalSectionUpdate,
    ProposalStatus,
    ProposalUpdate,
    ProposalVariableInput,
)
from core.services.common import (
    changes_from,
    insert_children,
    linked_contacts,
    require_owned,
    soft_delete,
    update_owned,
)
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import generate_token, normalize_uuid, utc_now_iso
from lib.variables import build_context_from_proposal, render_sections

logger = logging.getLogger(__name__)

OWNER = "owner_user_id"


def _require_proposal(user_id: UUID | str, proposal_id: UUID | str, columns: str = "*") -> dict[str, Any]:
    return require_owned("proposals", proposal_id, user_id, "proposal", owner_column=OWNER, columns=columns)


class ProposalService:
    """
    Service for proposal operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_from_deal(user_id: UUID | str, payload: ProposalCreate) -> dict[str, Any]:
        """
        Create a proposal for a deal from a template.

        The client comes from the deal. Template sections are copied; if that
        copy fails the proposal is removed again.

        Args:
            user_id: Owner
            payload: deal_id, template_id and an optional title

        Returns:
            Created proposal row

        Raises:
            NotFoundError: If the deal or template isn't accessible
            DatabaseError: If the sections couldn't be copied
        """
        deal = require_owned("deals", payload.deal_id, user_id, "deal", columns="id, title, client_id")
        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)

        template = first_row(
            client.table("proposal_templates")
            .select("*")
            .eq("id", normalize_uuid(payload.template_id))
            .limit(1)
            .execute()
        )
        if not template or not (template.get(OWNER) == user_id_str or template.get("is_system")):
            raise NotFoundError("template", str(payload.template_id))

        proposal = SupabaseClient.insert_one("proposals", {
            OWNER: user_id_str,
            "deal_id": deal["id"],
            "client_id": deal["client_id"],
            "template_id": template["id"],
            "title": payload.title or f"Proposition - {deal['title']}",
            "theme_override": None,
            "public_token": generate_token(settings.PUBLIC_TOKEN_LENGTH),
            "status": ProposalStatus.DRAFT.value,
        })
        logger.info(f"Created proposal: {proposal['id']} for deal: {deal['id']}")

        template_sections = (
            client.table("proposal_template_sections")
            .select("*")
            .eq("template_id", template["id"])
            .order("position")
            .execute()
        ).data or []

        if template_sections:
            try:
                client.table("proposal_sections").insert([
                    {
                        "proposal_id": proposal["id"],
                        "title": s.get("title"),
                        "body": s.get("body"),
                        "position": s.get("position", index),
                        "is_enabled": s.get("is_enabled", True),
                    }
                    for index, s in enumerate(template_sections)
                ]).execute()
            except (APIError, SupabaseClientError) as e:
                client.table("proposals").delete().eq("id", proposal["id"]).execute()
                raise DatabaseError("copy proposal sections", str(e))

        client_row = first_row(
            client.table("clients").select("nom").eq("id", deal["client_id"]).limit(1).execute()
        )
        company = first_row(
            client.table("companies").select("name").eq("user_id", user_id_str).limit(1).execute()
        )
        insert_children("proposal_variables", [
            {"proposal_id": proposal["id"], "key": "client_name", "value": (client_row or {}).get("nom") or ""},
            {"proposal_id": proposal["id"], "key": "deal_title", "value": deal.get("title") or ""},
            {"proposal_id": proposal["id"], "key": "company_name", "value": (company or {}).get("name") or ""},
            {"proposal_id": proposal["id"], "key": "contact_name", "value": ""},
        ])
        return proposal

    @staticmethod
    def list_proposals(
        user_id: UUID | str,
        status: ProposalStatus | None = None,
        client_id: UUID | str | None = None,
        deal_id: UUID | str | None = None,
    ) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = (
            client.table("proposals")
            .select("*")
            .eq(OWNER, normalize_uuid(user_id))
            .is_("deleted_at", "null")
        )
        if status:
            query = query.eq("status", status.value)
        if client_id:
            query = query.eq("client_id", normalize_uuid(client_id))
        if deal_id:
            query = query.eq("deal_id", normalize_uuid(deal_id))

        return query.order("created_at", desc=True).execute().data or []

    @staticmethod
    def _with_relations(proposal: dict[str, Any]) -> dict[str, Any]:
        """Attach sections (by position), variables, recipients, deal, client and company."""
        client = SupabaseClient.get_client()
        proposal_id = proposal["id"]

        sections = (
            client.table("proposal_sections")
            .select("*")
            .eq("proposal_id", proposal_id)
            .execute()
        ).data or []
        proposal["sections"] = sorted(sections, key=lambda s: s.get("position") or 0)

        proposal["variables"] = (
            client.table("proposal_variables")
            .select("*")
            .eq("proposal_id", proposal_id)
            .execute()
        ).data or []

        owner_id = proposal[OWNER]
        proposal["recipients"] = linked_contacts("proposal_recipients", "proposal_id", proposal_id, owner_id)

        proposal["deal"] = None
        if proposal.get("deal_id"):
            proposal["deal"] = first_row(
                client.table("deals")
                .select("*")
                .eq("id", proposal["deal_id"])
                .eq("user_id", owner_id)
                .limit(1)
                .execute()
            )
        proposal["client"] = None
        if proposal.get("client_id"):
            proposal["client"] = first_row(
                client.table("clients")
                .select("*")
                .eq("id", proposal["client_id"])
                .eq("user_id", owner_id)
                .limit(1)
                .execute()
            )
        proposal["company"] = first_row(
            client.table("companies").select("*").eq("user_id", owner_id).limit(1).execute()
        )
        return proposal

    @staticmethod
    def get_proposal(user_id: UUID | str, proposal_id: UUID | str) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If missing, trashed or foreign
        """
        return ProposalService._with_relations(_require_proposal(user_id, proposal_id))

    @staticmethod
    def get_by_token(token: str) -> dict[str, Any]:
        """
        Public lookup through the share token. No authentication.

        Raises:
            NotFoundError: If no active proposal has this token
        """
        client = SupabaseClient.get_client()
        proposal = first_row(
            client.table("proposals")
            .select("*")
            .eq("public_token", token)
            .is_("deleted_at", "null")
            .limit(1)
            .execute()
        )
        if not proposal:
            raise NotFoundError("proposal")
        return ProposalService._with_relations(proposal)

    @staticmethod
    def render(proposal: dict[str, Any]) -> dict[str, Any]:
        """Enabled sections with their {{variables}} substituted."""
        context = build_context_from_proposal(proposal)
        enabled = [s for s in proposal.get("sections") or [] if s.get("is_enabled", True)]
        return {
            "id": proposal["id"],
            "title": proposal.get("title"),
            "status": proposal.get("status"),
            "sections": render_sections(enabled, context),
        }

    @staticmethod
    def update_proposal(
        user_id: UUID | str,
        proposal_id: UUID | str,
        payload: ProposalUpdate,
    ) -> dict[str, Any]:
        return update_owned(
            "proposals", proposal_id, user_id, changes_from(payload), "proposal", owner_column=OWNER
        )

    @staticmethod
    def set_status(
        user_id: UUID | str,
        proposal_id: UUID | str,
        status: ProposalStatus,
    ) -> dict[str, Any]:
        """Change the status and stamp sent_at / accepted_at / refused_at."""
        changes: dict[str, Any] = {"status": status.value}
        column = STATUS_TIMESTAMPS.get(status)
        if column:
            changes[column] = utc_now_iso()

        proposal = update_owned("proposals", proposal_id, user_id, changes, "proposal", owner_column=OWNER)
        logger.info(f"Proposal {proposal_id} status -> {status.value}")
        return proposal

    @staticmethod
    def delete_proposal(user_id: UUID | str, proposal_id: UUID | str) -> None:
        soft_delete("proposals", proposal_id, user_id, "proposal", owner_column=OWNER)

    @staticmethod
    def update_section(
        user_id: UUID | str,
        proposal_id: UUID | str,
        section_id: UUID | str,
        payload: ProposalSectionUpdate,
    ) -> dict[str, Any]:
        """
        Update one section. Ownership is checked through the parent proposal.

        Raises:
            NotFoundError: If the proposal isn't the user's or the section
                belongs to another proposal
        """
        proposal = _require_proposal(user_id, proposal_id, columns="id")
        client = SupabaseClient.get_client()
        changes = changes_from(payload)

        section = first_row(
            client.table("proposal_sections")
            .select("*")
            .eq("id", normalize_uuid(section_id))
            .eq("proposal_id", proposal["id"])
            .limit(1)
            .execute()
        )
        if not section:
            raise NotFoundError("section", str(section_id))
        if not changes:
            return section

        return first_row(
            client.table("proposal_sections")
            .update(changes)
            .eq("id", section["id"])
            .execute()
        ) or {**section, **changes}

    @staticmethod
    def set_variables(
        user_id: UUID | str,
        proposal_id: UUID | str,
        variables: list[ProposalVariableInput],
    ) -> list[dict[str, Any]]:
        """Replace all custom variables of a proposal."""
        proposal = _require_proposal(user_id, proposal_id, columns="id")
        client = SupabaseClient.get_client()
        client.table("proposal_variables").delete().eq("proposal_id", proposal["id"]).execute()

        if not variables:
            return []
        return client.table("proposal_variables").insert([
            {"proposal_id": proposal["id"], "key": v.key, "value": v.value}
            for v in variables
        ]).execute().data or []
