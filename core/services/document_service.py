# =============================================================================
# core/services/document_service.py - Quotes & Invoices
# =============================================================================
# Quotes and invoices share one implementation:
# - Header row (quotes / invoices) with a generated "numero" and totals
# - Ordered line items (quote_line_items / invoice_line_items)
# - Numbering through lib.numbering with the company's pattern
#
# QuoteService and InvoiceService only differ by their tables, status enum
# and the invoice status rules.
# =============================================================================

import logging
from datetime import date, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import InvalidTransitionError, ValidationFailedError
from core.models.document import (
    InvoiceCreate,
    InvoiceStatus,
    InvoiceUpdate,
    LineItemInput,
    QuoteCreate,
    QuoteStatus,
    QuoteUpdate,
)
from core.services.common import changes_from, insert_unique, require_ids, require_owned, soft_delete
from lib.numbering import DEFAULT_PATTERNS, NumberingError, generate_number, preview_number
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, round_money, utc_now_iso

logger = logging.getLogger(__name__)

# Days between emission and validity (quotes) or due date (invoices)
DEFAULT_TERM_DAYS = 30


# =============================================================================
# Amounts
# =============================================================================

def compute_line(
    item: LineItemInput | dict[str, Any],
    default_rate: float,
    vat_enabled: bool,
    ordre: int,
) -> dict[str, Any]:
    """
    Compute the amounts of one line.

    montant_ht = quantite * prix_unitaire, VAT at the line rate (or the
    default rate), zero VAT when the document isn't subject to VAT.
    """
    data = item.model_dump() if isinstance(item, LineItemInput) else dict(item)
    quantite = float(data.get("quantite") or 1)
    prix_unitaire = float(data.get("prix_unitaire") or 0)
    rate = data.get("tva_rate")
    rate = float(default_rate if rate is None else rate)

    montant_ht = round_money(quantite * prix_unitaire)
    montant_tva = round_money(montant_ht * rate / 100) if vat_enabled else 0.0

    return {
        "description": data["description"],
        "quantite": quantite,
        "prix_unitaire": prix_unitaire,
        "tva_rate": rate,
        "montant_ht": montant_ht,
        "montant_tva": montant_tva,
        "montant_ttc": round_money(montant_ht + montant_tva),
        "ordre": ordre,
    }


def compute_totals(lines: list[dict[str, Any]]) -> dict[str, float]:
    """Document totals are the sums of the line amounts."""
    total_ht = round_money(sum(line["montant_ht"] for line in lines))
    total_tva = round_money(sum(line["montant_tva"] for line in lines))
    return {
        "total_ht": total_ht,
        "total_tva": total_tva,
        "total_ttc": round_money(total_ht + total_tva),
    }


def invoice_allowed_targets(current: InvoiceStatus) -> list[str]:
    """Statuses an invoice may move to from current."""
    allowed = []
    for target in InvoiceStatus:
        if target == current:
            continue
        if target == InvoiceStatus.PAYEE and current not in (
            InvoiceStatus.ENVOYEE,
            InvoiceStatus.PARTIELLE,
        ):
            continue
        if target == InvoiceStatus.ANNULEE and current == InvoiceStatus.PAYEE:
            continue
        allowed.append(target.value)
    return allowed


def get_company(user_id: UUID | str) -> dict[str, Any]:
    """The user's company settings row, or an empty dict when not set up."""
    client = SupabaseClient.get_client()
    row = first_row(
        client.table("companies")
        .select("*")
        .eq("user_id", normalize_uuid(user_id))
        .limit(1)
        .execute()
    )
    return row or {}


# =============================================================================
# Shared Document Logic
# =============================================================================

class DocumentService:
    """
    Behaviour common to quotes and invoices.

    Subclasses set the table names and status enum; all methods are class
    methods so routes call QuoteService.create(...) without instantiation.
    """

    entity: str = ""
    doc_type: str = ""
    table: str = ""
    lines_table: str = ""
    fk: str = ""
    pattern_column: str = ""
    status_enum: type[Enum] = Enum

    # -------------------------------------------------------------------------
    # Numbering
    # -------------------------------------------------------------------------

    @classmethod
    def _pattern(cls, company: dict[str, Any]) -> str:
        configured = {
            "invoice": settings.DEFAULT_INVOICE_PATTERN,
            "quote": settings.DEFAULT_QUOTE_PATTERN,
        }
        return company.get(cls.pattern_column) or configured.get(cls.doc_type) or DEFAULT_PATTERNS[cls.doc_type]

    @classmethod
    def _allocate_number(cls, user_id: str, company: dict[str, Any], on: date) -> str:
        try:
            return generate_number(user_id, cls.doc_type, cls._pattern(company), on)
        except NumberingError as e:
            raise ValidationFailedError(
                f"Invalid {cls.entity} number pattern: {e}",
                suggestion=f"Fix {cls.pattern_column} in the company settings",
            )

    @classmethod
    def preview_next_number(cls, user_id: UUID | str) -> str:
        """Number the next document would get, without consuming the sequence."""
        company = get_company(user_id)
        try:
            return preview_number(normalize_uuid(user_id), cls.doc_type, cls._pattern(company))
        except NumberingError as e:
            raise ValidationFailedError(f"Invalid {cls.entity} number pattern: {e}")

    # -------------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------------

    @classmethod
    def _build_lines(
        cls,
        items: list[LineItemInput] | list[dict[str, Any]],
        company: dict[str, Any],
        vat_enabled: bool,
    ) -> list[dict[str, Any]]:
        default_rate = company.get("default_tax_rate")
        if default_rate is None:
            default_rate = settings.DEFAULT_TAX_RATE
        return [
            compute_line(item, float(default_rate), vat_enabled, index)
            for index, item in enumerate(items)
        ]

    @classmethod
    def _store_lines(cls, document_id: str, lines: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not lines:
            return []
        client = SupabaseClient.get_client()
        rows = [{cls.fk: document_id, **line} for line in lines]
        return client.table(cls.lines_table).insert(rows).execute().data or []

    @classmethod
    def _list_lines(cls, document_id: str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table(cls.lines_table)
            .select("*")
            .eq(cls.fk, document_id)
            .order("ordre")
            .execute()
        ).data or []

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    @classmethod
    def _create(
        cls,
        user_id: UUID | str,
        header: dict[str, Any],
        items: list[LineItemInput] | list[dict[str, Any]],
        vat_enabled: bool | None,
        on: date | None,
    ) -> dict[str, Any]:
        user_id_str = normalize_uuid(user_id)
        client_row = require_owned("clients", header["client_id"], user_id, "client", columns="id, vat_enabled")
        company = get_company(user_id)

        if vat_enabled is None:
            vat_enabled = client_row.get("vat_enabled", True) is not False

        on = on or date.today()
        lines = cls._build_lines(items, company, vat_enabled)

        document = SupabaseClient.insert_one(cls.table, {
            **header,
            "user_id": user_id_str,
            "numero": cls._allocate_number(user_id_str, company, on),
            "status": "brouillon",
            "date_emission": on.isoformat(),
            "devise": header.get("devise") or company.get("default_currency") or settings.DEFAULT_CURRENCY,
            "vat_enabled": vat_enabled,
            **compute_totals(lines),
        })
        logger.info(f"Created {cls.entity} {document['numero']} ({document['id']}) for user: {user_id}")

        document["items"] = cls._store_lines(document["id"], lines)
        return document

    @classmethod
    def list_documents(
        cls,
        user_id: UUID | str,
        status: str | None = None,
        client_id: UUID | str | None = None,
        deal_id: UUID | str | None = None,
    ) -> list[dict[str, Any]]:
        """List active documents, newest first."""
        client = SupabaseClient.get_client()
        query = (
            client.table(cls.table)
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .is_("deleted_at", "null")
        )
        if status:
            query = query.eq("status", status)
        if client_id:
            query = query.eq("client_id", normalize_uuid(client_id))
        if deal_id:
            query = query.eq("deal_id", normalize_uuid(deal_id))

        return query.order("created_at", desc=True).execute().data or []

    @classmethod
    def get(cls, user_id: UUID | str, document_id: UUID | str) -> dict[str, Any]:
        """
        Get a document with its client and ordered lines.

        Raises:
            NotFoundError: If missing, trashed or foreign
        """
        document = require_owned(cls.table, document_id, user_id, cls.entity)
        client = SupabaseClient.get_client()
        document["client"] = first_row(
            client.table("clients").select("*").eq("id", document["client_id"]).limit(1).execute()
        )
        document["items"] = cls._list_lines(document["id"])
        return document

    @classmethod
    def update(
        cls,
        user_id: UUID | str,
        document_id: UUID | str,
        payload: QuoteUpdate | InvoiceUpdate,
    ) -> dict[str, Any]:
        """
        Update header fields; when items are sent they replace the lines and
        the totals are recomputed.
        """
        document = require_owned(cls.table, document_id, user_id, cls.entity)
        changes = changes_from(payload, exclude={"items"})

        vat_enabled = changes.get("vat_enabled", document.get("vat_enabled", True))
        lines: list[dict[str, Any]] | None = None

        if payload.items is not None:
            lines = cls._build_lines(payload.items, get_company(user_id), vat_enabled)
        elif "vat_enabled" in changes and changes["vat_enabled"] != document.get("vat_enabled"):
            lines = cls._build_lines(cls._list_lines(document["id"]), get_company(user_id), vat_enabled)

        if lines is not None:
            changes.update(compute_totals(lines))

        client = SupabaseClient.get_client()
        if changes:
            updated = first_row(
                client.table(cls.table)
                .update(changes)
                .eq("id", document["id"])
                .eq("user_id", normalize_uuid(user_id))
                .execute()
            ) or {**document, **changes}
        else:
            updated = document

        if lines is not None:
            client.table(cls.lines_table).delete().eq(cls.fk, document["id"]).execute()
            updated["items"] = cls._store_lines(document["id"], lines)
        else:
            updated["items"] = cls._list_lines(document["id"])

        logger.info(f"Updated {cls.entity}: {document['id']}")
        return updated

    @classmethod
    def _check_transition(cls, current: str, target: str) -> None:
        """Quotes may take any status."""

    @classmethod
    def set_status(cls, user_id: UUID | str, document_id: UUID | str, status: Enum) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If missing, trashed or foreign
            InvalidTransitionError: If the status rules forbid the change
        """
        document = require_owned(cls.table, document_id, user_id, cls.entity)
        if document["status"] == status.value:
            return document

        cls._check_transition(document["status"], status.value)

        client = SupabaseClient.get_client()
        updated = first_row(
            client.table(cls.table)
            .update({"status": status.value})
            .eq("id", document["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        logger.info(f"{cls.entity} {document['id']} status: {document['status']} -> {status.value}")
        return updated or {**document, "status": status.value}

    @classmethod
    def delete(cls, user_id: UUID | str, document_id: UUID | str) -> None:
        soft_delete(cls.table, document_id, user_id, cls.entity)

    # -------------------------------------------------------------------------
    # Bulk Operations
    # -------------------------------------------------------------------------

    @classmethod
    def bulk_delete(cls, user_id: UUID | str, ids: list[UUID | str]) -> int:
        """Trash several documents; returns how many were actually trashed."""
        id_list = require_ids(ids)
        client = SupabaseClient.get_client()
        response = (
            client.table(cls.table)
            .update({"deleted_at": utc_now_iso()})
            .eq("user_id", normalize_uuid(user_id))
            .in_("id", id_list)
            .is_("deleted_at", "null")
            .execute()
        )
        return len(response.data or [])

    @classmethod
    def bulk_update_status(
        cls,
        user_id: UUID | str,
        ids: list[UUID | str],
        updates: dict[str, Any],
    ) -> int:
        """
        Set the same status on several documents.

        Raises:
            ValidationFailedError: If ids is empty or the status is missing/invalid
        """
        id_list = require_ids(ids)
        status = updates.get("status")
        if not status:
            raise ValidationFailedError("status is required in updates")

        valid = [s.value for s in cls.status_enum]
        if status not in valid:
            raise ValidationFailedError(
                f"Invalid status ({', '.join(valid)})",
                details={"status": status},
            )

        client = SupabaseClient.get_client()
        response = (
            client.table(cls.table)
            .update({"status": status})
            .eq("user_id", normalize_uuid(user_id))
            .in_("id", id_list)
            .is_("deleted_at", "null")
            .execute()
        )
        return len(response.data or [])


# =============================================================================
# Quotes
# =============================================================================

class QuoteService(DocumentService):
    """Quotes (devis). Always attached to a deal."""

    entity = "quote"
    doc_type = "quote"
    table = "quotes"
    lines_table = "quote_line_items"
    fk = "quote_id"
    pattern_column = "quote_number_pattern"
    status_enum = QuoteStatus

    @classmethod
    def create(cls, user_id: UUID | str, payload: QuoteCreate) -> dict[str, Any]:
        """
        Create a draft quote.

        Raises:
            NotFoundError: If the client or deal isn't the user's
            ValidationFailedError: If the numbering pattern is invalid
        """
        require_owned("deals", payload.deal_id, user_id, "deal", columns="id")
        on = payload.date_emission or date.today()

        return cls._create(
            user_id,
            {
                "client_id": normalize_uuid(payload.client_id),
                "deal_id": normalize_uuid(payload.deal_id),
                "date_validite": (payload.date_validite or on + timedelta(days=DEFAULT_TERM_DAYS)).isoformat(),
                "devise": payload.devise,
                "notes": payload.notes,
            },
            payload.items,
            payload.vat_enabled,
            on,
        )


# =============================================================================
# Invoices
# =============================================================================

class InvoiceService(DocumentService):
    """Invoices (factures)."""

    entity = "invoice"
    doc_type = "invoice"
    table = "invoices"
    lines_table = "invoice_line_items"
    fk = "invoice_id"
    pattern_column = "invoice_number_pattern"
    status_enum = InvoiceStatus

    @classmethod
    def create(cls, user_id: UUID | str, payload: InvoiceCreate) -> dict[str, Any]:
        """
        Create a draft invoice.

        With a quote_id and no items, the quote's lines are copied. With a
        mission_id, the invoice is linked to the mission.

        Raises:
            NotFoundError: If the client, quote or mission isn't the user's
            ValidationFailedError: If the numbering pattern is invalid
        """
        items: list[LineItemInput] | list[dict[str, Any]] = payload.items
        deal_id = None

        if payload.quote_id:
            quote = require_owned("quotes", payload.quote_id, user_id, "quote")
            deal_id = quote.get("deal_id")
            if not items:
                items = QuoteService._list_lines(quote["id"])

        if payload.mission_id:
            require_owned("missions", payload.mission_id, user_id, "mission", columns="id")

        on = payload.date_emission or date.today()
        invoice = cls._create(
            user_id,
            {
                "client_id": normalize_uuid(payload.client_id),
                "quote_id": normalize_uuid(payload.quote_id) if payload.quote_id else None,
                "deal_id": deal_id,
                "date_echeance": (payload.date_echeance or on + timedelta(days=DEFAULT_TERM_DAYS)).isoformat(),
                "devise": payload.devise,
                "notes": payload.notes,
            },
            items,
            payload.vat_enabled,
            on,
        )

        if payload.mission_id:
            insert_unique(
                "mission_invoices",
                {"mission_id": normalize_uuid(payload.mission_id), "invoice_id": invoice["id"]},
                "This invoice is already linked to this mission",
            )
        return invoice

    @classmethod
    def _check_transition(cls, current: str, target: str) -> None:
        allowed = invoice_allowed_targets(InvoiceStatus(current))
        if target not in allowed:
            raise InvalidTransitionError("invoice", current, target, allowed)
