# =============================================================================
# core/services/payment_service.py - Client Payments
# =============================================================================
# Payments are hard-deleted. After every change touching an invoice, the
# invoice status follows its payments (envoyee / partielle / payee);
# drafts and cancelled invoices are left alone.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError, ValidationFailedError
from core.models.document import InvoiceStatus
from core.models.payment import InvoicePaymentStatus, PaymentAssociate, PaymentCreate, PaymentType
from core.services.activity_service import ActivityService
from core.services.common import require_owned
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, round_money, today_iso

logger = logging.getLogger(__name__)

# Invoice statuses kept in step with payments
SETTLEMENT_STATUSES = {
    InvoicePaymentStatus.NON_PAYE: InvoiceStatus.ENVOYEE,
    InvoicePaymentStatus.PARTIEL: InvoiceStatus.PARTIELLE,
    InvoicePaymentStatus.PAYE: InvoiceStatus.PAYEE,
}


def summarize_payments(total_ttc: float, payments: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Settlement of an invoice from its payments.

    Payments and advances count as paid, refunds are subtracted.

    Returns:
        {"total_paid", "total_refunded", "remaining", "payment_status", "payment_count"}
    """
    paid = sum(
        float(p.get("amount") or 0)
        for p in payments
        if p.get("payment_type") in (PaymentType.PAYMENT.value, PaymentType.ADVANCE.value)
    )
    refunded = sum(
        abs(float(p.get("amount") or 0))
        for p in payments
        if p.get("payment_type") == PaymentType.REFUND.value
    )
    net = round_money(paid - refunded)
    total = round_money(total_ttc or 0)

    if net <= 0:
        payment_status = InvoicePaymentStatus.NON_PAYE
    elif net >= total:
        payment_status = InvoicePaymentStatus.PAYE
    else:
        payment_status = InvoicePaymentStatus.PARTIEL

    return {
        "total_paid": round_money(paid),
        "total_refunded": round_money(refunded),
        "remaining": round_money(max(total - net, 0)),
        "payment_status": payment_status.value,
        "payment_count": len(payments),
    }


def _with_relations(user_id: str, payments: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Attach client {id, nom}, invoice {id, numero, total_ttc} and mission {id, title}."""
    if not payments:
        return payments
    client = SupabaseClient.get_client()

    def by_id(table: str, columns: str, key: str) -> dict[str, dict[str, Any]]:
        ids = sorted({p[key] for p in payments if p.get(key)})
        if not ids:
            return {}
        rows = (
            client.table(table).select(columns).in_("id", ids).eq("user_id", user_id).execute()
        ).data or []
        return {row["id"]: row for row in rows}

    clients = by_id("clients", "id, nom", "client_id")
    invoices = by_id("invoices", "id, numero, total_ttc", "invoice_id")
    missions = by_id("missions", "id, title", "mission_id")

    return [
        {
            **p,
            "client": clients.get(p.get("client_id")),
            "invoice": invoices.get(p.get("invoice_id")),
            "mission": missions.get(p.get("mission_id")),
        }
        for p in payments
    ]


class PaymentService:
    """
    Service for payment operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_payment(user_id: UUID | str, payload: PaymentCreate) -> dict[str, Any]:
        """
        Record a payment.

        Args:
            user_id: Owner
            payload: Amount, target (client and/or invoice) and details

        Returns:
            Created payment row

        Raises:
            NotFoundError: If the client, invoice or mission isn't the user's
            ValidationFailedError: If the invoice belongs to another client
        """
        client_id = normalize_uuid(payload.client_id) if payload.client_id else None
        invoice = None
        if payload.invoice_id:
            invoice = require_owned("invoices", payload.invoice_id, user_id, "invoice", columns="id, client_id")
            if client_id and invoice.get("client_id") and invoice["client_id"] != client_id:
                raise ValidationFailedError(
                    "The invoice belongs to another client",
                    suggestion="Omit client_id to use the invoice's client",
                )
            client_id = client_id or invoice.get("client_id")
        elif client_id:
            require_owned("clients", client_id, user_id, "client", columns="id")

        if payload.mission_id:
            require_owned("missions", payload.mission_id, user_id, "mission", columns="id")

        payment = SupabaseClient.insert_one("payments", {
            "user_id": normalize_uuid(user_id),
            "client_id": client_id,
            "invoice_id": invoice["id"] if invoice else None,
            "mission_id": normalize_uuid(payload.mission_id) if payload.mission_id else None,
            "amount": round_money(payload.amount),
            "payment_date": payload.payment_date.isoformat() if payload.payment_date else today_iso(),
            "payment_method": payload.payment_method.value,
            "payment_type": payload.payment_type.value,
            "reference": payload.reference,
            "notes": payload.notes,
        })
        logger.info(f"Created payment: {payment['id']} for user: {user_id}")
        ActivityService.log(user_id, "create", "payment", payment["id"], payment.get("reference"))

        if invoice:
            PaymentService.sync_invoice_status(user_id, invoice["id"])
        return payment

    @staticmethod
    def list_payments(
        user_id: UUID | str,
        client_id: UUID | str | None = None,
        invoice_id: UUID | str | None = None,
        mission_id: UUID | str | None = None,
        payment_type: PaymentType | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List payments with their client, invoice and mission, latest payment date first."""
        user_id_str = normalize_uuid(user_id)
        client = SupabaseClient.get_client()
        query = client.table("payments").select("*").eq("user_id", user_id_str)
        if client_id:
            query = query.eq("client_id", normalize_uuid(client_id))
        if invoice_id:
            query = query.eq("invoice_id", normalize_uuid(invoice_id))
        if mission_id:
            query = query.eq("mission_id", normalize_uuid(mission_id))
        if payment_type:
            query = query.eq("payment_type", payment_type.value)
        if date_from:
            query = query.gte("payment_date", date_from)
        if date_to:
            query = query.lte("payment_date", date_to)

        query = query.order("payment_date", desc=True)
        if limit:
            query = query.limit(limit)
        return _with_relations(user_id_str, query.execute().data or [])

    @staticmethod
    def get_payment(user_id: UUID | str, payment_id: UUID | str) -> dict[str, Any]:
        payment = require_owned("payments", payment_id, user_id, "payment", soft_delete=False)
        return _with_relations(normalize_uuid(user_id), [payment])[0]

    @staticmethod
    def delete_payment(user_id: UUID | str, payment_id: UUID | str) -> None:
        """
        Delete a payment for good and resync its invoice.

        Raises:
            NotFoundError: If the payment isn't the user's
        """
        payment = require_owned("payments", payment_id, user_id, "payment", soft_delete=False)
        SupabaseClient.get_client().table("payments").delete().eq("id", payment["id"]).eq(
            "user_id", normalize_uuid(user_id)
        ).execute()
        logger.info(f"Deleted payment: {payment_id}")
        ActivityService.log(user_id, "delete", "payment", payment["id"], payment.get("reference"))

        if payment.get("invoice_id"):
            PaymentService.sync_invoice_status(user_id, payment["invoice_id"])

    @staticmethod
    def associate(user_id: UUID | str, payment_id: UUID | str, payload: PaymentAssociate) -> dict[str, Any]:
        """
        Attach a payment without invoice to one of the client's invoices.

        Raises:
            NotFoundError: If the payment or invoice isn't the user's
            ValidationFailedError: If the payment already has an invoice or
                the invoice belongs to another client
        """
        payment = require_owned("payments", payment_id, user_id, "payment", soft_delete=False)
        if payment.get("invoice_id"):
            raise ValidationFailedError("This payment is already attached to an invoice")

        invoice = require_owned("invoices", payload.invoice_id, user_id, "invoice", columns="id, client_id")
        if payment.get("client_id") and invoice.get("client_id") != payment["client_id"]:
            raise ValidationFailedError("The invoice belongs to another client")

        changes = {"invoice_id": invoice["id"], "client_id": invoice.get("client_id")}
        updated = first_row(
            SupabaseClient.get_client()
            .table("payments")
            .update(changes)
            .eq("id", payment["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        PaymentService.sync_invoice_status(user_id, invoice["id"])
        return updated or {**payment, **changes}

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    @staticmethod
    def get_invoice_payments(user_id: UUID | str, invoice_id: UUID | str) -> list[dict[str, Any]]:
        """
        Payments of one invoice, latest first.

        Raises:
            NotFoundError: If the invoice isn't the user's
        """
        invoice = require_owned("invoices", invoice_id, user_id, "invoice", columns="id")
        return (
            SupabaseClient.get_client()
            .table("payments")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .eq("invoice_id", invoice["id"])
            .order("payment_date", desc=True)
            .execute()
        ).data or []

    @staticmethod
    def get_invoice_summary(user_id: UUID | str, invoice_id: UUID | str) -> dict[str, Any]:
        """
        Invoice header with its settlement figures.

        Returns:
            {id, numero, client_id, status, total_ttc, date_emission,
            date_echeance, total_paid, total_refunded, remaining,
            payment_status, payment_count}
        """
        invoice = require_owned(
            "invoices", invoice_id, user_id, "invoice",
            columns="id, numero, client_id, status, total_ttc, date_emission, date_echeance",
        )
        payments = PaymentService.get_invoice_payments(user_id, invoice["id"])
        return {**invoice, **summarize_payments(invoice.get("total_ttc") or 0, payments)}

    @staticmethod
    def get_mission_summary(user_id: UUID | str, mission_id: UUID | str) -> dict[str, Any]:
        """
        Money side of a mission: what was invoiced, paid and is still due.

        Advances recorded on the mission without an invoice count in
        total_advances and reduce the remaining amount.

        Raises:
            NotFoundError: If the mission isn't the user's
        """
        mission = require_owned("missions", mission_id, user_id, "mission", columns="id, title, client_id, status")
        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)

        links = (
            client.table("mission_invoices").select("invoice_id").eq("mission_id", mission["id"]).execute()
        ).data or []
        invoice_ids = [link["invoice_id"] for link in links]

        invoices: list[dict[str, Any]] = []
        if invoice_ids:
            invoices = (
                client.table("invoices")
                .select("id, numero, status, total_ttc, date_emission")
                .in_("id", invoice_ids)
                .eq("user_id", user_id_str)
                .is_("deleted_at", "null")
                .neq("status", InvoiceStatus.ANNULEE.value)
                .order("date_emission", desc=True)
                .execute()
            ).data or []

        payments: list[dict[str, Any]] = []
        if invoices:
            payments = (
                client.table("payments")
                .select("*")
                .eq("user_id", user_id_str)
                .in_("invoice_id", [i["id"] for i in invoices])
                .execute()
            ).data or []
        advances = (
            client.table("payments")
            .select("amount")
            .eq("user_id", user_id_str)
            .eq("mission_id", mission["id"])
            .eq("payment_type", PaymentType.ADVANCE.value)
            .is_("invoice_id", "null")
            .execute()
        ).data or []

        invoice_summaries = [
            {
                **invoice,
                **summarize_payments(
                    invoice.get("total_ttc") or 0,
                    [p for p in payments if p.get("invoice_id") == invoice["id"]],
                ),
            }
            for invoice in invoices
        ]
        total_invoiced = round_money(sum(float(i.get("total_ttc") or 0) for i in invoices))
        total_paid = round_money(sum(s["total_paid"] - s["total_refunded"] for s in invoice_summaries))
        total_advances = round_money(sum(float(a.get("amount") or 0) for a in advances))

        return {
            "mission_id": mission["id"],
            "title": mission.get("title"),
            "client_id": mission.get("client_id"),
            "mission_status": mission.get("status"),
            "total_invoiced": total_invoiced,
            "total_paid": total_paid,
            "total_advances": total_advances,
            "remaining": round_money(max(total_invoiced - total_paid - total_advances, 0)),
            "invoices": invoice_summaries,
        }

    @staticmethod
    def sync_invoice_status(user_id: UUID | str, invoice_id: UUID | str) -> dict[str, Any] | None:
        """
        Move a sent invoice to envoyee, partielle or payee after its payments.

        Returns:
            The updated invoice, or None when nothing changed
        """
        summary = PaymentService.get_invoice_summary(user_id, invoice_id)
        current = summary.get("status")
        if current not in {s.value for s in SETTLEMENT_STATUSES.values()}:
            return None

        target = SETTLEMENT_STATUSES[InvoicePaymentStatus(summary["payment_status"])].value
        if target == current:
            return None

        updated = first_row(
            SupabaseClient.get_client()
            .table("invoices")
            .update({"status": target})
            .eq("id", summary["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        if updated is None:
            raise NotFoundError("invoice", str(invoice_id))
        logger.info(f"Invoice {summary['id']} status: {current} -> {target} (payments)")
        return updated
