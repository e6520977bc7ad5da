# =============================================================================
# app/routers/payments.py - Payment Endpoints
# =============================================================================
# Summaries per invoice and per mission are declared before /{payment_id}.
# All endpoints require authentication.
# =============================================================================

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.payment import PaymentAssociate, PaymentCreate, PaymentType
from core.services.payment_service import PaymentService

router = APIRouter()

PaymentId = Annotated[UUID, Path(description="Payment UUID")]
InvoiceId = Annotated[UUID, Path(description="Invoice UUID")]
MissionId = Annotated[UUID, Path(description="Mission UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_payment(payload: PaymentCreate, user: CurrentUser):
    """
    Record a payment, advance or refund.

    When it targets an invoice, the invoice moves to partielle or payee
    according to what has been paid.
    """
    return {"data": PaymentService.create_payment(user.id, payload)}


@router.get("")
async def list_payments(
    user: CurrentUser,
    client_id: Annotated[UUID | None, Query()] = None,
    invoice_id: Annotated[UUID | None, Query()] = None,
    mission_id: Annotated[UUID | None, Query()] = None,
    payment_type: Annotated[PaymentType | None, Query()] = None,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
):
    return {
        "data": PaymentService.list_payments(
            user.id,
            client_id=client_id,
            invoice_id=invoice_id,
            mission_id=mission_id,
            payment_type=payment_type,
            date_from=date_from.isoformat() if date_from else None,
            date_to=date_to.isoformat() if date_to else None,
            limit=limit,
        )
    }


@router.get("/invoice/{invoice_id}")
async def get_invoice_payments(invoice_id: InvoiceId, user: CurrentUser):
    return {"data": PaymentService.get_invoice_payments(user.id, invoice_id)}


@router.get("/invoice/{invoice_id}/summary")
async def get_invoice_payment_summary(invoice_id: InvoiceId, user: CurrentUser):
    """Paid, refunded and remaining amounts of an invoice with its payment status."""
    return {"data": PaymentService.get_invoice_summary(user.id, invoice_id)}


@router.get("/mission/{mission_id}/summary")
async def get_mission_payment_summary(mission_id: MissionId, user: CurrentUser):
    return {"data": PaymentService.get_mission_summary(user.id, mission_id)}


@router.get("/{payment_id}")
async def get_payment(payment_id: PaymentId, user: CurrentUser):
    return {"data": PaymentService.get_payment(user.id, payment_id)}


@router.post("/{payment_id}/associate")
async def associate_payment(payment_id: PaymentId, payload: PaymentAssociate, user: CurrentUser):
    """Attach a payment recorded without invoice (an advance) to an invoice."""
    return {"data": PaymentService.associate(user.id, payment_id, payload)}


@router.delete("/{payment_id}")
async def delete_payment(payment_id: PaymentId, user: CurrentUser):
    PaymentService.delete_payment(user.id, payment_id)
    return {"success": True}
