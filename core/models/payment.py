# =============================================================================
# core/models/payment.py - Payment Schemas
# =============================================================================
# Money received from clients (invoice payments, advances) and refunds.
# An invoice's payment status is derived from its payments:
# non_paye -> partiel -> paye.
# =============================================================================

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class PaymentMeans(str, Enum):
    VIREMENT = "virement"
    CHEQUE = "cheque"
    ESPECES = "especes"
    CB = "cb"
    PRELEVEMENT = "prelevement"
    AUTRE = "autre"


class PaymentType(str, Enum):
    """
    - payment: client pays an invoice (in)
    - advance: client pays ahead of any invoice (in)
    - refund: money given back to the client (out)
    """
    PAYMENT = "payment"
    ADVANCE = "advance"
    REFUND = "refund"


class InvoicePaymentStatus(str, Enum):
    NON_PAYE = "non_paye"
    PARTIEL = "partiel"
    PAYE = "paye"


class PaymentCreate(BaseModel):
    """
    Schema for recording a payment.

    Example:
        {"invoice_id": "550e8400-...", "amount": 1200.0, "payment_method": "virement"}

    The client is taken from the invoice when only invoice_id is given.
    """

    client_id: UUID | None = None
    invoice_id: UUID | None = None
    mission_id: UUID | None = None
    amount: float = Field(..., description="Non-zero amount in the invoice currency")
    payment_date: date | None = None
    payment_method: PaymentMeans = PaymentMeans.VIREMENT
    payment_type: PaymentType = PaymentType.PAYMENT
    reference: str | None = Field(default=None, max_length=255)
    notes: str | None = None

    @model_validator(mode="after")
    def check_target(self) -> "PaymentCreate":
        if not self.client_id and not self.invoice_id:
            raise ValueError("client_id or invoice_id is required")
        if self.amount == 0:
            raise ValueError("amount must not be zero")
        return self


class PaymentAssociate(BaseModel):
    """Attach an unassigned payment (typically an advance) to an invoice."""

    invoice_id: UUID
