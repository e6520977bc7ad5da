# =============================================================================
# core/models/document.py - Quote & Invoice Schemas
# =============================================================================
# Quotes (devis) and invoices (factures) share the same shape: a header with
# a generated number and totals, plus ordered line items. Status values are
# the French ones stored in the database.
# =============================================================================

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class QuoteStatus(str, Enum):
    """
    - brouillon: draft, editable
    - envoye: sent to the client
    """
    BROUILLON = "brouillon"
    ENVOYE = "envoye"


class InvoiceStatus(str, Enum):
    """
    - brouillon: draft
    - envoyee: sent, awaiting payment
    - partielle: partially paid
    - payee: paid in full
    - annulee: cancelled

    payee is only reachable from envoyee or partielle, and a paid invoice
    cannot be cancelled.
    """
    BROUILLON = "brouillon"
    ENVOYEE = "envoyee"
    PARTIELLE = "partielle"
    PAYEE = "payee"
    ANNULEE = "annulee"


class LineItemInput(BaseModel):
    """
    One billed line.

    Example:
        {"description": "Design maquettes", "quantite": 3, "prix_unitaire": 450}
    """

    description: str = Field(..., min_length=1)
    quantite: float = Field(default=1, gt=0)
    prix_unitaire: float = Field(..., ge=0)
    tva_rate: float | None = Field(
        default=None,
        ge=0,
        le=100,
        description="VAT rate in percent; company default when omitted"
    )


class QuoteCreate(BaseModel):
    """
    Schema for creating a quote. A quote always belongs to a deal.

    Example:
        {
            "client_id": "550e8400-...",
            "deal_id": "660e8400-...",
            "items": [{"description": "Site vitrine", "prix_unitaire": 2500}]
        }
    """

    client_id: UUID
    deal_id: UUID = Field(..., description="Deal the quote answers")
    date_emission: date | None = None
    date_validite: date | None = None
    devise: str | None = Field(default=None, min_length=3, max_length=3)
    notes: str | None = None
    vat_enabled: bool | None = Field(
        default=None,
        description="Defaults to the client's vat_enabled"
    )
    items: list[LineItemInput] = Field(default_factory=list)


class QuoteUpdate(BaseModel):
    """Header fields of a quote. Lines are replaced when "items" is sent."""

    date_emission: date | None = None
    date_validite: date | None = None
    devise: str | None = Field(default=None, min_length=3, max_length=3)
    notes: str | None = None
    vat_enabled: bool | None = None
    items: list[LineItemInput] | None = None


class InvoiceCreate(BaseModel):
    """
    Schema for creating an invoice.

    When quote_id is given and items is empty, the quote's lines are copied.
    """

    client_id: UUID
    quote_id: UUID | None = None
    mission_id: UUID | None = Field(
        default=None,
        description="Mission to link the invoice to"
    )
    date_emission: date | None = None
    date_echeance: date | None = None
    devise: str | None = Field(default=None, min_length=3, max_length=3)
    notes: str | None = None
    vat_enabled: bool | None = None
    items: list[LineItemInput] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    date_emission: date | None = None
    date_echeance: date | None = None
    devise: str | None = Field(default=None, min_length=3, max_length=3)
    notes: str | None = None
    vat_enabled: bool | None = None
    items: list[LineItemInput] | None = None


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class BulkStatusUpdate(BaseModel):
    """
    Example:
        {"ids": ["..."], "updates": {"status": "envoyee"}}

    The status value is validated against the document type by the service.
    """

    ids: list[UUID] = Field(..., min_length=1)
    updates: dict[str, str]
