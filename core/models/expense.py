# =============================================================================
# core/models/expense.py - Expense Schemas
# =============================================================================
# Expenses are money spent by the business, optionally tied to a supplier,
# a supplier invoice and a user-defined category.
# =============================================================================

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

UNCATEGORIZED_NAME = "Sans catégorie"
DEFAULT_CATEGORY_COLOR = "#6B7280"

DEFAULT_EXPENSE_CATEGORIES: list[dict[str, str]] = [
    {"name": "Fournitures", "color": "#3B82F6", "icon": "package"},
    {"name": "Services", "color": "#8B5CF6", "icon": "settings"},
    {"name": "Transport", "color": "#10B981", "icon": "car"},
    {"name": "Repas", "color": "#F59E0B", "icon": "utensils"},
    {"name": "Abonnements", "color": "#EC4899", "icon": "refresh-cw"},
    {"name": "Matériel", "color": "#6366F1", "icon": "monitor"},
    {"name": "Formation", "color": "#14B8A6", "icon": "book"},
    {"name": "Autre", "color": "#6B7280", "icon": "more-horizontal"},
]


class PaymentMethod(str, Enum):
    CARD = "card"
    TRANSFER = "transfer"
    CASH = "cash"
    CHECK = "check"
    OTHER = "other"


class ExpenseCreate(BaseModel):
    """
    Schema for recording an expense.

    Example:
        {
            "description": "Licence Figma",
            "date_expense": "2025-02-03",
            "amount_ttc": 180.0,
            "payment_method": "card"
        }
    """

    supplier_invoice_id: UUID | None = None
    supplier_id: UUID | None = None
    category_id: UUID | None = None
    description: str = Field(..., min_length=1)
    date_expense: date
    amount_ht: float | None = None
    amount_tva: float | None = None
    amount_ttc: float = Field(..., description="Amount including VAT")
    vat_enabled: bool | None = Field(
        default=None,
        description="Defaults to the supplier's setting, or true"
    )
    payment_method: PaymentMethod | None = None
    receipt_url: str | None = None
    notes: str | None = None


class ExpenseUpdate(BaseModel):
    supplier_invoice_id: UUID | None = None
    supplier_id: UUID | None = None
    category_id: UUID | None = None
    description: str | None = Field(default=None, min_length=1)
    date_expense: date | None = None
    amount_ht: float | None = None
    amount_tva: float | None = None
    amount_ttc: float | None = None
    vat_enabled: bool | None = None
    payment_method: PaymentMethod | None = None
    receipt_url: str | None = None
    notes: str | None = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, max_length=20)
    icon: str | None = Field(default=None, max_length=50)


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    icon: str | None = Field(default=None, max_length=50)
