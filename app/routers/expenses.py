# =============================================================================
# app/routers/expenses.py - Expense & Category Endpoints
# =============================================================================
# Literal paths (/stats, /export, /categories...) are declared before
# /{expense_id} so they aren't captured as ids.
# All endpoints require authentication.
# =============================================================================

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import StreamingResponse

from app.dependencies import CurrentUser
from core.models.expense import CategoryCreate, CategoryUpdate, ExpenseCreate, ExpenseUpdate, PaymentMethod
from core.services.expense_service import ExpenseCategoryService, ExpenseService
from lib.utils import today_iso

router = APIRouter()

ExpenseId = Annotated[UUID, Path(description="Expense UUID")]
CategoryId = Annotated[UUID, Path(description="Category UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(payload: ExpenseCreate, user: CurrentUser):
    """Record an expense. VAT follows the supplier when vat_enabled is omitted."""
    return {"data": ExpenseService.create_expense(user.id, payload)}


@router.get("")
async def list_expenses(
    user: CurrentUser,
    supplier_id: Annotated[UUID | None, Query()] = None,
    category_id: Annotated[UUID | None, Query()] = None,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    payment_method: Annotated[PaymentMethod | None, Query()] = None,
):
    return {
        "data": ExpenseService.list_expenses(
            user.id,
            supplier_id=supplier_id,
            category_id=category_id,
            date_from=date_from,
            date_to=date_to,
            payment_method=payment_method,
        )
    }


@router.get("/stats")
async def get_expense_stats(
    user: CurrentUser,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
):
    """Total, count, totals by category and by month over the period."""
    return {"data": ExpenseService.get_stats(user.id, date_from=date_from, date_to=date_to)}


@router.get("/export")
async def export_expenses(
    user: CurrentUser,
    supplier_id: Annotated[UUID | None, Query()] = None,
    category_id: Annotated[UUID | None, Query()] = None,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    payment_method: Annotated[PaymentMethod | None, Query()] = None,
):
    """Download the filtered expenses as CSV."""
    csv_text = ExpenseService.export_csv(
        user.id,
        supplier_id=supplier_id,
        category_id=category_id,
        date_from=date_from,
        date_to=date_to,
        payment_method=payment_method,
    )
    filename = f"depenses_{today_iso()}.csv"
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
        }
    )


# -----------------------------------------------------------------------------
# Categories
# -----------------------------------------------------------------------------

@router.get("/categories")
async def list_categories(user: CurrentUser):
    return {"data": ExpenseCategoryService.list_categories(user.id)}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate, user: CurrentUser):
    return {"data": ExpenseCategoryService.create_category(user.id, payload)}


@router.post("/categories/defaults")
async def initialize_default_categories(user: CurrentUser):
    """Create the default categories when the user has none yet."""
    return {"data": ExpenseCategoryService.initialize_defaults(user.id)}


@router.patch("/categories/{category_id}")
async def update_category(category_id: CategoryId, payload: CategoryUpdate, user: CurrentUser):
    return {"data": ExpenseCategoryService.update_category(user.id, category_id, payload)}


@router.delete("/categories/{category_id}")
async def delete_category(category_id: CategoryId, user: CurrentUser):
    """Delete a category; its expenses become uncategorised."""
    ExpenseCategoryService.delete_category(user.id, category_id)
    return {"success": True}


# -----------------------------------------------------------------------------
# Single Expense
# -----------------------------------------------------------------------------

@router.get("/{expense_id}")
async def get_expense(expense_id: ExpenseId, user: CurrentUser):
    return {"data": ExpenseService.get_expense(user.id, expense_id)}


@router.patch("/{expense_id}")
async def update_expense(expense_id: ExpenseId, payload: ExpenseUpdate, user: CurrentUser):
    return {"data": ExpenseService.update_expense(user.id, expense_id, payload)}


@router.delete("/{expense_id}")
async def delete_expense(expense_id: ExpenseId, user: CurrentUser):
    ExpenseService.delete_expense(user.id, expense_id)
    return {"success": True}
