# =============================================================================
# core/services/expense_service.py - Expenses & Categories
# =============================================================================
# Handles expense CRUD, statistics and CSV export. Aggregations run in
# pandas over the rows returned by Supabase:
# - Totals by category (uncategorised rows grouped under one label)
# - Totals by month (YYYY-MM of date_expense)
# =============================================================================

import logging
from datetime import date
from typing import Any
from uuid import UUID

import pandas as pd

from core.models.expense import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_EXPENSE_CATEGORIES,
    UNCATEGORIZED_NAME,
    CategoryCreate,
    CategoryUpdate,
    ExpenseCreate,
    ExpenseUpdate,
    PaymentMethod,
)
from core.services.activity_service import ActivityService
from core.services.common import changes_from, insert_unique, require_owned, soft_delete, update_owned
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, round_money

logger = logging.getLogger(__name__)

# Column order of the CSV export
EXPORT_COLUMNS = [
    "date_expense",
    "description",
    "category",
    "supplier",
    "amount_ht",
    "amount_tva",
    "amount_ttc",
    "vat_enabled",
    "payment_method",
    "notes",
]


def _categories_by_id(user_id: UUID | str) -> dict[str, dict[str, Any]]:
    client = SupabaseClient.get_client()
    rows = (
        client.table("expense_categories")
        .select("id, name, color")
        .eq("user_id", normalize_uuid(user_id))
        .execute()
    ).data or []
    return {row["id"]: row for row in rows}


def _require_references(user_id: UUID | str, payload: ExpenseCreate | ExpenseUpdate) -> dict[str, Any] | None:
    """
    Check that the category, supplier and supplier invoice are the user's.

    Returns:
        The supplier row (id, vat_enabled) when a supplier is given

    Raises:
        NotFoundError: For the first reference the user doesn't own
    """
    if payload.category_id:
        require_owned(
            "expense_categories", payload.category_id, user_id, "category", columns="id", soft_delete=False
        )
    if payload.supplier_invoice_id:
        require_owned("supplier_invoices", payload.supplier_invoice_id, user_id, "supplier_invoice", columns="id")
    if payload.supplier_id:
        return require_owned("clients", payload.supplier_id, user_id, "supplier", columns="id, vat_enabled")
    return None


def summarize_expenses(
    expenses: list[dict[str, Any]],
    categories: dict[str, dict[str, Any]],
) -> dict[str, Any]:
    """
    Aggregate expenses into totals by category and by month.

    Args:
        expenses: Rows with amount_ttc, date_expense and category_id
        categories: Category rows keyed by id

    Returns:
        {"total", "count", "by_category": [...], "by_month": [...]}
        by_category is sorted by total (largest first), by_month by month.
    """
    if not expenses:
        return {"total": 0.0, "count": 0, "by_category": [], "by_month": []}

    df = pd.DataFrame(expenses)
    for column in ("amount_ttc", "date_expense", "category_id"):
        if column not in df.columns:
            df[column] = None

    df["amount"] = pd.to_numeric(df["amount_ttc"], errors="coerce").fillna(0.0)
    df["category"] = df["category_id"].map(
        lambda cid: categories[cid]["name"] if cid in categories else UNCATEGORIZED_NAME
    )
    df["color"] = df["category_id"].map(
        lambda cid: categories[cid].get("color") or DEFAULT_CATEGORY_COLOR
        if cid in categories else DEFAULT_CATEGORY_COLOR
    )
    df["month"] = df["date_expense"].map(lambda d: str(d)[:7] if d else "unknown")

    by_category = (
        df.groupby("category", sort=False)
        .agg(color=("color", "first"), total=("amount", "sum"), count=("amount", "size"))
        .reset_index()
        .sort_values("total", ascending=False, kind="stable")
    )
    by_month = (
        df.groupby("month")
        .agg(total=("amount", "sum"), count=("amount", "size"))
        .reset_index()
        .sort_values("month")
    )

    return {
        "total": round_money(df["amount"].sum()),
        "count": int(len(df)),
        "by_category": [
            {
                "category": row["category"],
                "color": row["color"],
                "total": round_money(row["total"]),
                "count": int(row["count"]),
            }
            for row in by_category.to_dict("records")
        ],
        "by_month": [
            {"month": row["month"], "total": round_money(row["total"]), "count": int(row["count"])}
            for row in by_month.to_dict("records")
        ],
    }


class ExpenseService:
    """
    Service for expense operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_expense(user_id: UUID | str, payload: ExpenseCreate) -> dict[str, Any]:
        """
        Record an expense.

        When vat_enabled isn't given, the supplier's setting is used
        (true without a supplier).

        Raises:
            NotFoundError: If the category, supplier or supplier invoice isn't the user's
        """
        supplier = _require_references(user_id, payload)
        vat_enabled = payload.vat_enabled
        if vat_enabled is None and supplier:
            vat_enabled = supplier.get("vat_enabled")

        data = payload.model_dump(mode="json")
        data["user_id"] = normalize_uuid(user_id)
        data["vat_enabled"] = True if vat_enabled is None else vat_enabled

        expense = SupabaseClient.insert_one("expenses", data)
        logger.info(f"Created expense: {expense['id']} for user: {user_id}")
        ActivityService.log(user_id, "create", "expense", expense["id"], expense.get("description"))
        return expense

    @staticmethod
    def list_expenses(
        user_id: UUID | str,
        supplier_id: UUID | str | None = None,
        category_id: UUID | str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        payment_method: PaymentMethod | None = None,
    ) -> list[dict[str, Any]]:
        """List active expenses, most recent expense date first."""
        client = SupabaseClient.get_client()
        query = (
            client.table("expenses")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .is_("deleted_at", "null")
        )
        if supplier_id:
            query = query.eq("supplier_id", normalize_uuid(supplier_id))
        if category_id:
            query = query.eq("category_id", normalize_uuid(category_id))
        if date_from:
            query = query.gte("date_expense", date_from.isoformat())
        if date_to:
            query = query.lte("date_expense", date_to.isoformat())
        if payment_method:
            query = query.eq("payment_method", payment_method.value)

        return query.order("date_expense", desc=True).execute().data or []

    @staticmethod
    def get_expense(user_id: UUID | str, expense_id: UUID | str) -> dict[str, Any]:
        """Expense with its category and supplier."""
        expense = require_owned("expenses", expense_id, user_id, "expense")
        client = SupabaseClient.get_client()
        owner_id = normalize_uuid(user_id)

        expense["category"] = None
        if expense.get("category_id"):
            expense["category"] = first_row(
                client.table("expense_categories")
                .select("*")
                .eq("id", expense["category_id"])
                .eq("user_id", owner_id)
                .limit(1)
                .execute()
            )
        expense["supplier"] = None
        if expense.get("supplier_id"):
            expense["supplier"] = first_row(
                client.table("clients")
                .select("id, nom")
                .eq("id", expense["supplier_id"])
                .eq("user_id", owner_id)
                .limit(1)
                .execute()
            )
        return expense

    @staticmethod
    def update_expense(
        user_id: UUID | str,
        expense_id: UUID | str,
        payload: ExpenseUpdate,
    ) -> dict[str, Any]:
        _require_references(user_id, payload)
        expense = update_owned("expenses", expense_id, user_id, changes_from(payload), "expense")
        ActivityService.log(user_id, "update", "expense", expense["id"], expense.get("description"))
        return expense

    @staticmethod
    def delete_expense(user_id: UUID | str, expense_id: UUID | str) -> None:
        expense = soft_delete("expenses", expense_id, user_id, "expense")
        ActivityService.log(user_id, "delete", "expense", expense["id"], expense.get("description"))

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    @staticmethod
    def get_stats(
        user_id: UUID | str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[str, Any]:
        """Totals over the period, by category and by month."""
        expenses = ExpenseService.list_expenses(user_id, date_from=date_from, date_to=date_to)
        return summarize_expenses(expenses, _categories_by_id(user_id))

    @staticmethod
    def export_csv(user_id: UUID | str, **filters: Any) -> str:
        """
        Export expenses matching the list filters as CSV text.

        Category and supplier ids are replaced by their names.
        """
        expenses = ExpenseService.list_expenses(user_id, **filters)
        if not expenses:
            return pd.DataFrame(columns=EXPORT_COLUMNS).to_csv(index=False)

        categories = _categories_by_id(user_id)
        supplier_ids = {e["supplier_id"] for e in expenses if e.get("supplier_id")}
        suppliers: dict[str, str] = {}
        if supplier_ids:
            rows = (
                SupabaseClient.get_client()
                .table("clients")
                .select("id, nom")
                .in_("id", sorted(supplier_ids))
                .execute()
            ).data or []
            suppliers = {row["id"]: row.get("nom") for row in rows}

        df = pd.DataFrame(expenses)
        df["category"] = df.get("category_id", pd.Series(dtype=object)).map(
            lambda cid: categories[cid]["name"] if cid in categories else ""
        )
        df["supplier"] = df.get("supplier_id", pd.Series(dtype=object)).map(
            lambda sid: suppliers.get(sid, "") if sid else ""
        )
        df = df.reindex(columns=EXPORT_COLUMNS)

        logger.info(f"Exported {len(df)} expenses for user: {user_id}")
        return df.to_csv(index=False)


class ExpenseCategoryService:
    """Service for the user's expense categories."""

    @staticmethod
    def create_category(user_id: UUID | str, payload: CategoryCreate) -> dict[str, Any]:
        """
        Raises:
            ConflictError: If the user already has a category with this name
        """
        return insert_unique(
            "expense_categories",
            {"user_id": normalize_uuid(user_id), **payload.model_dump()},
            "A category with this name already exists",
        )

    @staticmethod
    def list_categories(user_id: UUID | str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table("expense_categories")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("name")
            .execute()
        ).data or []

    @staticmethod
    def update_category(
        user_id: UUID | str,
        category_id: UUID | str,
        payload: CategoryUpdate,
    ) -> dict[str, Any]:
        category = require_owned(
            "expense_categories", category_id, user_id, "category", soft_delete=False
        )
        changes = changes_from(payload)
        if not changes:
            return category

        client = SupabaseClient.get_client()
        return first_row(
            client.table("expense_categories")
            .update(changes)
            .eq("id", category["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        ) or {**category, **changes}

    @staticmethod
    def delete_category(user_id: UUID | str, category_id: UUID | str) -> None:
        """Delete a category; its expenses become uncategorised."""
        category = require_owned(
            "expense_categories", category_id, user_id, "category", columns="id", soft_delete=False
        )
        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)

        client.table("expenses").update({"category_id": None}).eq(
            "category_id", category["id"]
        ).eq("user_id", user_id_str).execute()
        client.table("expense_categories").delete().eq("id", category["id"]).eq(
            "user_id", user_id_str
        ).execute()
        logger.info(f"Deleted expense category: {category_id}")

    @staticmethod
    def initialize_defaults(user_id: UUID | str) -> list[dict[str, Any]]:
        """Create the default categories for a user who has none yet."""
        existing = ExpenseCategoryService.list_categories(user_id)
        if existing:
            return existing

        user_id_str = normalize_uuid(user_id)
        client = SupabaseClient.get_client()
        client.table("expense_categories").insert([
            {"user_id": user_id_str, **category} for category in DEFAULT_EXPENSE_CATEGORIES
        ]).execute()
        logger.info(f"Initialized default expense categories for user: {user_id}")
        return ExpenseCategoryService.list_categories(user_id)
