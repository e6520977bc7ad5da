# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides the small set of query helpers every service needs:
# - Tenant-scoped single row lookups (owner column + soft-delete filter)
# - Inserts that must return the created row
# - Next sort_order for ordered child lists
# - RPC calls to Postgres functions (document numbering)
#
# Services still build their own queries with the fluent postgrest API when
# they need filters beyond these helpers.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   deal = SupabaseClient.fetch_owned("deals", deal_id, user_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)

# PostgREST / Postgres error codes we react to
UNIQUE_VIOLATION = "23505"
NO_ROWS = "PGRST116"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages: errors should tell HOW to fix,
    not just WHAT failed.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


def is_unique_violation(exc: BaseException) -> bool:
    """Return True when a PostgREST error is a unique constraint violation."""
    if isinstance(exc, APIError):
        return str(exc.code) == UNIQUE_VIOLATION
    return False


def first_row(response: Any) -> dict[str, Any] | None:
    """Return the first row of an executed query, or None if it matched nothing."""
    data = getattr(response, "data", None)
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        client = SupabaseClient.get_client()
        rows = client.table("deals").select("*").eq("user_id", uid).execute().data

        # Tenant-scoped lookup that ignores trashed rows
        mission = SupabaseClient.fetch_owned("missions", mission_id, user_id)
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS), so
        every query issued by the services filters on the owner column.

        Returns:
            Client: Supabase client instance

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached client (used by tests and worker processes)."""
        cls._instance = None

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Row Lookups
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_owned(
        cls,
        table: str,
        row_id: str | UUID,
        user_id: str | UUID,
        owner_column: str = "user_id",
        columns: str = "*",
        soft_delete: bool = True,
    ) -> dict[str, Any] | None:
        """
        Fetch one row by id, scoped to its owner.

        Args:
            table: Table name
            row_id: Primary key of the row
            user_id: Tenant that must own the row
            owner_column: Column holding the owner id ("owner_user_id" for proposals)
            columns: Select expression
            soft_delete: When True, rows with a deleted_at are ignored

        Returns:
            Row dict, or None if missing, trashed or owned by another user

        Raises:
            SupabaseClientError: If the query fails
        """
        client = cls.get_client()
        row_id_str = cls._normalize_uuid(row_id)

        try:
            query = (
                client.table(table)
                .select(columns)
                .eq("id", row_id_str)
                .eq(owner_column, cls._normalize_uuid(user_id))
            )
            if soft_delete:
                query = query.is_("deleted_at", "null")

            return first_row(query.limit(1).execute())

        except APIError as e:
            if str(e.code) == NO_ROWS:
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch {table} row: {e.message}",
                code="FETCH_FAILED",
                suggestion=f"Check that the {table} table is accessible",
                details={"table": table, "id": row_id_str}
            )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @classmethod
    def insert_one(cls, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a row and return it.

        Unique violations are re-raised untouched so callers can turn them
        into conflicts with is_unique_violation().

        Args:
            table: Table name
            data: Column values

        Returns:
            The inserted row

        Raises:
            APIError: On constraint violations
            SupabaseClientError: If the insert returned no row
        """
        client = cls.get_client()
        response = client.table(table).insert(data).execute()

        row = first_row(response)
        if row is None:
            raise SupabaseClientError(
                message=f"Insert into {table} returned no data",
                code="INSERT_FAILED",
                suggestion="Check table permissions and required columns",
                details={"table": table}
            )
        return row

    @classmethod
    def next_sort_order(
        cls,
        table: str,
        filters: dict[str, Any],
        column: str = "sort_order",
    ) -> int:
        """
        Return max(column) + 1 for the rows matching filters, 0 when empty.

        Used by every ordered child list (template items, verifolio
        activities, review selections).
        """
        client = cls.get_client()
        query = client.table(table).select(column)
        for key, value in filters.items():
            query = query.eq(key, cls._normalize_uuid(value))

        row = first_row(query.order(column, desc=True).limit(1).execute())
        if row is None or row.get(column) is None:
            return 0
        return int(row[column]) + 1

    # -------------------------------------------------------------------------
    # Postgres Functions
    # -------------------------------------------------------------------------

    @classmethod
    def call_rpc(cls, function: str, params: dict[str, Any]) -> Any:
        """
        Call a Postgres function through PostgREST.

        Args:
            function: Function name (e.g. "next_sequence")
            params: Named arguments

        Returns:
            The function result (response.data)

        Raises:
            SupabaseClientError: If the call fails
        """
        client = cls.get_client()
        try:
            return client.rpc(function, params).execute().data
        except APIError as e:
            raise SupabaseClientError(
                message=f"RPC {function} failed: {e.message}",
                code="RPC_FAILED",
                suggestion=f"Check that the {function}() function exists in the database",
                details={"function": function}
            )
