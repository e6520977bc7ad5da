# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - FakeSupabase: in-memory stand-in for the postgrest fluent API, installed
#   as the SupabaseClient singleton
# - An authenticated TestClient (get_current_user overridden)
# =============================================================================

import os
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from postgrest.exceptions import APIError

from lib.supabase_client import SupabaseClient

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"

# Unique constraints enforced on insert, as in the database schema
UNIQUE_CONSTRAINTS: dict[str, list[tuple[str, ...]]] = {
    "client_contacts": [("client_id", "contact_id")],
    "deal_contacts": [("deal_id", "contact_id")],
    "mission_contacts": [("mission_id", "contact_id")],
    "deal_tags": [("deal_id", "tag")],
    "deal_badges": [("deal_id", "badge")],
    "mission_tags": [("mission_id", "tag")],
    "mission_badges": [("mission_id", "badge")],
    "task_badges": [("task_id", "badge")],
    "mission_invoices": [("mission_id", "invoice_id")],
    "mission_suppliers": [("mission_id", "supplier_id")],
    "expense_categories": [("user_id", "name")],
    "verifolio_profiles": [("user_id",), ("slug",)],
    "verifolio_review_selections": [("profile_id", "review_id")],
}


# =============================================================================
# In-memory Supabase
# =============================================================================

class FakeResponse:
    def __init__(self, data: Any):
        self.data = data


class FakeQuery:
    """
    One query on one table, mirroring the postgrest builder chain.

    Column lists passed to select() are ignored: full rows come back.
    """

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.operation = "select"
        self.payload: Any = None
        self.filters: list[Callable[[dict[str, Any]], bool]] = []
        self.orders: list[tuple[str, bool]] = []
        self.max_rows: int | None = None
        self._negate = False

    # -- operations ---------------------------------------------------------

    def select(self, *columns: str, **kwargs: Any) -> "FakeQuery":
        self.operation = "select"
        return self

    def insert(self, data: dict[str, Any] | list[dict[str, Any]]) -> "FakeQuery":
        self.operation = "insert"
        self.payload = data
        return self

    def update(self, data: dict[str, Any]) -> "FakeQuery":
        self.operation = "update"
        self.payload = data
        return self

    def delete(self) -> "FakeQuery":
        self.operation = "delete"
        return self

    # -- filters ------------------------------------------------------------

    def _add(self, predicate: Callable[[dict[str, Any]], bool]) -> "FakeQuery":
        if self._negate:
            self._negate = False
            self.filters.append(lambda row: not predicate(row))
        else:
            self.filters.append(predicate)
        return self

    @property
    def not_(self) -> "FakeQuery":
        self._negate = True
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._add(lambda row: row.get(column) == value)

    def neq(self, column: str, value: Any) -> "FakeQuery":
        return self._add(lambda row: row.get(column) != value)

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        allowed = list(values)
        return self._add(lambda row: row.get(column) in allowed)

    def is_(self, column: str, value: str) -> "FakeQuery":
        assert value == "null"
        return self._add(lambda row: row.get(column) is None)

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        regex = re.compile(
            "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$",
            re.IGNORECASE,
        )
        return self._add(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))

    def gte(self, column: str, value: Any) -> "FakeQuery":
        return self._add(lambda row: row.get(column) is not None and row[column] >= value)

    def lte(self, column: str, value: Any) -> "FakeQuery":
        return self._add(lambda row: row.get(column) is not None and row[column] <= value)

    def lt(self, column: str, value: Any) -> "FakeQuery":
        return self._add(lambda row: row.get(column) is not None and row[column] < value)

    # -- modifiers ----------------------------------------------------------

    def order(self, column: str, desc: bool = False, **kwargs: Any) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.max_rows = count
        return self

    # -- execution ----------------------------------------------------------

    def _matching(self) -> list[dict[str, Any]]:
        return [row for row in self.db.rows(self.table_name) if all(f(row) for f in self.filters)]

    def _sorted(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        # Postgres defaults: ASC NULLS LAST, DESC NULLS FIRST
        for column, desc in reversed(self.orders):
            if desc:
                rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=True)
            else:
                rows.sort(key=lambda r: (r.get(column) is None, r.get(column)))
        return rows

    def execute(self) -> FakeResponse:
        self.db.queries.append((self.table_name, self.operation))
        failure = self.db.failures.get((self.table_name, self.operation))
        if failure is not None:
            raise failure

        if self.operation == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([dict(self.db.insert_row(self.table_name, row)) for row in rows])

        if self.operation == "update":
            updated = []
            for row in self._matching():
                row.update(self.payload)
                updated.append(dict(row))
            return FakeResponse(updated)

        if self.operation == "delete":
            doomed = self._matching()
            table = self.db.rows(self.table_name)
            self.db.tables[self.table_name] = [row for row in table if row not in doomed]
            return FakeResponse([dict(row) for row in doomed])

        rows = self._sorted(self._matching())
        if self.max_rows is not None:
            rows = rows[:self.max_rows]
        return FakeResponse([dict(row) for row in rows])


class FakeRpc:
    def __init__(self, db: "FakeSupabase", function: str, params: dict[str, Any]):
        self.db = db
        self.function = function
        self.params = params

    def execute(self) -> FakeResponse:
        if self.function != "next_sequence":
            raise APIError({"code": "42883", "message": f"function {self.function} does not exist"})

        key = {
            "user_id": self.params["p_user_id"],
            "doc_type": self.params["p_doc_type"],
            "period_key": self.params["p_period_key"],
            "prefix_key": self.params.get("p_prefix_key", ""),
        }
        for row in self.db.rows("number_sequences"):
            if all(row.get(k) == v for k, v in key.items()):
                row["last_value"] += 1
                return FakeResponse(row["last_value"])

        self.db.insert_row("number_sequences", {**key, "last_value": 1})
        return FakeResponse(1)


class FakeSupabase:
    """
    Tables are lists of dicts. Inserts get an id and a created_at that
    increases by one second per insert so ordering is deterministic.
    """

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.queries: list[tuple[str, str]] = []
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, function: str, params: dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, function, params)

    def insert_row(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        row = dict(data)
        row.setdefault("id", str(uuid.uuid4()))
        self._clock += timedelta(seconds=1)
        row.setdefault("created_at", self._clock.isoformat())

        for columns in UNIQUE_CONSTRAINTS.get(table, []):
            key = tuple(row.get(c) for c in columns)
            if any(tuple(existing.get(c) for c in columns) == key for existing in self.rows(table)):
                raise APIError({
                    "code": "23505",
                    "message": f"duplicate key value violates unique constraint on {table}",
                    "details": None,
                    "hint": None,
                })

        self.rows(table).append(row)
        return row

    def seed(self, table: str, **values: Any) -> dict[str, Any]:
        """Insert a row directly (test setup)."""
        return self.insert_row(table, values)

    def fail(self, table: str, operation: str, error: Exception | None = None) -> None:
        """Make every <operation> on <table> raise."""
        self.failures[(table, operation)] = error or APIError(
            {"code": "XX000", "message": f"{operation} on {table} failed"}
        )

    def get(self, table: str, row_id: str) -> dict[str, Any] | None:
        return next((row for row in self.rows(table) if row["id"] == row_id), None)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_db():
    """Fresh in-memory database installed as the Supabase client."""
    db = FakeSupabase()
    SupabaseClient._instance = db
    yield db
    SupabaseClient.reset()


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def api(fake_db):
    """TestClient authenticated as USER_ID."""
    from fastapi.testclient import TestClient

    from app.auth import AuthUser, get_current_user
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: AuthUser(id=uuid.UUID(USER_ID), email="freelance@example.com")
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_api(fake_db):
    """TestClient without authentication override."""
    from fastapi.testclient import TestClient

    from app.main import app

    app.dependency_overrides.clear()
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client_row(fake_db):
    return fake_db.seed("clients", user_id=USER_ID, nom="Acme SAS", type="entreprise", vat_enabled=True, deleted_at=None)


@pytest.fixture
def contact_row(fake_db):
    return fake_db.seed("contacts", user_id=USER_ID, prenom="Claire", nom="Martin", deleted_at=None)


@pytest.fixture
def deal_row(fake_db, client_row):
    return fake_db.seed(
        "deals",
        user_id=USER_ID,
        client_id=client_row["id"],
        title="Refonte site",
        status="new",
        estimated_amount=5000,
        currency="EUR",
        mission_id=None,
        deleted_at=None,
    )


@pytest.fixture
def mission_row(fake_db, client_row, deal_row):
    return fake_db.seed(
        "missions",
        user_id=USER_ID,
        client_id=client_row["id"],
        deal_id=deal_row["id"],
        title="Refonte site",
        status="in_progress",
        visible_on_verifolio=False,
        deleted_at=None,
    )
