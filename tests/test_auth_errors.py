# =============================================================================
# tests/test_auth_errors.py - Auth, Error Envelope & Health Tests
# =============================================================================
# Covers:
# - Supabase JWT verification (HS256 with the project secret)
# - The {"error": ...} envelope for auth, routing and database failures
# - Health endpoints
# - Every API route is served by a coroutine handler
#
# Run with: pytest tests/test_auth_errors.py -v
# =============================================================================

import inspect
import time
from uuid import UUID

import pytest
from fastapi import HTTPException
from fastapi.routing import APIRoute
from jose import jwt

from app.auth.dependencies import decode_token
from tests.conftest import USER_ID

SECRET = "test-jwt-secret"


def make_token(**overrides) -> str:
    claims = {
        "sub": USER_ID,
        "email": "freelance@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, SECRET, algorithm="HS256")


# =============================================================================
# Token verification
# =============================================================================

class TestDecodeToken:
    """Tests for decode_token."""

    def test_valid_token(self):
        user = decode_token(make_token())
        assert user.id == UUID(USER_ID)
        assert user.email == "freelance@example.com"

    def test_expired_token(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token(make_token(exp=int(time.time()) - 60))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_audience(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token(make_token(aud="anon-service"))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail.startswith("Invalid token")

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": USER_ID, "aud": "authenticated", "exp": int(time.time()) + 60},
            "another-secret",
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)
        assert exc_info.value.status_code == 401

    def test_missing_subject(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token(make_token(sub=None))
        assert exc_info.value.detail == "Invalid token: missing user ID"

    def test_malformed_subject(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token(make_token(sub="not-a-uuid"))
        assert exc_info.value.detail == "Invalid token: malformed user ID"

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token("definitely.not.a-jwt")
        assert exc_info.value.status_code == 401


# =============================================================================
# Auth routes
# =============================================================================

class TestAuthRoutes:
    """Tests for /api/v1/auth and unauthenticated access."""

    def test_missing_token_returns_401_envelope(self, anonymous_api):
        response = anonymous_api.get("/api/v1/clients")

        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated"}

    def test_verify_with_bearer_token(self, anonymous_api):
        response = anonymous_api.get(
            "/api/v1/auth/verify",
            headers={"Authorization": f"Bearer {make_token()}"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "user_id": USER_ID,
            "email": "freelance@example.com",
        }

    def test_expired_bearer_token(self, anonymous_api):
        response = anonymous_api.get(
            "/api/v1/auth/verify",
            headers={"Authorization": f"Bearer {make_token(exp=int(time.time()) - 60)}"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    def test_me_without_company(self, api):
        response = api.get("/api/v1/auth/me")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == USER_ID
        assert body["company_name"] is None

    def test_me_with_company(self, api, fake_db):
        fake_db.seed(
            "companies",
            user_id=USER_ID,
            name="Studio Martin",
            default_currency="EUR",
            default_tax_rate=20.0,
        )

        body = api.get("/api/v1/auth/me").json()

        assert body["company_name"] == "Studio Martin"
        assert body["default_currency"] == "EUR"
        assert body["default_tax_rate"] == 20.0


# =============================================================================
# Error envelope
# =============================================================================

class TestErrorEnvelope:
    """Every failure answers with an "error" key."""

    def test_unknown_route(self, api):
        response = api.get("/api/v1/nowhere")

        assert response.status_code == 404
        assert "error" in response.json()

    def test_database_failure(self, api, fake_db):
        fake_db.fail("clients", "select")

        response = api.get("/api/v1/clients")

        assert response.status_code == 500
        assert response.json() == {"error": "Database error", "code": "DATABASE_ERROR"}

    def test_validation_error(self, api):
        response = api.post("/api/v1/clients", json={})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"]


# =============================================================================
# Health
# =============================================================================

class TestHealth:
    """Tests for the health endpoints."""

    def test_health(self, api):
        body = api.get("/api/v1/health").json()
        assert body["status"] == "healthy"
        assert body["version"]

    def test_ready(self, api):
        body = api.get("/api/v1/health/ready").json()
        assert body["status"] == "ready"
        assert body["checks"]["database"] == "healthy"
        assert body["checks"]["auth_mode"] == "hs256"

    def test_degraded_when_database_fails(self, api, fake_db):
        fake_db.fail("clients", "select")

        body = api.get("/api/v1/health/ready").json()

        assert body["status"] == "degraded"
        assert body["checks"]["database"].startswith("unhealthy")

    def test_live(self, api):
        assert api.get("/api/v1/health/live").json()["status"] == "alive"


class TestRouteHandlers:
    """Route handlers are declared with async def."""

    def test_every_route_is_async(self):
        from app.main import app

        sync_routes = [
            route.path
            for route in app.routes
            if isinstance(route, APIRoute) and not inspect.iscoroutinefunction(route.endpoint)
        ]
        assert sync_routes == []

    def test_payment_and_review_routes_are_mounted(self):
        from app.main import app

        paths = {route.path for route in app.routes if isinstance(route, APIRoute)}
        assert "/api/v1/payments/mission/{mission_id}/summary" in paths
        assert "/api/v1/review-requests/{request_id}/remind" in paths
        assert "/api/v1/public/reviews/{token}/submit" in paths
