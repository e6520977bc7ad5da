# =============================================================================
# core/services/review_service.py - Review Requests & Client Reviews
# =============================================================================
# Flow:
#   1. The user opens a request on a sent invoice linked to a mission
#   2. Recipients open /public/reviews/{token} and submit a review
#   3. The request turns "responded"; the review waits unpublished
#   4. The user publishes it, after which Verifolio can show it
#
# Emails are not sent from here; the request only records its recipients.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError

from app.config import settings
from app.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationFailedError
from core.models.document import InvoiceStatus
from core.models.review import (
    RATING_CRITERIA,
    ReliabilityLevel,
    ReviewRequestCreate,
    ReviewRequestStatus,
    ReviewSubmit,
)
from core.services.activity_service import ActivityService
from core.services.common import require_owned, require_owned_ids
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import generate_token, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

# A cancelled or draft invoice can't collect reviews
REVIEWABLE_INVOICE_STATUSES = {
    InvoiceStatus.ENVOYEE.value,
    InvoiceStatus.PARTIELLE.value,
    InvoiceStatus.PAYEE.value,
}


def _criteria_ratings(payload: ReviewSubmit) -> list[int]:
    values = (getattr(payload, key) for key, _, _ in RATING_CRITERIA)
    return [v for v in values if v is not None]


def reliability_score(payload: ReviewSubmit) -> int:
    """
    Score a review from 0 to 100.

    - 40 when the reviewer confirms the collaboration
    - 20 when they agree to show their identity
    - 40 when at least three criteria are rated
    - 10 for a comment longer than 100 characters
    """
    score = 0
    if payload.confirm_collaboration:
        score += 40
    if payload.consent_display_identity:
        score += 20
    if len(_criteria_ratings(payload)) >= 3:
        score += 40
    if len(payload.comment) > 100:
        score += 10
    return min(score, 100)


def reliability_level(score: int) -> ReliabilityLevel:
    if score >= 70:
        return ReliabilityLevel.HIGH
    if score >= 50:
        return ReliabilityLevel.MEDIUM
    return ReliabilityLevel.LOW


def overall_rating(payload: ReviewSubmit) -> int | None:
    """The given overall rating, else the rounded mean of the criteria."""
    if payload.rating_overall is not None:
        return payload.rating_overall
    ratings = _criteria_ratings(payload)
    if not ratings:
        return None
    return int(sum(ratings) / len(ratings) + 0.5)


def _invoice_mission_id(invoice_id: str) -> str | None:
    link = first_row(
        SupabaseClient.get_client()
        .table("mission_invoices")
        .select("mission_id")
        .eq("invoice_id", invoice_id)
        .limit(1)
        .execute()
    )
    return link["mission_id"] if link else None


class ReviewService:
    """
    Service for review requests and the reviews they collect.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Requests (owner side)
    # -------------------------------------------------------------------------

    @staticmethod
    def create_request(user_id: UUID | str, payload: ReviewRequestCreate) -> dict[str, Any]:
        """
        Open a review request on an invoice.

        The mission's tags are stored as suggested_tags and a public token
        is generated for the share link.

        Args:
            user_id: Owner
            payload: Invoice, title, context and recipients

        Returns:
            The request row plus its "recipients"

        Raises:
            NotFoundError: If the invoice or a recipient contact isn't the user's
            ValidationFailedError: If the invoice isn't sent or has no mission
            ConflictError: If the invoice already has a request
        """
        invoice = require_owned(
            "invoices", payload.invoice_id, user_id, "invoice", columns="id, status, client_id"
        )
        if invoice.get("status") not in REVIEWABLE_INVOICE_STATUSES:
            raise ValidationFailedError(
                f"Reviews can only be requested for a sent invoice (current status: {invoice.get('status')})",
                suggestion="Send the invoice first",
            )

        mission_id = _invoice_mission_id(invoice["id"])
        if mission_id is None:
            raise ValidationFailedError(
                "The invoice must be linked to a mission to request a review",
                suggestion="Link the invoice to its mission first",
            )

        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)
        existing = first_row(
            client.table("review_requests")
            .select("id")
            .eq("user_id", user_id_str)
            .eq("invoice_id", invoice["id"])
            .limit(1)
            .execute()
        )
        if existing:
            raise ConflictError(
                "A review request already exists for this invoice",
                code="REVIEW_REQUEST_EXISTS",
                details={"review_request_id": existing["id"]},
            )

        contact_ids = [r.contact_id for r in payload.recipients if r.contact_id]
        require_owned_ids("contacts", contact_ids, user_id, "contact")

        suggested_tags = (
            client.table("mission_tags")
            .select("tag, color")
            .eq("mission_id", mission_id)
            .execute()
        ).data or []

        request = SupabaseClient.insert_one("review_requests", {
            "user_id": user_id_str,
            "invoice_id": invoice["id"],
            "client_id": invoice.get("client_id"),
            "title": payload.title,
            "context_text": payload.context_text,
            "public_token": generate_token(settings.PUBLIC_TOKEN_LENGTH),
            "status": ReviewRequestStatus.SENT.value,
            "suggested_tags": suggested_tags,
            "sent_at": utc_now_iso(),
        })
        logger.info(f"Created review request: {request['id']} for invoice: {invoice['id']}")

        recipients: list[dict[str, Any]] = []
        if payload.recipients:
            rows = [
                {
                    "review_request_id": request["id"],
                    "email": r.email.strip().lower(),
                    "contact_id": normalize_uuid(r.contact_id) if r.contact_id else None,
                    "status": ReviewRequestStatus.SENT.value,
                }
                for r in payload.recipients
            ]
            try:
                recipients = client.table("review_request_recipients").insert(rows).execute().data or []
            except (APIError, SupabaseClientError) as e:
                client.table("review_requests").delete().eq("id", request["id"]).execute()
                raise DatabaseError("add review request recipients", str(e))

        ActivityService.log(user_id, "create", "review_request", request["id"], request.get("title"))
        return {**request, "recipients": recipients}

    @staticmethod
    def list_requests(
        user_id: UUID | str,
        status: ReviewRequestStatus | None = None,
        client_id: UUID | str | None = None,
        invoice_id: UUID | str | None = None,
    ) -> list[dict[str, Any]]:
        """List requests, newest first."""
        client = SupabaseClient.get_client()
        query = client.table("review_requests").select("*").eq("user_id", normalize_uuid(user_id))
        if status:
            query = query.eq("status", status.value)
        if client_id:
            query = query.eq("client_id", normalize_uuid(client_id))
        if invoice_id:
            query = query.eq("invoice_id", normalize_uuid(invoice_id))
        return query.order("created_at", desc=True).execute().data or []

    @staticmethod
    def get_request(user_id: UUID | str, request_id: UUID | str) -> dict[str, Any]:
        """
        A request with its "recipients" and the "reviews" it collected.

        Raises:
            NotFoundError: If the request isn't the user's
        """
        request = require_owned("review_requests", request_id, user_id, "review_request", soft_delete=False)
        client = SupabaseClient.get_client()

        request["recipients"] = (
            client.table("review_request_recipients")
            .select("*")
            .eq("review_request_id", request["id"])
            .order("created_at")
            .execute()
        ).data or []
        request["reviews"] = (
            client.table("reviews")
            .select("*")
            .eq("review_request_id", request["id"])
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .execute()
        ).data or []
        return request

    @staticmethod
    def remind_request(user_id: UUID | str, request_id: UUID | str) -> dict[str, Any]:
        """
        Mark a request as reminded (status pending).

        Raises:
            NotFoundError: If the request isn't the user's
            ValidationFailedError: If it already got an answer
        """
        request = require_owned("review_requests", request_id, user_id, "review_request", soft_delete=False)
        if request.get("status") == ReviewRequestStatus.RESPONDED.value:
            raise ValidationFailedError("This request has already been answered")

        changes = {"status": ReviewRequestStatus.PENDING.value, "last_reminded_at": utc_now_iso()}
        updated = first_row(
            SupabaseClient.get_client()
            .table("review_requests")
            .update(changes)
            .eq("id", request["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        return updated or {**request, **changes}

    # -------------------------------------------------------------------------
    # Public form
    # -------------------------------------------------------------------------

    @staticmethod
    def _open_request(token: str) -> tuple[dict[str, Any], dict[str, Any]]:
        """Request and invoice behind a token, while the invoice can still be reviewed."""
        client = SupabaseClient.get_client()
        request = first_row(
            client.table("review_requests").select("*").eq("public_token", token).limit(1).execute()
        )
        if request is None:
            raise NotFoundError("review_request", token)

        invoice = first_row(
            client.table("invoices")
            .select("id, numero, status")
            .eq("id", request["invoice_id"])
            .eq("user_id", request["user_id"])
            .is_("deleted_at", "null")
            .limit(1)
            .execute()
        )
        if invoice is None or invoice.get("status") not in REVIEWABLE_INVOICE_STATUSES:
            raise ValidationFailedError("This review request is no longer valid")
        return request, invoice

    @staticmethod
    def _already_reviewed(request_id: str, email: str) -> bool:
        return first_row(
            SupabaseClient.get_client()
            .table("reviews")
            .select("id")
            .eq("review_request_id", request_id)
            .eq("reviewer_email", email.strip().lower())
            .limit(1)
            .execute()
        ) is not None

    @staticmethod
    def get_public_request(token: str, email: str | None = None) -> dict[str, Any]:
        """
        What the public review form needs to render.

        Args:
            token: Public token of the request
            email: When given, already_responded tells whether it already answered

        Raises:
            NotFoundError: If the token is unknown
            ValidationFailedError: If the invoice was cancelled or deleted
        """
        request, invoice = ReviewService._open_request(token)
        client_row = first_row(
            SupabaseClient.get_client()
            .table("clients")
            .select("nom, type")
            .eq("id", request.get("client_id"))
            .eq("user_id", request["user_id"])
            .limit(1)
            .execute()
        ) or {}

        return {
            "request": {key: request.get(key) for key in ("id", "title", "context_text", "status")},
            "client": {"name": client_row.get("nom") or "Client", "type": client_row.get("type")},
            "invoice": {"numero": invoice.get("numero")},
            "rating_criteria": [
                {"key": key, "label": label, "description": description}
                for key, label, description in RATING_CRITERIA
            ],
            "already_responded": bool(email) and ReviewService._already_reviewed(request["id"], email),
        }

    @staticmethod
    def submit_review(token: str, payload: ReviewSubmit) -> dict[str, Any]:
        """
        Record a review left through the public form.

        The review is stored unpublished with its reliability score. The
        request and the matching recipient are marked responded.

        Raises:
            NotFoundError: If the token is unknown
            ValidationFailedError: If the collaboration isn't confirmed or the request expired
            ConflictError: If this email already reviewed the request
        """
        if not payload.confirm_collaboration:
            raise ValidationFailedError(
                "You must confirm you worked with this freelancer to leave a review"
            )

        request, _ = ReviewService._open_request(token)
        email = payload.reviewer_email.strip().lower()
        if ReviewService._already_reviewed(request["id"], email):
            raise ConflictError(
                "A review was already submitted with this email",
                code="REVIEW_EXISTS",
            )

        score = reliability_score(payload)
        data = payload.model_dump(exclude={"rating_overall"})
        data.update({
            "user_id": request["user_id"],
            "review_request_id": request["id"],
            "invoice_id": request["invoice_id"],
            "client_id": request.get("client_id"),
            "reviewer_email": email,
            "comment": payload.comment.strip(),
            "rating_overall": overall_rating(payload),
            "reliability_score": score,
            "reliability_level": reliability_level(score).value,
            "is_published": False,
        })
        review = SupabaseClient.insert_one("reviews", data)
        logger.info(f"Review {review['id']} submitted for request: {request['id']}")

        client = SupabaseClient.get_client()
        client.table("review_requests").update(
            {"status": ReviewRequestStatus.RESPONDED.value}
        ).eq("id", request["id"]).execute()
        client.table("review_request_recipients").update(
            {"status": ReviewRequestStatus.RESPONDED.value, "responded_at": utc_now_iso()}
        ).eq("review_request_id", request["id"]).eq("email", email).execute()
        return review

    # -------------------------------------------------------------------------
    # Reviews (owner side)
    # -------------------------------------------------------------------------

    @staticmethod
    def list_reviews(
        user_id: UUID | str,
        is_published: bool | None = None,
        client_id: UUID | str | None = None,
    ) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = client.table("reviews").select("*").eq("user_id", normalize_uuid(user_id))
        if is_published is not None:
            query = query.eq("is_published", is_published)
        if client_id:
            query = query.eq("client_id", normalize_uuid(client_id))
        return query.order("created_at", desc=True).execute().data or []

    @staticmethod
    def get_review(user_id: UUID | str, review_id: UUID | str) -> dict[str, Any]:
        return require_owned("reviews", review_id, user_id, "review", soft_delete=False)

    @staticmethod
    def set_published(user_id: UUID | str, review_id: UUID | str, is_published: bool) -> dict[str, Any]:
        """
        Publish or unpublish a review.

        Raises:
            NotFoundError: If the review isn't the user's
        """
        review = require_owned("reviews", review_id, user_id, "review", soft_delete=False)
        updated = first_row(
            SupabaseClient.get_client()
            .table("reviews")
            .update({"is_published": is_published})
            .eq("id", review["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        logger.info(f"Review {review['id']} published: {is_published}")
        return updated or {**review, "is_published": is_published}
