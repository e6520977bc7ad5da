# =============================================================================
# app/routers/reviews.py - Review Request & Review Endpoints
# =============================================================================
# Two routers:
# - requests_router (/review-requests): open, list, inspect and remind
# - router (/reviews): collected reviews and their publication
#
# The public form behind a request's token lives in app/routers/public.py.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from core.models.review import ReviewRequestCreate, ReviewRequestStatus
from core.models.verifolio import PublishedToggle
from core.services.review_service import ReviewService

requests_router = APIRouter()
router = APIRouter()

RequestId = Annotated[UUID, Path(description="Review request UUID")]
ReviewId = Annotated[UUID, Path(description="Review UUID")]


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------

@requests_router.post("", status_code=status.HTTP_201_CREATED)
async def create_review_request(payload: ReviewRequestCreate, user: CurrentUser):
    """
    Open a review request on a sent invoice linked to a mission.

    The response carries the public_token of the share link. Emails are
    not sent by the API.
    """
    return {"data": ReviewService.create_request(user.id, payload)}


@requests_router.get("")
async def list_review_requests(
    user: CurrentUser,
    request_status: Annotated[ReviewRequestStatus | None, Query(alias="status")] = None,
    client_id: UUID | None = None,
    invoice_id: UUID | None = None,
):
    return {"data": ReviewService.list_requests(user.id, request_status, client_id, invoice_id)}


@requests_router.get("/{request_id}")
async def get_review_request(request_id: RequestId, user: CurrentUser):
    """Request with its recipients and the reviews it collected."""
    return {"data": ReviewService.get_request(user.id, request_id)}


@requests_router.post("/{request_id}/remind")
async def remind_review_request(request_id: RequestId, user: CurrentUser):
    return {"data": ReviewService.remind_request(user.id, request_id)}


# -----------------------------------------------------------------------------
# Reviews
# -----------------------------------------------------------------------------

@router.get("")
async def list_reviews(
    user: CurrentUser,
    is_published: bool | None = None,
    client_id: UUID | None = None,
):
    return {"data": ReviewService.list_reviews(user.id, is_published, client_id)}


@router.get("/{review_id}")
async def get_review(review_id: ReviewId, user: CurrentUser):
    return {"data": ReviewService.get_review(user.id, review_id)}


@router.patch("/{review_id}/published")
async def set_review_published(review_id: ReviewId, payload: PublishedToggle, user: CurrentUser):
    """Publish or unpublish a review. Only published reviews can be shown on Verifolio."""
    return {"data": ReviewService.set_published(user.id, review_id, payload.is_published)}
