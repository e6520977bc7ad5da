# =============================================================================
# app/routers/verifolio.py - Verifolio Profile Endpoints
# =============================================================================
# Owner-side management of the public portfolio: profile, activities and
# selected reviews. The published page itself is served by
# app/routers/public.py.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import CurrentUser
from app.exceptions import NotFoundError
from core.models.common import ReorderRequest
from core.models.verifolio import (
    SLUG_PATTERN,
    ActivityCreate,
    ActivityUpdate,
    ProfileCreate,
    ProfileUpdate,
    PublishedToggle,
    ReviewSelectionCreate,
    ReviewSelectionUpdate,
)
from core.services.verifolio_service import VerifolioService

router = APIRouter()

ActivityId = Annotated[UUID, Path(description="Activity UUID")]
SelectionId = Annotated[UUID, Path(description="Review selection UUID")]


# -----------------------------------------------------------------------------
# Profile
# -----------------------------------------------------------------------------

@router.get("/profile")
async def get_profile(user: CurrentUser):
    profile = VerifolioService.get_profile(user.id)
    if profile is None:
        raise NotFoundError("verifolio_profile")
    return {"data": profile}


@router.post("/profile", status_code=status.HTTP_201_CREATED)
async def create_profile(payload: ProfileCreate, user: CurrentUser):
    """Create the profile (unpublished). The slug is derived from display_name when omitted."""
    return {"data": VerifolioService.create_profile(user.id, payload)}


@router.patch("/profile")
async def update_profile(payload: ProfileUpdate, user: CurrentUser):
    return {"data": VerifolioService.update_profile(user.id, payload)}


@router.patch("/profile/published")
async def set_published(payload: PublishedToggle, user: CurrentUser):
    return {"data": VerifolioService.set_published(user.id, payload.is_published)}


@router.get("/slug-available")
async def is_slug_available(
    user: CurrentUser,
    slug: Annotated[str, Query(min_length=2, max_length=50, pattern=SLUG_PATTERN)],
):
    """Whether slug is free (the user's own slug counts as free)."""
    return {"data": {"slug": slug, "available": VerifolioService.is_slug_available(slug, user.id)}}


# -----------------------------------------------------------------------------
# Activities
# -----------------------------------------------------------------------------

@router.get("/activities")
async def list_activities(user: CurrentUser):
    return {"data": VerifolioService.list_activities(user.id)}


@router.post("/activities", status_code=status.HTTP_201_CREATED)
async def create_activity(payload: ActivityCreate, user: CurrentUser):
    return {"data": VerifolioService.create_activity(user.id, payload)}


@router.put("/activities/reorder")
async def reorder_activities(payload: ReorderRequest, user: CurrentUser):
    return {"data": VerifolioService.reorder_activities(user.id, payload.ids)}


@router.patch("/activities/{activity_id}")
async def update_activity(activity_id: ActivityId, payload: ActivityUpdate, user: CurrentUser):
    return {"data": VerifolioService.update_activity(user.id, activity_id, payload)}


@router.delete("/activities/{activity_id}")
async def delete_activity(activity_id: ActivityId, user: CurrentUser):
    VerifolioService.delete_activity(user.id, activity_id)
    return {"success": True}


# -----------------------------------------------------------------------------
# Review Selections
# -----------------------------------------------------------------------------

@router.get("/reviews")
async def list_review_selections(user: CurrentUser):
    return {"data": VerifolioService.list_review_selections(user.id)}


@router.get("/reviews/available")
async def available_reviews(user: CurrentUser):
    """Published reviews that can be shown on the page."""
    return {"data": VerifolioService.available_reviews(user.id)}


@router.post("/reviews", status_code=status.HTTP_201_CREATED)
async def add_review_selection(payload: ReviewSelectionCreate, user: CurrentUser):
    return {"data": VerifolioService.add_review_selection(user.id, payload)}


@router.put("/reviews/reorder")
async def reorder_review_selections(payload: ReorderRequest, user: CurrentUser):
    return {"data": VerifolioService.reorder_review_selections(user.id, payload.ids)}


@router.patch("/reviews/{selection_id}")
async def update_review_selection(selection_id: SelectionId, payload: ReviewSelectionUpdate, user: CurrentUser):
    return {"data": VerifolioService.update_review_selection(user.id, selection_id, payload)}


@router.delete("/reviews/{selection_id}")
async def remove_review_selection(selection_id: SelectionId, user: CurrentUser):
    VerifolioService.remove_review_selection(user.id, selection_id)
    return {"success": True}
