# =============================================================================
# core/models/verifolio.py - Verifolio (Public Portfolio) Schemas
# =============================================================================
# Each user may publish one portfolio page at /public/verifolio/{slug} with
# a header, up to two calls to action, a list of activities and a curated
# selection of client reviews.
# =============================================================================

from uuid import UUID

from pydantic import BaseModel, Field

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class ProfileCreate(BaseModel):
    """
    Schema for creating the portfolio profile.

    The slug is generated from display_name when omitted.

    Example:
        {"display_name": "Claire Martin", "title": "Designer UX"}
    """

    display_name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=2, max_length=50, pattern=SLUG_PATTERN)
    title: str | None = Field(default=None, max_length=150)
    bio: str | None = None
    photo_url: str | None = None


class ProfileUpdate(BaseModel):
    slug: str | None = Field(default=None, min_length=2, max_length=50, pattern=SLUG_PATTERN)
    is_published: bool | None = None
    photo_url: str | None = None
    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    title: str | None = Field(default=None, max_length=150)
    bio: str | None = None
    cta1_label: str | None = Field(default=None, max_length=50)
    cta1_url: str | None = None
    cta2_label: str | None = Field(default=None, max_length=50)
    cta2_url: str | None = None
    show_activities: bool | None = None
    show_reviews: bool | None = None
    reviews_min_rating: int | None = Field(default=None, ge=1, le=5)


class PublishedToggle(BaseModel):
    is_published: bool


class ActivityCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = None
    user_activity_id: UUID | None = None
    sort_order: int | None = Field(default=None, ge=0)


class ActivityUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = None
    sort_order: int | None = Field(default=None, ge=0)
    is_visible: bool | None = None


class ReviewSelectionCreate(BaseModel):
    """Pick a published review for the public page, optionally under an activity."""

    review_id: UUID
    activity_id: UUID | None = None
    sort_order: int | None = Field(default=None, ge=0)


class ReviewSelectionUpdate(BaseModel):
    activity_id: UUID | None = None
    sort_order: int | None = Field(default=None, ge=0)
