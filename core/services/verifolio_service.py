# =============================================================================
# core/services/verifolio_service.py - Public Portfolio (Verifolio)
# =============================================================================
# Each user has at most one Verifolio profile. Activities and review
# selections hang off the profile and are ordered by sort_order.
#
# get_public_profile() is the only unauthenticated read: it exposes a
# published profile and strips reviewer identities without consent.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import ConflictError, NotFoundError
from core.models.verifolio import (
    ActivityCreate,
    ActivityUpdate,
    ProfileCreate,
    ProfileUpdate,
    ReviewSelectionCreate,
    ReviewSelectionUpdate,
)
from core.services.common import changes_from, insert_unique, require_owned
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, slugify, utc_now

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = ("reviewer_name", "reviewer_company", "reviewer_role")


def public_review(selection: dict[str, Any], review: dict[str, Any], activity_title: str | None) -> dict[str, Any]:
    """Public shape of a selected review; identity is hidden without consent."""
    consent = bool(review.get("consent_display_identity"))
    data = {
        "id": review["id"],
        "rating_overall": review.get("rating_overall"),
        "comment": review.get("comment"),
        "consent_display_identity": consent,
        "created_at": review.get("created_at"),
        "activity_id": selection.get("activity_id"),
        "activity_title": activity_title,
    }
    for field in IDENTITY_FIELDS:
        data[field] = review.get(field) if consent else None
    return data


class VerifolioService:
    """
    Service for the Verifolio profile, activities and review selections.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    @staticmethod
    def get_profile(user_id: UUID | str) -> dict[str, Any] | None:
        client = SupabaseClient.get_client()
        return first_row(
            client.table("verifolio_profiles")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .limit(1)
            .execute()
        )

    @staticmethod
    def _require_profile(user_id: UUID | str) -> dict[str, Any]:
        profile = VerifolioService.get_profile(user_id)
        if profile is None:
            raise NotFoundError("verifolio_profile")
        return profile

    @staticmethod
    def is_slug_available(slug: str, exclude_user_id: UUID | str | None = None) -> bool:
        """True when no profile (other than exclude_user_id's) uses slug."""
        client = SupabaseClient.get_client()
        query = client.table("verifolio_profiles").select("id").eq("slug", slug)
        if exclude_user_id:
            query = query.neq("user_id", normalize_uuid(exclude_user_id))
        return first_row(query.limit(1).execute()) is None

    @staticmethod
    def generate_slug(display_name: str) -> str:
        """
        Free slug derived from a display name.

        "claire-martin", then "claire-martin-2", "claire-martin-3", ...
        Names without any usable character give "user-<timestamp>".
        """
        base = slugify(display_name)
        if not base:
            return f"user-{int(utc_now().timestamp() * 1000)}"

        slug, counter = base, 1
        while not VerifolioService.is_slug_available(slug):
            counter += 1
            suffix = f"-{counter}"
            slug = f"{base[:50 - len(suffix)].rstrip('-')}{suffix}"
        return slug

    @staticmethod
    def create_profile(user_id: UUID | str, payload: ProfileCreate) -> dict[str, Any]:
        """
        Create the user's profile (unpublished).

        Raises:
            ConflictError: If the user already has a profile or the slug is taken
        """
        if VerifolioService.get_profile(user_id):
            raise ConflictError("Profile already exists", code="PROFILE_EXISTS")

        slug = payload.slug or VerifolioService.generate_slug(payload.display_name)
        if payload.slug and not VerifolioService.is_slug_available(slug):
            raise ConflictError("This slug is already taken", code="SLUG_TAKEN")

        profile = insert_unique(
            "verifolio_profiles",
            {
                "user_id": normalize_uuid(user_id),
                "slug": slug,
                "display_name": payload.display_name,
                "title": payload.title,
                "bio": payload.bio,
                "photo_url": payload.photo_url,
                "is_published": False,
            },
            "This slug is already taken",
        )
        logger.info(f"Created verifolio profile '{slug}' for user: {user_id}")
        return profile

    @staticmethod
    def update_profile(user_id: UUID | str, payload: ProfileUpdate) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the user has no profile
            ConflictError: If the new slug belongs to another user
        """
        profile = VerifolioService._require_profile(user_id)
        changes = changes_from(payload)
        if not changes:
            return profile

        if "slug" in changes and not VerifolioService.is_slug_available(changes["slug"], user_id):
            raise ConflictError("This slug is already taken", code="SLUG_TAKEN")

        client = SupabaseClient.get_client()
        return first_row(
            client.table("verifolio_profiles")
            .update(changes)
            .eq("id", profile["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        ) or {**profile, **changes}

    @staticmethod
    def set_published(user_id: UUID | str, is_published: bool) -> dict[str, Any]:
        return VerifolioService.update_profile(user_id, ProfileUpdate(is_published=is_published))

    # -------------------------------------------------------------------------
    # Activities
    # -------------------------------------------------------------------------

    @staticmethod
    def list_activities(user_id: UUID | str) -> list[dict[str, Any]]:
        profile = VerifolioService._require_profile(user_id)
        client = SupabaseClient.get_client()
        return (
            client.table("verifolio_activities")
            .select("*")
            .eq("profile_id", profile["id"])
            .order("sort_order")
            .execute()
        ).data or []

    @staticmethod
    def create_activity(user_id: UUID | str, payload: ActivityCreate) -> dict[str, Any]:
        """Add an activity, after the last one unless sort_order is given."""
        profile = VerifolioService._require_profile(user_id)
        if payload.user_activity_id:
            require_owned(
                "user_activities", payload.user_activity_id, user_id, "user_activity",
                columns="id", soft_delete=False,
            )
        sort_order = payload.sort_order
        if sort_order is None:
            sort_order = SupabaseClient.next_sort_order("verifolio_activities", {"profile_id": profile["id"]})

        data = payload.model_dump(mode="json")
        data.update({
            "profile_id": profile["id"],
            "user_id": normalize_uuid(user_id),
            "sort_order": sort_order,
            "is_visible": True,
        })
        return SupabaseClient.insert_one("verifolio_activities", data)

    @staticmethod
    def update_activity(
        user_id: UUID | str,
        activity_id: UUID | str,
        payload: ActivityUpdate,
    ) -> dict[str, Any]:
        activity = require_owned(
            "verifolio_activities", activity_id, user_id, "activity", soft_delete=False
        )
        changes = changes_from(payload)
        if not changes:
            return activity
        client = SupabaseClient.get_client()
        return first_row(
            client.table("verifolio_activities")
            .update(changes)
            .eq("id", activity["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        ) or {**activity, **changes}

    @staticmethod
    def delete_activity(user_id: UUID | str, activity_id: UUID | str) -> None:
        response = (
            SupabaseClient.get_client()
            .table("verifolio_activities")
            .delete()
            .eq("id", normalize_uuid(activity_id))
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        if not response.data:
            raise NotFoundError("activity", str(activity_id))

    @staticmethod
    def reorder_activities(user_id: UUID | str, ids: list[UUID | str]) -> list[dict[str, Any]]:
        """Set sort_order to each activity's position in ids."""
        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)
        for index, activity_id in enumerate(ids):
            client.table("verifolio_activities").update({"sort_order": index}).eq(
                "id", normalize_uuid(activity_id)
            ).eq("user_id", user_id_str).execute()
        return VerifolioService.list_activities(user_id)

    # -------------------------------------------------------------------------
    # Review Selections
    # -------------------------------------------------------------------------

    @staticmethod
    def list_review_selections(user_id: UUID | str) -> list[dict[str, Any]]:
        profile = VerifolioService._require_profile(user_id)
        client = SupabaseClient.get_client()
        return (
            client.table("verifolio_review_selections")
            .select("*")
            .eq("profile_id", profile["id"])
            .order("sort_order")
            .execute()
        ).data or []

    @staticmethod
    def available_reviews(user_id: UUID | str) -> list[dict[str, Any]]:
        """Published reviews of the user, newest first, to pick from."""
        client = SupabaseClient.get_client()
        return (
            client.table("reviews")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .eq("is_published", True)
            .order("created_at", desc=True)
            .execute()
        ).data or []

    @staticmethod
    def _require_profile_activity(profile: dict[str, Any], activity_id: UUID | str) -> str:
        """Id of an activity on the profile, or NotFoundError."""
        activity = first_row(
            SupabaseClient.get_client()
            .table("verifolio_activities")
            .select("id")
            .eq("id", normalize_uuid(activity_id))
            .eq("profile_id", profile["id"])
            .limit(1)
            .execute()
        )
        if activity is None:
            raise NotFoundError("activity", str(activity_id))
        return activity["id"]

    @staticmethod
    def add_review_selection(user_id: UUID | str, payload: ReviewSelectionCreate) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the profile, review or activity isn't the user's
            ConflictError: If the review is already selected
        """
        profile = VerifolioService._require_profile(user_id)
        require_owned("reviews", payload.review_id, user_id, "review", columns="id", soft_delete=False)
        activity_id = None
        if payload.activity_id:
            activity_id = VerifolioService._require_profile_activity(profile, payload.activity_id)

        sort_order = payload.sort_order
        if sort_order is None:
            sort_order = SupabaseClient.next_sort_order(
                "verifolio_review_selections", {"profile_id": profile["id"]}
            )

        return insert_unique(
            "verifolio_review_selections",
            {
                "profile_id": profile["id"],
                "review_id": normalize_uuid(payload.review_id),
                "activity_id": activity_id,
                "sort_order": sort_order,
            },
            "This review is already selected",
        )

    @staticmethod
    def _require_selection(user_id: UUID | str, selection_id: UUID | str) -> dict[str, Any]:
        profile = VerifolioService._require_profile(user_id)
        selection = first_row(
            SupabaseClient.get_client()
            .table("verifolio_review_selections")
            .select("*")
            .eq("id", normalize_uuid(selection_id))
            .eq("profile_id", profile["id"])
            .limit(1)
            .execute()
        )
        if selection is None:
            raise NotFoundError("review_selection", str(selection_id))
        return selection

    @staticmethod
    def update_review_selection(
        user_id: UUID | str,
        selection_id: UUID | str,
        payload: ReviewSelectionUpdate,
    ) -> dict[str, Any]:
        selection = VerifolioService._require_selection(user_id, selection_id)
        changes = changes_from(payload)
        if changes.get("activity_id"):
            profile = VerifolioService._require_profile(user_id)
            VerifolioService._require_profile_activity(profile, changes["activity_id"])
        if not changes:
            return selection
        client = SupabaseClient.get_client()
        return first_row(
            client.table("verifolio_review_selections").update(changes).eq("id", selection["id"]).execute()
        ) or {**selection, **changes}

    @staticmethod
    def remove_review_selection(user_id: UUID | str, selection_id: UUID | str) -> None:
        selection = VerifolioService._require_selection(user_id, selection_id)
        SupabaseClient.get_client().table("verifolio_review_selections").delete().eq(
            "id", selection["id"]
        ).execute()

    @staticmethod
    def reorder_review_selections(user_id: UUID | str, ids: list[UUID | str]) -> list[dict[str, Any]]:
        profile = VerifolioService._require_profile(user_id)
        client = SupabaseClient.get_client()
        for index, selection_id in enumerate(ids):
            client.table("verifolio_review_selections").update({"sort_order": index}).eq(
                "id", normalize_uuid(selection_id)
            ).eq("profile_id", profile["id"]).execute()
        return VerifolioService.list_review_selections(user_id)

    # -------------------------------------------------------------------------
    # Public Page
    # -------------------------------------------------------------------------

    @staticmethod
    def get_public_reviews(profile: dict[str, Any], min_rating: int | None = None) -> list[dict[str, Any]]:
        """
        Selected reviews in display order.

        Only the profile owner's reviews and the profile's own activities
        are shown. Unpublished reviews and reviews rated below min_rating
        are skipped.
        """
        client = SupabaseClient.get_client()
        profile_id = profile["id"]
        selections = (
            client.table("verifolio_review_selections")
            .select("*")
            .eq("profile_id", profile_id)
            .order("sort_order")
            .execute()
        ).data or []
        if not selections:
            return []

        review_ids = sorted({s["review_id"] for s in selections})
        reviews = {
            r["id"]: r
            for r in (
                client.table("reviews")
                .select("*")
                .in_("id", review_ids)
                .eq("user_id", profile["user_id"])
                .execute()
            ).data or []
        }
        activity_ids = sorted({s["activity_id"] for s in selections if s.get("activity_id")})
        activities: dict[str, dict[str, Any]] = {}
        if activity_ids:
            activities = {
                a["id"]: a
                for a in (
                    client.table("verifolio_activities")
                    .select("id, title")
                    .in_("id", activity_ids)
                    .eq("profile_id", profile_id)
                    .execute()
                ).data or []
            }

        result = []
        for selection in selections:
            review = reviews.get(selection["review_id"])
            if not review or not review.get("is_published"):
                continue
            rating = review.get("rating_overall")
            if min_rating and rating and rating < min_rating:
                continue
            activity = activities.get(selection.get("activity_id"))
            result.append(public_review(selection, review, activity.get("title") if activity else None))
        return result

    @staticmethod
    def get_public_profile(slug: str) -> dict[str, Any]:
        """
        Public view of a published profile.

        Raises:
            NotFoundError: If no published profile has this slug
        """
        client = SupabaseClient.get_client()
        profile = first_row(
            client.table("verifolio_profiles")
            .select("*")
            .eq("slug", slug)
            .eq("is_published", True)
            .limit(1)
            .execute()
        )
        if profile is None:
            raise NotFoundError("verifolio_profile", slug)

        activities: list[dict[str, Any]] = []
        if profile.get("show_activities", True):
            rows = (
                client.table("verifolio_activities")
                .select("*")
                .eq("profile_id", profile["id"])
                .eq("is_visible", True)
                .order("sort_order")
                .execute()
            ).data or []
            activities = [
                {key: row.get(key) for key in ("id", "title", "description", "image_url")}
                for row in rows
            ]

        reviews: list[dict[str, Any]] = []
        if profile.get("show_reviews", True):
            reviews = VerifolioService.get_public_reviews(profile, profile.get("reviews_min_rating"))

        public_fields = (
            "slug", "photo_url", "display_name", "title", "bio",
            "cta1_label", "cta1_url", "cta2_label", "cta2_url",
            "show_activities", "show_reviews",
        )
        return {
            **{key: profile.get(key) for key in public_fields},
            "activities": activities,
            "reviews": reviews,
        }
