# =============================================================================
# tests/test_verifolio.py - Public Portfolio Tests
# =============================================================================
# Covers slug generation, profile lifecycle, activities, review selections
# and the public page (publication, visibility, identity consent).
#
# Run with: pytest tests/test_verifolio.py -v
# =============================================================================

import pytest

from core.services.verifolio_service import VerifolioService, public_review
from lib.utils import slugify
from tests.conftest import OTHER_USER_ID, USER_ID


@pytest.fixture
def profile(api):
    response = api.post("/api/v1/verifolio/profile", json={"display_name": "Claire Martin", "title": "Designer"})
    assert response.status_code == 201
    return response.json()["data"]


def _review(fake_db, **values):
    base = {
        "user_id": USER_ID,
        "is_published": True,
        "rating_overall": 5,
        "comment": "Super travail",
        "reviewer_name": "Jean Dupont",
        "reviewer_company": "Acme SAS",
        "reviewer_role": "CEO",
        "consent_display_identity": False,
    }
    return fake_db.seed("reviews", **{**base, **values})


class TestSlugs:
    """Tests for slugify() and VerifolioService.generate_slug()."""

    def test_slugify_strips_accents(self):
        assert slugify("Éloïse Martin - Design") == "eloise-martin-design"

    def test_slugify_truncates_cleanly(self):
        assert slugify("a-" * 40, max_length=5) == "a-a-a"

    def test_generate_slug_adds_suffix(self, fake_db):
        fake_db.seed("verifolio_profiles", user_id=OTHER_USER_ID, slug="claire-martin")
        fake_db.seed("verifolio_profiles", user_id="x", slug="claire-martin-2")

        assert VerifolioService.generate_slug("Claire Martin") == "claire-martin-3"

    def test_generate_slug_without_letters(self, fake_db):
        assert VerifolioService.generate_slug("!!!").startswith("user-")


class TestProfile:
    """Tests for /api/v1/verifolio/profile."""

    def test_profile_starts_unpublished(self, profile):
        assert profile["slug"] == "claire-martin"
        assert profile["is_published"] is False

    def test_no_profile_yet(self, api):
        response = api.get("/api/v1/verifolio/profile")
        assert response.status_code == 404
        assert response.json()["code"] == "VERIFOLIO_PROFILE_NOT_FOUND"

    def test_second_profile_is_409(self, api, profile):
        response = api.post("/api/v1/verifolio/profile", json={"display_name": "Autre"})
        assert response.status_code == 409
        assert response.json()["code"] == "PROFILE_EXISTS"

    def test_taken_slug_is_409(self, api, fake_db):
        fake_db.seed("verifolio_profiles", user_id=OTHER_USER_ID, slug="claire")
        response = api.post("/api/v1/verifolio/profile", json={"display_name": "Claire", "slug": "claire"})
        assert response.json()["code"] == "SLUG_TAKEN"

    def test_invalid_slug_is_422(self, api):
        response = api.post("/api/v1/verifolio/profile", json={"display_name": "C", "slug": "Pas Valide"})
        assert response.status_code == 422

    def test_slug_availability_ignores_own_profile(self, api, fake_db, profile):
        fake_db.seed("verifolio_profiles", user_id=OTHER_USER_ID, slug="pris")

        own = api.get("/api/v1/verifolio/slug-available", params={"slug": "claire-martin"}).json()["data"]
        taken = api.get("/api/v1/verifolio/slug-available", params={"slug": "pris"}).json()["data"]

        assert own == {"slug": "claire-martin", "available": True}
        assert taken["available"] is False

    def test_update_to_taken_slug_is_409(self, api, fake_db, profile):
        fake_db.seed("verifolio_profiles", user_id=OTHER_USER_ID, slug="pris")
        assert api.patch("/api/v1/verifolio/profile", json={"slug": "pris"}).status_code == 409

    def test_update_without_profile_is_404(self, api):
        assert api.patch("/api/v1/verifolio/profile", json={"bio": "x"}).status_code == 404


class TestActivitiesAndReviews:
    """Tests for activities and review selections."""

    def test_activities_append_and_reorder(self, api, profile):
        first = api.post("/api/v1/verifolio/activities", json={"title": "Identité visuelle"}).json()["data"]
        second = api.post("/api/v1/verifolio/activities", json={"title": "Sites web"}).json()["data"]
        assert (first["sort_order"], second["sort_order"]) == (0, 1)
        assert first["is_visible"] is True

        reordered = api.put("/api/v1/verifolio/activities/reorder", json={"ids": [second["id"], first["id"]]})
        assert [a["title"] for a in reordered.json()["data"]] == ["Sites web", "Identité visuelle"]

    def test_activity_requires_profile(self, api):
        assert api.post("/api/v1/verifolio/activities", json={"title": "x"}).status_code == 404

    def test_delete_unknown_activity_is_404(self, api, profile):
        missing = "33333333-3333-3333-3333-333333333333"
        assert api.delete(f"/api/v1/verifolio/activities/{missing}").status_code == 404

    def test_select_review_once(self, api, fake_db, profile):
        review = _review(fake_db)

        assert api.post("/api/v1/verifolio/reviews", json={"review_id": review["id"]}).status_code == 201
        assert api.post("/api/v1/verifolio/reviews", json={"review_id": review["id"]}).status_code == 409

    def test_foreign_review_cannot_be_selected(self, api, fake_db, profile):
        review = _review(fake_db, user_id=OTHER_USER_ID)
        assert api.post("/api/v1/verifolio/reviews", json={"review_id": review["id"]}).status_code == 404

    def test_foreign_activity_cannot_be_attached(self, api, fake_db, profile):
        other_page = fake_db.seed("verifolio_profiles", user_id=OTHER_USER_ID, slug="autre")
        other_activity = fake_db.seed("verifolio_activities", profile_id=other_page["id"], user_id=OTHER_USER_ID,
                                      title="Confidentiel", is_visible=True, sort_order=0)
        review = _review(fake_db)

        response = api.post("/api/v1/verifolio/reviews", json={
            "review_id": review["id"], "activity_id": other_activity["id"],
        })

        assert response.status_code == 404
        assert response.json()["code"] == "ACTIVITY_NOT_FOUND"
        assert fake_db.rows("verifolio_review_selections") == []

    def test_selection_moved_to_foreign_activity_is_404(self, api, fake_db, profile):
        other_page = fake_db.seed("verifolio_profiles", user_id=OTHER_USER_ID, slug="autre")
        other_activity = fake_db.seed("verifolio_activities", profile_id=other_page["id"], user_id=OTHER_USER_ID,
                                      title="Confidentiel", is_visible=True, sort_order=0)
        selection = api.post("/api/v1/verifolio/reviews", json={"review_id": _review(fake_db)["id"]}).json()["data"]

        response = api.patch(f"/api/v1/verifolio/reviews/{selection['id']}", json={"activity_id": other_activity["id"]})

        assert response.status_code == 404
        assert fake_db.get("verifolio_review_selections", selection["id"])["activity_id"] is None

    def test_own_activity_can_be_attached(self, api, fake_db, profile):
        activity = api.post("/api/v1/verifolio/activities", json={"title": "Sites web"}).json()["data"]

        response = api.post("/api/v1/verifolio/reviews", json={
            "review_id": _review(fake_db)["id"], "activity_id": activity["id"],
        })

        assert response.status_code == 201
        assert response.json()["data"]["activity_id"] == activity["id"]

    def test_foreign_user_activity_is_404(self, api, fake_db, profile):
        other_link = fake_db.seed("user_activities", user_id=OTHER_USER_ID, label_override="Secret")

        response = api.post("/api/v1/verifolio/activities", json={
            "title": "Sites web", "user_activity_id": other_link["id"],
        })

        assert response.status_code == 404
        assert response.json()["code"] == "USER_ACTIVITY_NOT_FOUND"

    def test_available_reviews_are_published_only(self, api, fake_db, profile):
        _review(fake_db, comment="visible")
        _review(fake_db, comment="brouillon", is_published=False)

        data = api.get("/api/v1/verifolio/reviews/available").json()["data"]
        assert [r["comment"] for r in data] == ["visible"]


class TestPublicPage:
    """Tests for GET /api/v1/public/verifolio/{slug}."""

    def test_unpublished_profile_is_404(self, anonymous_api, fake_db):
        fake_db.seed("verifolio_profiles", user_id=USER_ID, slug="cache", is_published=False)
        assert anonymous_api.get("/api/v1/public/verifolio/cache").status_code == 404

    def test_published_profile(self, anonymous_api, fake_db):
        page = fake_db.seed("verifolio_profiles", user_id=USER_ID, slug="claire", display_name="Claire",
                            is_published=True, show_activities=True, show_reviews=True, reviews_min_rating=4)
        fake_db.seed("verifolio_activities", profile_id=page["id"], user_id=USER_ID, title="Visible",
                     is_visible=True, sort_order=1)
        fake_db.seed("verifolio_activities", profile_id=page["id"], user_id=USER_ID, title="Masquée",
                     is_visible=False, sort_order=0)
        good = _review(fake_db, consent_display_identity=True)
        hidden = _review(fake_db, comment="anonyme")
        low = _review(fake_db, rating_overall=3)
        draft = _review(fake_db, is_published=False)
        for index, review in enumerate([hidden, good, low, draft]):
            fake_db.seed("verifolio_review_selections", profile_id=page["id"], review_id=review["id"],
                         sort_order=index)

        response = anonymous_api.get("/api/v1/public/verifolio/claire")

        assert response.status_code == 200
        data = response.json()["data"]
        assert "user_id" not in data
        assert [a["title"] for a in data["activities"]] == ["Visible"]
        assert [r["id"] for r in data["reviews"]] == [hidden["id"], good["id"]]
        assert data["reviews"][0]["reviewer_name"] is None
        assert data["reviews"][1]["reviewer_name"] == "Jean Dupont"

    def test_foreign_rows_never_reach_the_page(self, anonymous_api, fake_db):
        page = fake_db.seed("verifolio_profiles", user_id=USER_ID, slug="claire", is_published=True,
                            show_activities=True, show_reviews=True)
        other_page = fake_db.seed("verifolio_profiles", user_id=OTHER_USER_ID, slug="autre")
        other_activity = fake_db.seed("verifolio_activities", profile_id=other_page["id"], user_id=OTHER_USER_ID,
                                      title="Confidentiel", is_visible=True, sort_order=0)
        own = _review(fake_db, comment="le mien")
        foreign = _review(fake_db, user_id=OTHER_USER_ID, comment="pas le mien")
        # Links written before ownership was enforced
        fake_db.seed("verifolio_review_selections", profile_id=page["id"], review_id=own["id"],
                     activity_id=other_activity["id"], sort_order=0)
        fake_db.seed("verifolio_review_selections", profile_id=page["id"], review_id=foreign["id"], sort_order=1)

        reviews = anonymous_api.get("/api/v1/public/verifolio/claire").json()["data"]["reviews"]

        assert [r["id"] for r in reviews] == [own["id"]]
        assert "Confidentiel" not in str(reviews)

    def test_hidden_sections(self, anonymous_api, fake_db):
        page = fake_db.seed("verifolio_profiles", user_id=USER_ID, slug="sobre", is_published=True,
                            show_activities=False, show_reviews=False)
        fake_db.seed("verifolio_activities", profile_id=page["id"], title="x", is_visible=True, sort_order=0)

        data = anonymous_api.get("/api/v1/public/verifolio/sobre").json()["data"]
        assert (data["activities"], data["reviews"]) == ([], [])


class TestPublicReview:
    """Tests for public_review()."""

    def test_identity_requires_consent(self):
        review = {"id": "r1", "rating_overall": 5, "reviewer_name": "Jean", "reviewer_role": "CEO"}
        data = public_review({"activity_id": None}, review, None)
        assert data["reviewer_name"] is None
        assert data["reviewer_role"] is None
        assert data["consent_display_identity"] is False
