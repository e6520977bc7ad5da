# =============================================================================
# tests/test_deals.py - Deal Pipeline Tests
# =============================================================================
# Covers deal creation (contact linking), status changes, the back to draft
# review flow, tags/badges and mission creation from a won deal.
#
# Run with: pytest tests/test_deals.py -v
# =============================================================================

import pytest

from app.exceptions import ValidationFailedError
from core.models.deal import DealCreate, DealStatus
from core.services.deal_service import DealService, _contact_rows
from tests.conftest import OTHER_USER_ID, USER_ID


# =============================================================================
# Contact Linking
# =============================================================================

class TestContactRows:
    """Tests for _contact_rows()."""

    def test_uses_client_contacts_when_none_requested(self):
        links = [
            {"contact_id": "c1", "is_primary": False},
            {"contact_id": "c2", "is_primary": True},
        ]
        rows = _contact_rows("d1", [], links)

        assert [r["contact_id"] for r in rows] == ["c1", "c2"]
        assert [r["is_primary"] for r in rows] == [False, True]

    def test_first_is_primary_without_client_primary(self):
        rows = _contact_rows("d1", ["c3", "c4"], [])
        assert [r["is_primary"] for r in rows] == [True, False]

    def test_requested_contacts_win(self):
        links = [{"contact_id": "c1", "is_primary": True}]
        rows = _contact_rows("d1", ["c9"], links)
        assert rows == [{"deal_id": "d1", "contact_id": "c9", "is_primary": False}]


# =============================================================================
# Service
# =============================================================================

class TestDealService:
    """Tests for DealService."""

    def test_create_deal_links_client_contacts(self, fake_db, client_row, contact_row):
        fake_db.seed("client_contacts", client_id=client_row["id"], contact_id=contact_row["id"], is_primary=True)

        deal = DealService.create_deal(USER_ID, DealCreate(
            client_id=client_row["id"], title="Site e-commerce", tags=["web"]
        ))

        assert deal["status"] == "new"
        assert deal["currency"] == "EUR"
        links = fake_db.rows("deal_contacts")
        assert [(l["contact_id"], l["is_primary"]) for l in links] == [(contact_row["id"], True)]
        assert [t["tag"] for t in fake_db.rows("deal_tags")] == ["web"]

    def test_status_is_free(self, deal_row):
        for status in [DealStatus.WON, DealStatus.NEW, DealStatus.LOST, DealStatus.DRAFT]:
            assert DealService.update_status(USER_ID, deal_row["id"], status)["status"] == status.value

    def test_back_to_draft_from_sent_adds_review_badge(self, fake_db, deal_row):
        fake_db.get("deals", deal_row["id"])["status"] = "sent"

        deal = DealService.back_to_draft(USER_ID, deal_row["id"])

        assert deal["status"] == "draft"
        badges = fake_db.rows("deal_badges")
        assert [(b["badge"], b["variant"]) for b in badges] == [("REVIEW", "blue")]

    def test_back_to_draft_twice_keeps_one_badge(self, fake_db, deal_row):
        for _ in range(2):
            fake_db.get("deals", deal_row["id"])["status"] = "sent"
            DealService.back_to_draft(USER_ID, deal_row["id"])
        assert len(fake_db.rows("deal_badges")) == 1

    def test_back_to_draft_from_new_adds_no_badge(self, fake_db, deal_row):
        DealService.back_to_draft(USER_ID, deal_row["id"])
        assert fake_db.rows("deal_badges") == []

    def test_get_deal_lists_documents_newest_first(self, fake_db, deal_row):
        quote = fake_db.seed("quotes", user_id=USER_ID, deal_id=deal_row["id"], numero="DEV-001", deleted_at=None)
        proposal = fake_db.seed("proposals", owner_user_id=USER_ID, deal_id=deal_row["id"], title="Offre",
                                deleted_at=None)
        fake_db.seed("quotes", user_id=USER_ID, deal_id=deal_row["id"], numero="DEV-002",
                     deleted_at="2025-01-01T00:00:00+00:00")

        deal = DealService.get_deal(USER_ID, deal_row["id"])

        assert [d["document_type"] for d in deal["documents"]] == ["proposal", "quote"]
        assert deal["documents"][0]["proposal_id"] == proposal["id"]
        assert deal["documents"][1]["quote"]["id"] == quote["id"]
        assert deal["mission"] is None


# =============================================================================
# Mission from Deal
# =============================================================================

class TestCreateMissionFromDeal:
    """Tests for DealService.create_mission_from_deal()."""

    def test_requires_won_deal(self, deal_row):
        with pytest.raises(ValidationFailedError):
            DealService.create_mission_from_deal(USER_ID, deal_row["id"])

    def test_creates_hidden_mission_with_deal_contacts(self, fake_db, deal_row, contact_row):
        fake_db.get("deals", deal_row["id"])["status"] = "won"
        fake_db.seed("deal_contacts", deal_id=deal_row["id"], contact_id=contact_row["id"], is_primary=True)

        result = DealService.create_mission_from_deal(USER_ID, deal_row["id"])

        mission = result["mission"]
        assert result["already_existed"] is False
        assert mission["title"] == "Refonte site"
        assert mission["estimated_amount"] == 5000
        assert mission["visible_on_verifolio"] is False
        assert fake_db.get("deals", deal_row["id"])["mission_id"] == mission["id"]
        assert [l["contact_id"] for l in fake_db.rows("mission_contacts")] == [contact_row["id"]]

    def test_second_call_returns_existing_mission(self, fake_db, deal_row):
        fake_db.get("deals", deal_row["id"])["status"] = "won"
        first = DealService.create_mission_from_deal(USER_ID, deal_row["id"])
        second = DealService.create_mission_from_deal(USER_ID, deal_row["id"])

        assert second["already_existed"] is True
        assert second["mission"]["id"] == first["mission"]["id"]
        assert len(fake_db.rows("missions")) == 1

    def test_final_amount_takes_precedence(self, fake_db, deal_row):
        row = fake_db.get("deals", deal_row["id"])
        row.update(status="won", final_amount=4200)

        mission = DealService.create_mission_from_deal(USER_ID, deal_row["id"])["mission"]
        assert mission["estimated_amount"] == 4200


# =============================================================================
# Endpoints
# =============================================================================

class TestDealEndpoints:
    """Tests for /api/v1/deals."""

    def test_create_and_get(self, api, client_row):
        response = api.post("/api/v1/deals", json={"client_id": client_row["id"], "title": "Logo"})
        assert response.status_code == 201
        deal_id = response.json()["data"]["id"]

        data = api.get(f"/api/v1/deals/{deal_id}").json()["data"]
        assert data["client"]["nom"] == "Acme SAS"
        assert data["tags"] == []

    def test_create_mission_for_open_deal_is_400(self, api, deal_row):
        response = api.post(f"/api/v1/deals/{deal_row['id']}/create-mission")
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    def test_duplicate_tag_is_409(self, api, deal_row):
        url = f"/api/v1/deals/{deal_row['id']}/tags"
        api.post(url, json={"tag": "urgent"})
        assert api.post(url, json={"tag": "urgent"}).status_code == 409

    def test_remove_missing_tag_is_404(self, api, deal_row):
        assert api.delete(f"/api/v1/deals/{deal_row['id']}/tags/nope").status_code == 404

    def test_predefined_badge(self, api, fake_db, deal_row):
        response = api.post(f"/api/v1/deals/{deal_row['id']}/badges/predefined/VIP")
        assert response.status_code == 201
        assert response.json()["data"]["variant"] == "yellow"

    def test_replace_contacts(self, api, fake_db, deal_row, contact_row):
        other = fake_db.seed("contacts", user_id=USER_ID, nom="Durand", deleted_at=None)
        fake_db.seed("deal_contacts", deal_id=deal_row["id"], contact_id=contact_row["id"], is_primary=True)

        response = api.put(f"/api/v1/deals/{deal_row['id']}/contacts", json={"contact_ids": [other["id"]]})

        assert response.status_code == 200
        links = fake_db.rows("deal_contacts")
        assert [(l["contact_id"], l["is_primary"]) for l in links] == [(other["id"], True)]

    def test_replace_contacts_with_foreign_contact_is_404(self, api, fake_db, deal_row, contact_row):
        foreign = fake_db.seed("contacts", user_id=OTHER_USER_ID, prenom="Paul", nom="Secret",
                               email="paul@globex.example", deleted_at=None)
        fake_db.seed("deal_contacts", deal_id=deal_row["id"], contact_id=contact_row["id"], is_primary=True)

        response = api.put(f"/api/v1/deals/{deal_row['id']}/contacts",
                           json={"contact_ids": [contact_row["id"], foreign["id"]]})

        assert response.status_code == 404
        assert response.json()["code"] == "CONTACT_NOT_FOUND"
        links = fake_db.rows("deal_contacts")
        assert [l["contact_id"] for l in links] == [contact_row["id"]]

    def test_create_with_foreign_contact_is_404(self, api, fake_db, client_row):
        foreign = fake_db.seed("contacts", user_id=OTHER_USER_ID, nom="Secret", deleted_at=None)

        response = api.post("/api/v1/deals", json={
            "client_id": client_row["id"], "title": "Logo", "contacts": [foreign["id"]],
        })

        assert response.status_code == 404
        assert fake_db.rows("deals") == []

    def test_get_hides_foreign_linked_contact(self, api, fake_db, deal_row, contact_row):
        foreign = fake_db.seed("contacts", user_id=OTHER_USER_ID, nom="Secret", deleted_at=None)
        # Links written before ownership was enforced
        fake_db.seed("deal_contacts", deal_id=deal_row["id"], contact_id=contact_row["id"], is_primary=True)
        fake_db.seed("deal_contacts", deal_id=deal_row["id"], contact_id=foreign["id"], is_primary=False)

        data = api.get(f"/api/v1/deals/{deal_row['id']}").json()["data"]

        assert [c["contact"]["id"] for c in data["contacts"]] == [contact_row["id"]]

    def test_list_contacts_flags_linked_client_contacts(self, api, fake_db, client_row, deal_row, contact_row):
        fake_db.seed("client_contacts", client_id=client_row["id"], contact_id=contact_row["id"], is_primary=True)
        fake_db.seed("deal_contacts", deal_id=deal_row["id"], contact_id=contact_row["id"], is_primary=True)

        data = api.get(f"/api/v1/deals/{deal_row['id']}/contacts").json()["data"]

        assert len(data["deal_contacts"]) == 1
        assert data["client_contacts"][0]["linked_to_deal"] is True
