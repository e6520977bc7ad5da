# =============================================================================
# tests/test_missions.py - Mission Lifecycle Tests
# =============================================================================
# Covers the status transition table, soft delete and the mission endpoints.
#
# Run with: pytest tests/test_missions.py -v
# =============================================================================

import pytest

from app.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from core.models.mission import MISSION_TRANSITIONS, MissionCreate, MissionStatus, allowed_transitions
from core.services.mission_service import MissionService
from tests.conftest import OTHER_USER_ID, USER_ID


# =============================================================================
# Transition Table
# =============================================================================

class TestTransitionTable:
    """Tests for MISSION_TRANSITIONS."""

    def test_every_status_has_an_entry(self):
        assert set(MISSION_TRANSITIONS) == set(MissionStatus)

    @pytest.mark.parametrize("final", [MissionStatus.CLOSED, MissionStatus.CANCELLED])
    def test_final_statuses(self, final):
        assert allowed_transitions(final) == []

    @pytest.mark.parametrize("status", [MissionStatus.INVOICED, MissionStatus.PAID])
    def test_no_cancellation_once_invoiced(self, status):
        assert MissionStatus.CANCELLED not in MISSION_TRANSITIONS[status]

    def test_happy_path_is_linear(self):
        path = [
            MissionStatus.IN_PROGRESS,
            MissionStatus.DELIVERED,
            MissionStatus.TO_INVOICE,
            MissionStatus.INVOICED,
            MissionStatus.PAID,
            MissionStatus.CLOSED,
        ]
        for current, nxt in zip(path, path[1:]):
            assert nxt in MISSION_TRANSITIONS[current]


# =============================================================================
# Service
# =============================================================================

class TestMissionService:
    """Tests for MissionService."""

    def test_create_mission_starts_in_progress(self, fake_db, client_row, contact_row):
        mission = MissionService.create_mission(USER_ID, MissionCreate(
            client_id=client_row["id"],
            title="Audit SEO",
            contacts=[contact_row["id"]],
        ))

        assert mission["status"] == "in_progress"
        assert mission["started_at"]
        links = fake_db.rows("mission_contacts")
        assert len(links) == 1
        assert links[0]["is_primary"] is True

    def test_create_mission_copies_deal_tags(self, fake_db, client_row, deal_row):
        fake_db.seed("deal_tags", deal_id=deal_row["id"], tag="web", color="blue")

        mission = MissionService.create_mission(USER_ID, MissionCreate(
            client_id=client_row["id"], deal_id=deal_row["id"], title="Refonte"
        ))

        tags = fake_db.rows("mission_tags")
        assert [(t["mission_id"], t["tag"], t["color"]) for t in tags] == [(mission["id"], "web", "blue")]

    def test_one_mission_per_deal(self, client_row, deal_row, mission_row):
        with pytest.raises(ConflictError) as exc_info:
            MissionService.create_mission(USER_ID, MissionCreate(
                client_id=client_row["id"], deal_id=deal_row["id"], title="Again"
            ))
        assert exc_info.value.code == "MISSION_EXISTS"

    def test_create_mission_for_foreign_client(self, fake_db):
        foreign = fake_db.seed("clients", user_id=OTHER_USER_ID, nom="Other", deleted_at=None)
        with pytest.raises(NotFoundError):
            MissionService.create_mission(USER_ID, MissionCreate(client_id=foreign["id"], title="x"))

    def test_create_mission_with_foreign_contact(self, fake_db, client_row, contact_row):
        foreign = fake_db.seed("contacts", user_id=OTHER_USER_ID, nom="Secret", deleted_at=None)

        with pytest.raises(NotFoundError) as exc_info:
            MissionService.create_mission(USER_ID, MissionCreate(
                client_id=client_row["id"], title="Audit", contacts=[contact_row["id"], foreign["id"]],
            ))

        assert exc_info.value.code == "CONTACT_NOT_FOUND"
        assert fake_db.rows("missions") == []
        assert fake_db.rows("mission_contacts") == []

    def test_create_mission_for_foreign_deal(self, fake_db, client_row):
        other_client = fake_db.seed("clients", user_id=OTHER_USER_ID, nom="Globex", deleted_at=None)
        foreign_deal = fake_db.seed("deals", user_id=OTHER_USER_ID, client_id=other_client["id"],
                                    title="Contrat", deleted_at=None)
        fake_db.seed("deal_tags", deal_id=foreign_deal["id"], tag="confidentiel", color="red")

        with pytest.raises(NotFoundError) as exc_info:
            MissionService.create_mission(USER_ID, MissionCreate(
                client_id=client_row["id"], deal_id=foreign_deal["id"], title="Audit",
            ))

        assert exc_info.value.code == "DEAL_NOT_FOUND"
        assert fake_db.rows("mission_tags") == []

    def test_full_lifecycle(self, mission_row):
        for status in ["delivered", "to_invoice", "invoiced", "paid", "closed"]:
            mission = MissionService.update_status(USER_ID, mission_row["id"], MissionStatus(status))
            assert mission["status"] == status

    def test_skipping_a_step_is_rejected(self, fake_db, mission_row):
        with pytest.raises(InvalidTransitionError) as exc_info:
            MissionService.update_status(USER_ID, mission_row["id"], MissionStatus.INVOICED)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["allowed"] == ["delivered", "cancelled"]
        assert fake_db.get("missions", mission_row["id"])["status"] == "in_progress"

    def test_cancel_before_invoicing(self, fake_db, mission_row):
        fake_db.get("missions", mission_row["id"])["status"] = "to_invoice"
        mission = MissionService.update_status(USER_ID, mission_row["id"], MissionStatus.CANCELLED)
        assert mission["status"] == "cancelled"

    def test_cancel_after_invoicing_is_rejected(self, fake_db, mission_row):
        fake_db.get("missions", mission_row["id"])["status"] = "invoiced"
        with pytest.raises(InvalidTransitionError):
            MissionService.update_status(USER_ID, mission_row["id"], MissionStatus.CANCELLED)

    def test_same_status_is_a_no_op(self, fake_db, mission_row):
        before = len(fake_db.rows("activity_logs"))
        mission = MissionService.update_status(USER_ID, mission_row["id"], MissionStatus.IN_PROGRESS)
        assert mission["status"] == "in_progress"
        assert len(fake_db.rows("activity_logs")) == before

    def test_status_change_is_logged(self, fake_db, mission_row):
        MissionService.update_status(USER_ID, mission_row["id"], MissionStatus.DELIVERED)
        log = fake_db.rows("activity_logs")[-1]
        assert (log["action"], log["entity_type"], log["entity_id"]) == ("status_change", "mission", mission_row["id"])

    def test_activity_log_failure_does_not_fail_the_operation(self, fake_db, mission_row):
        fake_db.fail("activity_logs", "insert")
        mission = MissionService.update_status(USER_ID, mission_row["id"], MissionStatus.DELIVERED)
        assert mission["status"] == "delivered"


# =============================================================================
# Endpoints
# =============================================================================

class TestMissionEndpoints:
    """Tests for /api/v1/missions."""

    def test_invalid_transition_returns_error_json(self, api, mission_row):
        response = api.patch(f"/api/v1/missions/{mission_row['id']}/status", json={"status": "paid"})

        assert response.status_code == 409
        body = response.json()
        assert "error" in body
        assert body["code"] == "INVALID_TRANSITION"

    def test_unknown_status_value_is_422(self, api, mission_row):
        response = api.patch(f"/api/v1/missions/{mission_row['id']}/status", json={"status": "done"})
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_delete_is_soft(self, api, fake_db, mission_row):
        response = api.delete(f"/api/v1/missions/{mission_row['id']}")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert fake_db.get("missions", mission_row["id"])["deleted_at"] is not None
        assert api.get("/api/v1/missions").json()["data"] == []
        assert api.get(f"/api/v1/missions/{mission_row['id']}").status_code == 404

    def test_deleting_twice_is_404(self, api, mission_row):
        api.delete(f"/api/v1/missions/{mission_row['id']}")
        assert api.delete(f"/api/v1/missions/{mission_row['id']}").status_code == 404

    def test_get_mission_includes_relations(self, api, fake_db, mission_row, contact_row):
        fake_db.seed("mission_contacts", mission_id=mission_row["id"], contact_id=contact_row["id"], is_primary=True)

        data = api.get(f"/api/v1/missions/{mission_row['id']}").json()["data"]

        assert data["client"]["nom"] == "Acme SAS"
        assert data["deal"]["title"] == "Refonte site"
        assert data["contacts"][0]["contact"]["prenom"] == "Claire"
        assert data["invoices"] == []

    def test_duplicate_tag_is_409(self, api, mission_row):
        url = f"/api/v1/missions/{mission_row['id']}/tags"
        assert api.post(url, json={"tag": "web"}).status_code == 201
        response = api.post(url, json={"tag": "web"})
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE"

    def test_foreign_mission_is_404(self, api, fake_db, client_row):
        foreign = fake_db.seed("missions", user_id=OTHER_USER_ID, client_id=client_row["id"], title="x",
                               status="in_progress", deleted_at=None)
        assert api.get(f"/api/v1/missions/{foreign['id']}").status_code == 404
