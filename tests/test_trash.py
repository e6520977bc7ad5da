# =============================================================================
# tests/test_trash.py - Trash Tests
# =============================================================================
# Covers the trash listing, restore, permanent delete, emptying and the
# retention purge.
#
# Run with: pytest tests/test_trash.py -v
# =============================================================================

from datetime import datetime, timedelta, timezone

from core.services.trash_service import TrashService, days_remaining
from tests.conftest import OTHER_USER_ID, USER_ID

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _ago(days: int) -> str:
    return (NOW - timedelta(days=days)).isoformat()


class TestDaysRemaining:
    """Tests for days_remaining()."""

    def test_counts_down_from_retention(self):
        assert days_remaining(_ago(0), NOW) == 30
        assert days_remaining(_ago(10), NOW) == 20

    def test_never_negative(self):
        assert days_remaining(_ago(45), NOW) == 0

    def test_accepts_zulu_suffix(self):
        assert days_remaining("2025-02-27T12:00:00Z", NOW) == 28


class TestTrashEndpoints:
    """Tests for /api/v1/trash."""

    def test_lists_trashed_rows_of_every_type(self, api, fake_db, client_row, deal_row):
        api.delete(f"/api/v1/clients/{client_row['id']}")
        api.delete(f"/api/v1/deals/{deal_row['id']}")
        fake_db.seed("proposals", owner_user_id=USER_ID, title="Offre", deleted_at=_ago(1))
        fake_db.seed("contacts", user_id=USER_ID, prenom="Paul", nom="Bernard", deleted_at=_ago(2))
        fake_db.seed("deals", user_id=OTHER_USER_ID, title="Pas à moi", deleted_at=_ago(1))

        items = api.get("/api/v1/trash").json()["data"]

        assert {(i["entity_type"], i["title"]) for i in items} == {
            ("client", "Acme SAS"),
            ("deal", "Refonte site"),
            ("proposal", "Offre"),
            ("contact", "Paul Bernard"),
        }
        assert items[-1]["title"] == "Paul Bernard"
        assert all(0 <= i["days_remaining"] <= 30 for i in items)

    def test_restore(self, api, fake_db, client_row):
        api.delete(f"/api/v1/clients/{client_row['id']}")

        response = api.post(f"/api/v1/trash/client/{client_row['id']}/restore")

        assert response.status_code == 200
        assert fake_db.get("clients", client_row["id"])["deleted_at"] is None
        assert api.get(f"/api/v1/clients/{client_row['id']}").status_code == 200
        assert fake_db.rows("activity_logs")[-1]["action"] == "restore"

    def test_restore_active_row_is_404(self, api, client_row):
        assert api.post(f"/api/v1/trash/client/{client_row['id']}/restore").status_code == 404

    def test_unknown_entity_type_is_422(self, api, client_row):
        assert api.post(f"/api/v1/trash/expense/{client_row['id']}/restore").status_code == 422

    def test_permanent_delete_only_touches_trashed_rows(self, api, fake_db, client_row):
        assert api.delete(f"/api/v1/trash/client/{client_row['id']}").status_code == 404
        assert fake_db.get("clients", client_row["id"]) is not None

        api.delete(f"/api/v1/clients/{client_row['id']}")
        assert api.delete(f"/api/v1/trash/client/{client_row['id']}").json() == {"success": True}
        assert fake_db.get("clients", client_row["id"]) is None

    def test_empty_trash_skips_failing_table(self, api, fake_db):
        fake_db.seed("clients", user_id=USER_ID, nom="A", deleted_at=_ago(1))
        fake_db.seed("deals", user_id=USER_ID, title="B", deleted_at=_ago(1))
        fake_db.seed("missions", user_id=USER_ID, title="C", deleted_at=_ago(1))
        fake_db.seed("clients", user_id=USER_ID, nom="actif", deleted_at=None)
        fake_db.fail("deals", "delete")

        response = api.delete("/api/v1/trash")

        assert response.json() == {"success": True, "deleted_count": 2}
        assert [c["nom"] for c in fake_db.rows("clients")] == ["actif"]
        assert len(fake_db.rows("deals")) == 1


class TestCleanupExpired:
    """Tests for TrashService.cleanup_expired()."""

    def test_removes_only_expired_rows(self, fake_db):
        old = fake_db.seed("clients", user_id=USER_ID, nom="vieux", deleted_at=_ago(31))
        recent = fake_db.seed("clients", user_id=USER_ID, nom="récent", deleted_at=_ago(29))
        active = fake_db.seed("clients", user_id=USER_ID, nom="actif", deleted_at=None)
        foreign = fake_db.seed("proposals", owner_user_id=OTHER_USER_ID, title="x", deleted_at=_ago(40))

        assert TrashService.cleanup_expired(now=NOW) == 2

        assert fake_db.get("clients", old["id"]) is None
        assert fake_db.get("proposals", foreign["id"]) is None
        assert fake_db.get("clients", recent["id"]) is not None
        assert fake_db.get("clients", active["id"]) is not None

    def test_scoped_to_one_user(self, fake_db):
        fake_db.seed("clients", user_id=USER_ID, nom="a", deleted_at=_ago(40))
        foreign = fake_db.seed("clients", user_id=OTHER_USER_ID, nom="b", deleted_at=_ago(40))

        assert TrashService.cleanup_expired(user_id=USER_ID, now=NOW) == 1
        assert fake_db.get("clients", foreign["id"]) is not None
