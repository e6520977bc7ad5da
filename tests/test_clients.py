# =============================================================================
# tests/test_clients.py - Client & Contact Tests
# =============================================================================
# Covers client CRUD, filters, bulk operations, contact links and tenant
# isolation.
#
# Run with: pytest tests/test_clients.py -v
# =============================================================================

from tests.conftest import OTHER_USER_ID, USER_ID


class TestClientEndpoints:
    """Tests for /api/v1/clients."""

    def test_create_client(self, api, fake_db):
        response = api.post("/api/v1/clients", json={"type": "entreprise", "nom": "Globex"})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user_id"] == USER_ID
        assert data["is_supplier"] is False
        assert fake_db.rows("activity_logs")[-1]["entity_title"] == "Globex"

    def test_create_client_requires_name(self, api):
        response = api.post("/api/v1/clients", json={"type": "entreprise"})
        assert response.status_code == 422
        assert "error" in response.json()

    def test_list_filters(self, api, fake_db, client_row):
        fake_db.seed("clients", user_id=USER_ID, nom="Jean Dupont", type="particulier",
                     is_supplier=False, deleted_at=None)
        fake_db.seed("clients", user_id=USER_ID, nom="Imprimerie", type="entreprise",
                     is_supplier=True, deleted_at=None)
        fake_db.seed("clients", user_id=OTHER_USER_ID, nom="Acme Other", type="entreprise", deleted_at=None)

        names = lambda r: [c["nom"] for c in r.json()["data"]]

        assert names(api.get("/api/v1/clients")) == ["Acme SAS", "Imprimerie", "Jean Dupont"]
        assert names(api.get("/api/v1/clients", params={"type": "particulier"})) == ["Jean Dupont"]
        assert names(api.get("/api/v1/clients", params={"is_supplier": "true"})) == ["Imprimerie"]
        assert names(api.get("/api/v1/clients", params={"search": "acme"})) == ["Acme SAS"]

    def test_soft_deleted_client_is_hidden(self, api, fake_db, client_row):
        assert api.delete(f"/api/v1/clients/{client_row['id']}").json() == {"success": True}

        assert fake_db.get("clients", client_row["id"])["deleted_at"] is not None
        response = api.get(f"/api/v1/clients/{client_row['id']}")
        assert response.status_code == 404
        assert response.json()["code"] == "CLIENT_NOT_FOUND"
        assert api.patch(f"/api/v1/clients/{client_row['id']}", json={"nom": "x"}).status_code == 404

    def test_foreign_client_is_404(self, api, fake_db):
        foreign = fake_db.seed("clients", user_id=OTHER_USER_ID, nom="Secret", deleted_at=None)
        assert api.get(f"/api/v1/clients/{foreign['id']}").status_code == 404
        assert api.delete(f"/api/v1/clients/{foreign['id']}").status_code == 404
        assert fake_db.get("clients", foreign["id"])["deleted_at"] is None

    def test_invalid_uuid_is_422(self, api):
        assert api.get("/api/v1/clients/not-a-uuid").status_code == 422


class TestClientBulk:
    """Tests for the /bulk endpoints."""

    def test_bulk_delete_counts_only_owned_active_rows(self, api, fake_db, client_row):
        second = fake_db.seed("clients", user_id=USER_ID, nom="B", deleted_at=None)
        trashed = fake_db.seed("clients", user_id=USER_ID, nom="C", deleted_at="2025-01-01T00:00:00+00:00")
        foreign = fake_db.seed("clients", user_id=OTHER_USER_ID, nom="D", deleted_at=None)

        response = api.request(
            "DELETE",
            "/api/v1/clients/bulk",
            json={"ids": [client_row["id"], second["id"], trashed["id"], foreign["id"]]},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": 2}
        assert fake_db.get("clients", trashed["id"])["deleted_at"] == "2025-01-01T00:00:00+00:00"
        assert fake_db.get("clients", foreign["id"])["deleted_at"] is None

    def test_bulk_delete_requires_ids(self, api):
        response = api.request("DELETE", "/api/v1/clients/bulk", json={"ids": []})
        assert response.status_code == 422

    def test_bulk_update_type(self, api, fake_db, client_row):
        response = api.patch(
            "/api/v1/clients/bulk",
            json={"ids": [client_row["id"]], "updates": {"type": "particulier"}},
        )
        assert response.json() == {"success": True, "updated": 1}
        assert fake_db.get("clients", client_row["id"])["type"] == "particulier"

    def test_bulk_update_rejects_unknown_type(self, api, client_row):
        response = api.patch(
            "/api/v1/clients/bulk",
            json={"ids": [client_row["id"]], "updates": {"type": "association"}},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    def test_bulk_update_ignores_other_fields(self, api, client_row):
        response = api.patch(
            "/api/v1/clients/bulk",
            json={"ids": [client_row["id"]], "updates": {"nom": "Renamed"}},
        )
        assert response.status_code == 400


class TestContactLinks:
    """Tests for client contact links."""

    def test_link_and_get(self, api, client_row, contact_row):
        url = f"/api/v1/clients/{client_row['id']}/contacts"
        response = api.post(url, json={"contact_id": contact_row["id"], "is_primary": True, "role": "CEO"})
        assert response.status_code == 201

        data = api.get(f"/api/v1/clients/{client_row['id']}").json()["data"]
        assert data["contacts"][0]["role"] == "CEO"
        assert data["contacts"][0]["contact"]["nom"] == "Martin"

    def test_duplicate_link_is_409(self, api, client_row, contact_row):
        url = f"/api/v1/clients/{client_row['id']}/contacts"
        api.post(url, json={"contact_id": contact_row["id"]})
        assert api.post(url, json={"contact_id": contact_row["id"]}).status_code == 409

    def test_new_primary_clears_previous(self, api, fake_db, client_row, contact_row):
        other = fake_db.seed("contacts", user_id=USER_ID, nom="Durand", deleted_at=None)
        url = f"/api/v1/clients/{client_row['id']}/contacts"
        api.post(url, json={"contact_id": contact_row["id"], "is_primary": True})
        api.post(url, json={"contact_id": other["id"], "is_primary": True})

        primaries = [l["contact_id"] for l in fake_db.rows("client_contacts") if l["is_primary"]]
        assert primaries == [other["id"]]

    def test_trashed_contact_is_not_listed(self, api, fake_db, client_row, contact_row):
        fake_db.seed("client_contacts", client_id=client_row["id"], contact_id=contact_row["id"], is_primary=True)
        api.delete(f"/api/v1/contacts/{contact_row['id']}")

        data = api.get(f"/api/v1/clients/{client_row['id']}").json()["data"]
        assert data["contacts"] == []


class TestContactEndpoints:
    """Tests for /api/v1/contacts."""

    def test_crud(self, api):
        created = api.post("/api/v1/contacts", json={"prenom": "Paul", "nom": "Bernard"}).json()["data"]

        updated = api.patch(f"/api/v1/contacts/{created['id']}", json={"email": "paul@example.com"})
        assert updated.json()["data"]["email"] == "paul@example.com"

        assert [c["nom"] for c in api.get("/api/v1/contacts").json()["data"]] == ["Bernard"]
        api.delete(f"/api/v1/contacts/{created['id']}")
        assert api.get("/api/v1/contacts").json()["data"] == []
