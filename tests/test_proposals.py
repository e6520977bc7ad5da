# =============================================================================
# tests/test_proposals.py - Proposal Tests
# =============================================================================
# Covers creation from a template, section copy rollback, variables,
# rendering and the public share link.
#
# Run with: pytest tests/test_proposals.py -v
# =============================================================================

import pytest

from tests.conftest import OTHER_USER_ID, USER_ID


@pytest.fixture
def template(fake_db):
    row = fake_db.seed("proposal_templates", owner_user_id=USER_ID, name="Standard", is_system=False)
    fake_db.seed("proposal_template_sections", template_id=row["id"], position=1,
                 title="Contexte {{client_name}}", body="Projet {{deal_title}} pour {{contact_name}}",
                 is_enabled=True)
    fake_db.seed("proposal_template_sections", template_id=row["id"], position=0,
                 title="Introduction", body="Bonjour", is_enabled=True)
    fake_db.seed("proposal_template_sections", template_id=row["id"], position=2,
                 title="Annexe", body="", is_enabled=False)
    return row


@pytest.fixture
def proposal(api, deal_row, template):
    response = api.post("/api/v1/proposals", json={"deal_id": deal_row["id"], "template_id": template["id"]})
    assert response.status_code == 201
    return response.json()["data"]


class TestCreateProposal:
    """Tests for POST /api/v1/proposals."""

    def test_copies_template_sections(self, fake_db, proposal, client_row):
        assert proposal["status"] == "DRAFT"
        assert proposal["title"] == "Proposition - Refonte site"
        assert proposal["client_id"] == client_row["id"]
        assert len(proposal["public_token"]) == 32

        sections = fake_db.rows("proposal_sections")
        assert sorted(s["position"] for s in sections) == [0, 1, 2]
        assert all(s["proposal_id"] == proposal["id"] for s in sections)

    def test_seeds_default_variables(self, fake_db, proposal):
        variables = {v["key"]: v["value"] for v in fake_db.rows("proposal_variables")}
        assert variables == {
            "client_name": "Acme SAS",
            "deal_title": "Refonte site",
            "company_name": "",
            "contact_name": "",
        }

    def test_system_template_is_usable(self, api, fake_db, deal_row):
        system = fake_db.seed("proposal_templates", owner_user_id=None, name="Système", is_system=True)
        response = api.post("/api/v1/proposals", json={"deal_id": deal_row["id"], "template_id": system["id"]})
        assert response.status_code == 201

    def test_foreign_template_is_404(self, api, fake_db, deal_row):
        foreign = fake_db.seed("proposal_templates", owner_user_id=OTHER_USER_ID, name="x", is_system=False)
        response = api.post("/api/v1/proposals", json={"deal_id": deal_row["id"], "template_id": foreign["id"]})
        assert response.status_code == 404
        assert response.json()["code"] == "TEMPLATE_NOT_FOUND"

    def test_section_copy_failure_removes_proposal(self, api, fake_db, deal_row, template):
        fake_db.fail("proposal_sections", "insert")

        response = api.post("/api/v1/proposals", json={"deal_id": deal_row["id"], "template_id": template["id"]})

        assert response.status_code == 500
        assert response.json()["code"] == "DATABASE_ERROR"
        assert fake_db.rows("proposals") == []


class TestProposalEditing:
    """Tests for sections, variables and status."""

    def test_get_orders_sections_by_position(self, api, proposal):
        data = api.get(f"/api/v1/proposals/{proposal['id']}").json()["data"]
        assert [s["title"] for s in data["sections"]] == ["Introduction", "Contexte {{client_name}}", "Annexe"]
        assert data["deal"]["title"] == "Refonte site"

    def test_update_section(self, api, fake_db, proposal):
        section = fake_db.rows("proposal_sections")[0]
        response = api.patch(
            f"/api/v1/proposals/{proposal['id']}/sections/{section['id']}",
            json={"body": "Nouveau texte"},
        )
        assert response.json()["data"]["body"] == "Nouveau texte"

    def test_section_of_other_proposal_is_404(self, api, fake_db, proposal):
        stray = fake_db.seed("proposal_sections", proposal_id="other", title="x", position=0)
        response = api.patch(f"/api/v1/proposals/{proposal['id']}/sections/{stray['id']}", json={"title": "y"})
        assert response.status_code == 404

    def test_set_variables_replaces_all(self, api, fake_db, proposal):
        response = api.put(
            f"/api/v1/proposals/{proposal['id']}/variables",
            json={"variables": [{"key": "contact_name", "value": "Claire"}]},
        )
        assert response.status_code == 200
        assert [(v["key"], v["value"]) for v in fake_db.rows("proposal_variables")] == [("contact_name", "Claire")]

    def test_invalid_variable_key_is_422(self, api, proposal):
        response = api.put(
            f"/api/v1/proposals/{proposal['id']}/variables",
            json={"variables": [{"key": "not valid", "value": "x"}]},
        )
        assert response.status_code == 422

    def test_status_stamps_timestamp(self, api, proposal):
        data = api.patch(f"/api/v1/proposals/{proposal['id']}/status", json={"status": "SENT"}).json()["data"]
        assert data["status"] == "SENT"
        assert data["sent_at"]


class TestRendering:
    """Tests for rendered output."""

    def test_render_substitutes_and_skips_disabled(self, api, proposal):
        data = api.get(f"/api/v1/proposals/{proposal['id']}/render").json()["data"]

        assert [s["title"] for s in data["sections"]] == ["Introduction", "Contexte Acme SAS"]
        assert data["sections"][1]["body"] == "Projet Refonte site pour {{contact_name}}"

    def test_public_link(self, anonymous_api, proposal):
        response = anonymous_api.get(f"/api/v1/public/proposals/{proposal['public_token']}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["client"]["nom"] == "Acme SAS"
        assert len(data["sections"]) == 2

    def test_public_link_of_trashed_proposal_is_404(self, fake_db, anonymous_api, proposal):
        fake_db.get("proposals", proposal["id"])["deleted_at"] = "2025-02-01T00:00:00+00:00"
        response = anonymous_api.get(f"/api/v1/public/proposals/{proposal['public_token']}")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_unknown_token_is_404(self, anonymous_api):
        assert anonymous_api.get("/api/v1/public/proposals/nope").status_code == 404
