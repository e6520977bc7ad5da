# =============================================================================
# tests/test_documents.py - Quote & Invoice Tests
# =============================================================================
# Covers line amounts, totals, numbering from the company pattern, invoice
# status rules, quote-to-invoice copy and the bulk endpoints.
#
# Run with: pytest tests/test_documents.py -v
# =============================================================================

import pytest

from core.models.document import InvoiceStatus
from core.services.document_service import compute_line, compute_totals, invoice_allowed_targets
from tests.conftest import USER_ID

ITEMS = [
    {"description": "Design maquettes", "quantite": 3, "prix_unitaire": 450},
    {"description": "Hébergement", "prix_unitaire": 100, "tva_rate": 0},
]


# =============================================================================
# Amounts
# =============================================================================

class TestAmounts:
    """Tests for compute_line() and compute_totals()."""

    def test_line_uses_default_rate(self):
        line = compute_line({"description": "x", "quantite": 2, "prix_unitaire": 10.005}, 20.0, True, 0)
        assert line["montant_ht"] == 20.01
        assert line["montant_tva"] == 4.0
        assert line["montant_ttc"] == 24.01
        assert line["tva_rate"] == 20.0

    def test_no_vat_when_disabled(self):
        line = compute_line({"description": "x", "prix_unitaire": 100, "tva_rate": 20}, 20.0, False, 3)
        assert (line["montant_tva"], line["montant_ttc"], line["ordre"]) == (0.0, 100.0, 3)

    def test_totals_are_line_sums(self):
        lines = [compute_line(item, 20.0, True, i) for i, item in enumerate(ITEMS)]
        assert compute_totals(lines) == {"total_ht": 1450.0, "total_tva": 270.0, "total_ttc": 1720.0}

    def test_empty_document(self):
        assert compute_totals([]) == {"total_ht": 0.0, "total_tva": 0.0, "total_ttc": 0.0}


class TestInvoiceRules:
    """Tests for invoice_allowed_targets()."""

    def test_draft_cannot_be_paid(self):
        assert "payee" not in invoice_allowed_targets(InvoiceStatus.BROUILLON)

    @pytest.mark.parametrize("status", [InvoiceStatus.ENVOYEE, InvoiceStatus.PARTIELLE])
    def test_sent_can_be_paid(self, status):
        assert "payee" in invoice_allowed_targets(status)

    def test_paid_cannot_be_cancelled(self):
        assert "annulee" not in invoice_allowed_targets(InvoiceStatus.PAYEE)


# =============================================================================
# Quotes
# =============================================================================

class TestQuotes:
    """Tests for /api/v1/quotes."""

    def test_create_quote(self, api, fake_db, client_row, deal_row):
        response = api.post("/api/v1/quotes", json={
            "client_id": client_row["id"],
            "deal_id": deal_row["id"],
            "date_emission": "2025-03-10",
            "items": ITEMS,
        })

        assert response.status_code == 201
        quote = response.json()["data"]
        assert quote["numero"] == "DEV-001-25"
        assert quote["status"] == "brouillon"
        assert quote["date_validite"] == "2025-04-09"
        assert quote["devise"] == "EUR"
        assert (quote["total_ht"], quote["total_tva"], quote["total_ttc"]) == (1450.0, 270.0, 1720.0)
        assert [item["ordre"] for item in quote["items"]] == [0, 1]
        assert len(fake_db.rows("quote_line_items")) == 2

    def test_quote_requires_deal(self, api, client_row):
        response = api.post("/api/v1/quotes", json={"client_id": client_row["id"], "items": ITEMS})
        assert response.status_code == 422

    def test_company_pattern_and_rate(self, api, fake_db, client_row, deal_row):
        fake_db.seed("companies", user_id=USER_ID, quote_number_pattern="Q{YYYY}{MM}-{SEQ:2}",
                     default_tax_rate=10, default_currency="CHF")

        quote = api.post("/api/v1/quotes", json={
            "client_id": client_row["id"],
            "deal_id": deal_row["id"],
            "date_emission": "2025-03-10",
            "items": [{"description": "Audit", "prix_unitaire": 1000}],
        }).json()["data"]

        assert quote["numero"] == "Q202503-01"
        assert quote["total_tva"] == 100.0
        assert quote["devise"] == "CHF"

    def test_invalid_company_pattern_is_400(self, api, fake_db, client_row, deal_row):
        fake_db.seed("companies", user_id=USER_ID, quote_number_pattern="DEV-{YY}")
        response = api.post("/api/v1/quotes", json={"client_id": client_row["id"], "deal_id": deal_row["id"]})
        assert response.status_code == 400
        assert fake_db.rows("quotes") == []

    def test_update_items_recomputes_totals(self, api, fake_db, client_row, deal_row):
        quote = api.post("/api/v1/quotes", json={
            "client_id": client_row["id"], "deal_id": deal_row["id"], "items": ITEMS,
        }).json()["data"]

        response = api.patch(f"/api/v1/quotes/{quote['id']}", json={
            "items": [{"description": "Forfait", "prix_unitaire": 500}],
        })

        updated = response.json()["data"]
        assert updated["total_ttc"] == 600.0
        assert [i["description"] for i in updated["items"]] == ["Forfait"]
        assert len(fake_db.rows("quote_line_items")) == 1

    def test_disabling_vat_recomputes_existing_lines(self, api, client_row, deal_row):
        quote = api.post("/api/v1/quotes", json={
            "client_id": client_row["id"], "deal_id": deal_row["id"], "items": ITEMS,
        }).json()["data"]

        updated = api.patch(f"/api/v1/quotes/{quote['id']}", json={"vat_enabled": False}).json()["data"]
        assert (updated["total_tva"], updated["total_ttc"]) == (0.0, 1450.0)

    def test_bulk_status(self, api, client_row, deal_row):
        ids = [
            api.post("/api/v1/quotes", json={"client_id": client_row["id"], "deal_id": deal_row["id"]}).json()["data"]["id"]
            for _ in range(2)
        ]

        ok = api.patch("/api/v1/quotes/bulk", json={"ids": ids, "updates": {"status": "envoye"}})
        assert ok.json() == {"success": True, "updated": 2}

        bad = api.patch("/api/v1/quotes/bulk", json={"ids": ids, "updates": {"status": "payee"}})
        assert bad.status_code == 400


# =============================================================================
# Invoices
# =============================================================================

class TestInvoices:
    """Tests for /api/v1/invoices."""

    @pytest.fixture
    def quote(self, api, client_row, deal_row):
        return api.post("/api/v1/quotes", json={
            "client_id": client_row["id"], "deal_id": deal_row["id"], "items": ITEMS,
        }).json()["data"]

    def test_invoice_copies_quote_lines(self, api, client_row, deal_row, quote):
        response = api.post("/api/v1/invoices", json={
            "client_id": client_row["id"],
            "quote_id": quote["id"],
            "date_emission": "2025-06-01",
        })

        invoice = response.json()["data"]
        assert invoice["numero"] == "FA-001-25"
        assert invoice["deal_id"] == deal_row["id"]
        assert invoice["date_echeance"] == "2025-07-01"
        assert invoice["total_ttc"] == quote["total_ttc"]
        assert [i["description"] for i in invoice["items"]] == ["Design maquettes", "Hébergement"]

    def test_invoice_for_non_vat_client(self, api, fake_db):
        client = fake_db.seed("clients", user_id=USER_ID, nom="Asso", vat_enabled=False, deleted_at=None)
        invoice = api.post("/api/v1/invoices", json={"client_id": client["id"], "items": ITEMS}).json()["data"]
        assert invoice["vat_enabled"] is False
        assert invoice["total_tva"] == 0.0

    def test_invoice_linked_to_mission(self, api, fake_db, client_row, mission_row):
        invoice = api.post("/api/v1/invoices", json={
            "client_id": client_row["id"], "mission_id": mission_row["id"], "items": ITEMS,
        }).json()["data"]

        links = fake_db.rows("mission_invoices")
        assert [(l["mission_id"], l["invoice_id"]) for l in links] == [(mission_row["id"], invoice["id"])]

    def test_status_rules(self, api, client_row):
        invoice = api.post("/api/v1/invoices", json={"client_id": client_row["id"], "items": ITEMS}).json()["data"]
        url = f"/api/v1/invoices/{invoice['id']}/status"

        draft_to_paid = api.patch(url, json={"status": "payee"})
        assert draft_to_paid.status_code == 409
        assert draft_to_paid.json()["code"] == "INVALID_TRANSITION"

        assert api.patch(url, json={"status": "envoyee"}).json()["data"]["status"] == "envoyee"
        assert api.patch(url, json={"status": "payee"}).json()["data"]["status"] == "payee"
        assert api.patch(url, json={"status": "annulee"}).status_code == 409

    def test_next_number_preview(self, api, client_row):
        first = api.get("/api/v1/invoices/next-number").json()["data"]["numero"]
        assert first.startswith("FA-001-")

        api.post("/api/v1/invoices", json={"client_id": client_row["id"]})
        assert api.get("/api/v1/invoices/next-number").json()["data"]["numero"].startswith("FA-002-")

    def test_trashed_draft_number_is_reused(self, api, client_row):
        first = api.post("/api/v1/invoices", json={"client_id": client_row["id"]}).json()["data"]
        api.delete(f"/api/v1/invoices/{first['id']}")

        second = api.post("/api/v1/invoices", json={"client_id": client_row["id"]}).json()["data"]
        assert second["numero"] == first["numero"]

    def test_get_invoice_includes_client(self, api, client_row):
        invoice = api.post("/api/v1/invoices", json={"client_id": client_row["id"], "items": ITEMS}).json()["data"]
        data = api.get(f"/api/v1/invoices/{invoice['id']}").json()["data"]
        assert data["client"]["nom"] == "Acme SAS"
        assert len(data["items"]) == 2
