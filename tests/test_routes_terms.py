"""
Route tests for medbiz.api.routes_terms via the Flask test client.
"""
import base64
import io
import os
import random
import string
import pdfplumber
import pytest

from medbiz.api.routes_terms import EXTENSION_KEY
from medbiz.terms.manager import DEFAULT_TERMS, MAX_DRAFT_BYTES, format_terms_for_pdf


@pytest.fixture
def broken_store(app, failing_db):
    app.extensions[EXTENSION_KEY] = failing_db
    return failing_db


def _pdf_bytes_text(data):
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return "\n".join(page.extract_text() or "" for page in pdf.pages)


# ═══════════════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════════════

class TestHealth:

    def test_ok(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        d = r.get_json()
        assert d["ok"] is True
        assert d["db"]["company_settings"] == 0

    def test_db_down(self, client, broken_store):
        r = client.get("/api/health")
        assert r.status_code == 503
        assert r.get_json()["ok"] is False


# ═══════════════════════════════════════════════════════════════════════════════
# Settings editor
# ═══════════════════════════════════════════════════════════════════════════════

class TestSettingsTerms:

    def test_get_default_for_unknown_company(self, client):
        d = client.get("/api/settings/terms?company_id=acme-co").get_json()
        assert d["terms"] == DEFAULT_TERMS
        assert d["source"] == "default"

    def test_save_then_get(self, client):
        r = client.post("/api/settings/terms",
                        json={"company_id": "acme-co", "terms": "Net 30", "updated_by": "admin-1"})
        assert r.status_code == 200
        d = r.get_json()
        assert d["settings"]["terms_and_conditions"] == "Net 30"
        assert d["settings"]["updated_by"] == "admin-1"
        d = client.get("/api/settings/terms?company_id=acme-co").get_json()
        assert (d["terms"], d["source"]) == ("Net 30", "company")

    def test_put_updates(self, client):
        client.put("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        client.put("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 45"})
        d = client.get("/api/settings/terms?company_id=acme-co").get_json()
        assert d["terms"] == "Net 45"

    def test_updated_by_from_basic_auth(self, client):
        token = base64.b64encode(b"jane:secret").decode()
        r = client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"},
                        headers={"Authorization": f"Basic {token}"})
        assert r.get_json()["settings"]["updated_by"] == "jane"

    @pytest.mark.parametrize("body", [
        {"company_id": "acme-co", "terms": ""},
        {"company_id": "acme-co", "terms": "   \n"},
        {"company_id": "acme-co"},
        {"terms": "Net 30"},
    ])
    def test_validation(self, client, body):
        r = client.post("/api/settings/terms", json=body)
        assert r.status_code == 400
        assert r.get_json()["ok"] is False

    def test_save_store_failure(self, client, broken_store):
        r = client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        assert r.status_code == 503
        assert "Failed to update terms" in r.get_json()["error"]

    def test_get_store_failure_falls_back(self, client, broken_store):
        d = client.get("/api/settings/terms?company_id=acme-co").get_json()
        assert d["ok"] is True
        assert d["terms"] == DEFAULT_TERMS

    def test_default_endpoint(self, client):
        assert client.get("/api/settings/terms/default").get_json()["terms"] == DEFAULT_TERMS


class TestDraft:

    def test_draft_lifecycle(self, client):
        assert client.get("/api/settings/terms/draft").get_json()["terms"] == DEFAULT_TERMS
        r = client.post("/api/settings/terms/draft", json={"terms": "Custom"})
        assert r.get_json()["terms"] == "Custom"
        assert client.get("/api/settings/terms/draft").get_json()["terms"] == "Custom"
        # no company id: the session draft is the local cache
        d = client.get("/api/settings/terms").get_json()
        assert (d["terms"], d["source"]) == ("Custom", "local")
        r = client.delete("/api/settings/terms/draft")
        assert r.get_json()["terms"] == DEFAULT_TERMS

    def test_empty_draft_rejected(self, client):
        r = client.post("/api/settings/terms/draft", json={"terms": " "})
        assert r.status_code == 400

    def test_save_clears_draft(self, client):
        client.post("/api/settings/terms/draft", json={"terms": "Custom"})
        client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        assert client.get("/api/settings/terms/draft").get_json()["terms"] == DEFAULT_TERMS

    def test_draft_not_used_for_company(self, client):
        client.post("/api/settings/terms/draft", json={"terms": "Custom"})
        d = client.get("/api/settings/terms?company_id=acme-co").get_json()
        assert d["terms"] == DEFAULT_TERMS

    def test_oversized_draft_rejected(self, client):
        rng = random.Random(7)
        big = "".join(rng.choice(string.ascii_letters + string.digits) for _ in range(4000))
        r = client.post("/api/settings/terms/draft", json={"terms": big})
        assert r.status_code == 400
        assert "too large" in r.get_json()["error"]
        assert client.get("/api/settings/terms/draft").get_json()["terms"] == DEFAULT_TERMS

    def test_largest_draft_fits_in_cookie(self, client):
        rng = random.Random(7)
        text = "".join(rng.choice(string.ascii_letters + string.digits)
                       for _ in range(MAX_DRAFT_BYTES - 2))
        r = client.post("/api/settings/terms/draft", json={"terms": text})
        assert r.status_code == 200
        assert len(r.headers["Set-Cookie"]) < 4093
        assert client.get("/api/settings/terms/draft").get_json()["terms"] == text


class TestFormattedAndVerify:

    def test_formatted(self, client):
        d = client.get("/api/terms/formatted?company_id=acme-co").get_json()
        assert d["formatted"] == format_terms_for_pdf(DEFAULT_TERMS)
        assert "E.&amp;O.E" in d["formatted"]

    def test_verify_all_pass(self, client):
        client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        d = client.get("/api/terms/verify?company_id=acme-co").get_json()
        assert d["ok"] is True
        assert len(d["results"]) == 8
        assert all(r["success"] for r in d["results"])
        assert "Success Rate: 100%" in d["report"]


# ═══════════════════════════════════════════════════════════════════════════════
# Documents
# ═══════════════════════════════════════════════════════════════════════════════

class TestDocumentTerms:

    def test_apply_single(self, client, sample_invoice):
        client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        r = client.post("/api/documents/invoice/terms", json={"document": sample_invoice})
        assert r.status_code == 200
        doc = r.get_json()["document"]
        assert doc["terms_and_conditions"] == format_terms_for_pdf("Net 30")
        assert doc["invoice_number"] == "INV-2026-001"

    def test_query_company_overrides_document(self, client, sample_invoice):
        client.post("/api/settings/terms", json={"company_id": "other-co", "terms": "Net 60"})
        r = client.post("/api/documents/invoice/terms?company_id=other-co",
                        json={"document": sample_invoice})
        assert "Net 60" in r.get_json()["document"]["terms_and_conditions"]

    def test_apply_batch(self, client):
        client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        docs = [{"quotation_number": f"QT-{i}"} for i in range(3)]
        r = client.post("/api/documents/quotation/terms",
                        json={"company_id": "acme-co", "documents": docs})
        out = r.get_json()["documents"]
        assert [d["quotation_number"] for d in out] == ["QT-0", "QT-1", "QT-2"]
        assert {d["terms_and_conditions"] for d in out} == {format_terms_for_pdf("Net 30")}

    def test_no_company_unchanged(self, client):
        r = client.post("/api/documents/lpo/terms", json={"document": {"lpo_number": "LPO-1"}})
        assert r.get_json()["document"] == {"lpo_number": "LPO-1"}

    def test_url_alias_kind(self, client, sample_invoice):
        r = client.post("/api/documents/credit-note/terms", json={"document": sample_invoice})
        assert r.status_code == 200

    def test_unknown_kind_404(self, client, sample_invoice):
        r = client.post("/api/documents/statement/terms", json={"document": sample_invoice})
        assert r.status_code == 404
        assert r.get_json()["ok"] is False

    def test_document_required(self, client):
        assert client.post("/api/documents/invoice/terms", json={}).status_code == 400

    def test_batch_entries_must_be_objects(self, client):
        r = client.post("/api/documents/invoice/terms",
                        json={"company_id": "acme-co", "documents": [{"invoice_number": "A"}, "B"]})
        assert r.status_code == 400
        assert r.get_json()["ok"] is False


class TestRefresh:

    def test_stale_then_current(self, client, sample_invoice):
        client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        first = client.post("/api/documents/invoice/terms/refresh",
                            json={"document": sample_invoice}).get_json()
        assert first["updated"] is True
        second = client.post("/api/documents/invoice/terms/refresh",
                             json={"document": first["document"]}).get_json()
        assert second["updated"] is False
        assert second["document"] == first["document"]

    def test_document_required(self, client):
        r = client.post("/api/documents/invoice/terms/refresh", json={"document": "x"})
        assert r.status_code == 400


class TestDocumentPDF:

    def test_download(self, client, sample_invoice, app):
        client.post("/api/settings/terms", json={"company_id": "acme-co", "terms": "Net 30"})
        r = client.post("/api/documents/invoice/pdf", json={"document": sample_invoice})
        assert r.status_code == 200
        assert r.mimetype == "application/pdf"
        assert r.data[:4] == b"%PDF"
        assert "invoice_INV-2026-001_" in r.headers["Content-Disposition"]

    def test_store_down_still_renders(self, client, sample_invoice, broken_store):
        r = client.post("/api/documents/invoice/pdf", json={"document": sample_invoice})
        assert r.status_code == 200
        assert r.data[:4] == b"%PDF"

    def test_unknown_kind(self, client, sample_invoice):
        r = client.post("/api/documents/receipt-book/pdf", json={"document": sample_invoice})
        assert r.status_code == 404

    def test_document_required(self, client):
        assert client.post("/api/documents/invoice/pdf", json={}).status_code == 400

    def test_output_dir_left_clean(self, client, sample_invoice, app):
        client.post("/api/documents/invoice/pdf", json={"document": sample_invoice})
        assert os.listdir(app.config["OUTPUT_DIR"]) == []

    def test_each_request_renders_to_its_own_file(self, client, app, monkeypatch):
        from medbiz.api import routes_terms
        seen = []
        real = routes_terms.generate_document_pdf

        def recording(kind, document, output_path=""):
            seen.append(output_path)
            return real(kind, document, output_path)

        monkeypatch.setattr(routes_terms, "generate_document_pdf", recording)
        first = {"invoice_number": "INV-1", "customer_name": "Kenyatta Clinic"}
        second = {"invoice_number": "INV-1", "customer_name": "Coast General"}
        r1 = client.post("/api/documents/invoice/pdf", json={"document": first})
        r2 = client.post("/api/documents/invoice/pdf", json={"document": second})
        assert len(set(seen)) == 2
        assert "Kenyatta Clinic" in _pdf_bytes_text(r1.data)
        assert "Coast General" in _pdf_bytes_text(r2.data)

    def test_unnumbered_documents_get_own_files(self, client, monkeypatch):
        from medbiz.api import routes_terms
        seen = []
        real = routes_terms.generate_document_pdf
        monkeypatch.setattr(routes_terms, "generate_document_pdf",
                            lambda k, d, p="": seen.append(p) or real(k, d, p))
        for _ in range(2):
            r = client.post("/api/documents/quotation/pdf", json={"document": {}})
            assert r.status_code == 200
            assert "quotation_DRAFT_" in r.headers["Content-Disposition"]
        assert len(set(seen)) == 2

    def test_malformed_item_still_renders(self, client):
        doc = {"invoice_number": "INV-9", "created_at": 20261001, "due_date": 5,
               "customer_name": ["not", "a", "string"],
               "items": [{"description": "gloves", "quantity": "two", "unit_price": 5},
                         {"description": 12345, "quantity": 1, "unit_price": "n/a"},
                         "loose text line"]}
        r = client.post("/api/documents/invoice/pdf", json={"document": doc})
        assert r.status_code == 200
        text = _pdf_bytes_text(r.data)
        assert "gloves" in text
        assert "loose text line" in text
