"""Tests for medbiz.terms.documents: the closed set of document kinds."""

import pytest

from medbiz.terms.documents import (
    DOCUMENT_KINDS, UnknownDocumentKind, document_number, document_title, normalize_kind,
)


class TestKinds:

    def test_eight_kinds(self):
        assert set(DOCUMENT_KINDS) == {
            "quotation", "proforma", "invoice", "credit_note",
            "delivery_note", "lpo", "remittance", "payment_receipt",
        }

    @pytest.mark.parametrize("kind", list(DOCUMENT_KINDS))
    def test_canonical_passthrough(self, kind):
        assert normalize_kind(kind) == kind

    @pytest.mark.parametrize("alias,expected", [
        ("credit-note", "credit_note"),
        ("delivery-note", "delivery_note"),
        ("payment-receipt", "payment_receipt"),
        ("payment", "payment_receipt"),
        ("remittance-advice", "remittance"),
        ("Invoice", "invoice"),
        (" LPO ", "lpo"),
    ])
    def test_aliases(self, alias, expected):
        assert normalize_kind(alias) == expected

    @pytest.mark.parametrize("bad", ["statement", "", None, "invoices"])
    def test_unknown_kind(self, bad):
        with pytest.raises(UnknownDocumentKind):
            normalize_kind(bad)

    def test_unknown_kind_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_kind("receipt-book")


class TestTitlesAndNumbers:

    def test_titles(self):
        assert document_title("invoice") == "INVOICE"
        assert document_title("lpo") == "LOCAL PURCHASE ORDER"
        assert document_title("credit-note") == "CREDIT NOTE"

    def test_number_field_per_kind(self):
        assert document_number("invoice", {"invoice_number": "INV-1"}) == "INV-1"
        assert document_number("lpo", {"lpo_number": "LPO-9"}) == "LPO-9"
        assert document_number("payment_receipt", {"payment_number": "PAY-3"}) == "PAY-3"

    def test_credit_note_number_not_confused_with_invoice(self):
        doc = {"credit_note_number": "CN-1", "invoice_number": "INV-1"}
        assert document_number("credit_note", doc) == "CN-1"

    def test_generic_number_fallback(self):
        assert document_number("quotation", {"number": "Q-7"}) == "Q-7"

    def test_missing_number(self):
        assert document_number("proforma", {}) == ""
