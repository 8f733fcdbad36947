"""
Outbound document kinds that carry terms & conditions.

Documents are plain dicts (that is how they come out of the DB and over
JSON). Each kind has a TypedDict describing the fields the terms pipeline
and the PDF renderer read; any other keys pass through untouched.
"""

from typing import Literal, TypedDict, Union

QUOTATION = "quotation"
PROFORMA = "proforma"
INVOICE = "invoice"
CREDIT_NOTE = "credit_note"
DELIVERY_NOTE = "delivery_note"
LPO = "lpo"
REMITTANCE = "remittance"
PAYMENT_RECEIPT = "payment_receipt"

DocumentKind = Literal[
    "quotation", "proforma", "invoice", "credit_note",
    "delivery_note", "lpo", "remittance", "payment_receipt",
]

# kind → (PDF title, number field)
DOCUMENT_KINDS = {
    QUOTATION:       ("QUOTATION", "quotation_number"),
    PROFORMA:        ("PROFORMA INVOICE", "proforma_number"),
    INVOICE:         ("INVOICE", "invoice_number"),
    CREDIT_NOTE:     ("CREDIT NOTE", "credit_note_number"),
    DELIVERY_NOTE:   ("DELIVERY NOTE", "delivery_number"),
    LPO:             ("LOCAL PURCHASE ORDER", "lpo_number"),
    REMITTANCE:      ("REMITTANCE ADVICE", "remittance_number"),
    PAYMENT_RECEIPT: ("PAYMENT RECEIPT", "payment_number"),
}

# URL-friendly aliases accepted by the API (/api/documents/credit-note/pdf)
_ALIASES = {
    "credit-note": CREDIT_NOTE,
    "delivery-note": DELIVERY_NOTE,
    "payment-receipt": PAYMENT_RECEIPT,
    "payment": PAYMENT_RECEIPT,
    "remittance-advice": REMITTANCE,
    "proforma-invoice": PROFORMA,
}


class UnknownDocumentKind(ValueError):
    """Raised for a kind tag outside the eight supported document kinds."""


class LineItem(TypedDict, total=False):
    description: str
    part_number: str
    quantity: float
    unit_price: float
    line_total: float


class _DocumentBase(TypedDict, total=False):
    id: str
    company_id: str
    customer_name: str
    created_at: str
    items: list[LineItem]
    subtotal: float
    tax_amount: float
    total_amount: float
    notes: str
    terms_and_conditions: str


class Quotation(_DocumentBase, total=False):
    kind: Literal["quotation"]
    quotation_number: str
    valid_until: str


class Proforma(_DocumentBase, total=False):
    kind: Literal["proforma"]
    proforma_number: str


class Invoice(_DocumentBase, total=False):
    kind: Literal["invoice"]
    invoice_number: str
    due_date: str
    lpo_number: str


class CreditNote(_DocumentBase, total=False):
    kind: Literal["credit_note"]
    credit_note_number: str
    invoice_number: str
    reason: str


class DeliveryNote(_DocumentBase, total=False):
    kind: Literal["delivery_note"]
    delivery_number: str
    invoice_number: str
    delivery_address: str


class LocalPurchaseOrder(_DocumentBase, total=False):
    kind: Literal["lpo"]
    lpo_number: str
    supplier_name: str


class RemittanceAdvice(_DocumentBase, total=False):
    kind: Literal["remittance"]
    remittance_number: str


class PaymentReceipt(_DocumentBase, total=False):
    kind: Literal["payment_receipt"]
    payment_number: str
    payment_method: str
    reference_number: str


Document = Union[
    Quotation, Proforma, Invoice, CreditNote,
    DeliveryNote, LocalPurchaseOrder, RemittanceAdvice, PaymentReceipt,
]


def normalize_kind(kind: str) -> str:
    """Map a kind tag (or URL alias) to its canonical name.

    Raises UnknownDocumentKind for anything outside the closed set.
    """
    k = (kind or "").strip().lower()
    k = _ALIASES.get(k, k)
    if k not in DOCUMENT_KINDS:
        raise UnknownDocumentKind(f"Unknown document kind: {kind!r}")
    return k


def document_title(kind: str) -> str:
    return DOCUMENT_KINDS[normalize_kind(kind)][0]


def document_number(kind: str, document: dict) -> str:
    """The document's own number (invoice_number, lpo_number, ...), or ""."""
    field = DOCUMENT_KINDS[normalize_kind(kind)][1]
    return str(document.get(field) or document.get("number") or "")
