"""
Medbiz Document PDF Generator
=============================
One renderer for all eight outbound document kinds (quotation, proforma,
invoice, credit note, delivery note, LPO, remittance advice, payment receipt).

The terms block is drawn from document["terms_and_conditions"], which the
terms service fills with a pre-escaped fragment. Entities are decoded for
drawing and never escaped again here.

Usage:
    from medbiz.forms.document_pdf import generate_document_pdf
    doc = terms_service.prepare_for_pdf("invoice", invoice, company_id)
    result = generate_document_pdf("invoice", doc, "/tmp/INV-001.pdf")
"""

import os
import html
import logging
from datetime import datetime

from reportlab.lib.pagesizes import A4
from reportlab.lib.colors import Color, HexColor
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from medbiz.terms.documents import (
    DELIVERY_NOTE, PAYMENT_RECEIPT, document_number, document_title, normalize_kind,
)
from medbiz.terms.manager import DEFAULT_TERMS, format_terms_for_pdf, is_formatted

log = logging.getLogger("medbiz.pdf")

# ── Colors ──
FILL    = Color(0.9, 0.94, 0.98)
LBL_BD  = Color(0.12, 0.35, 0.6)
BLACK   = HexColor("#000000")
WHITE   = HexColor("#FFFFFF")
GRAY    = HexColor("#555555")
ALT_ROW = Color(0.96, 0.97, 0.99)
NAVY    = HexColor("#12365a")

COMPANY = {
    "name":    "Medbiz Medical Supplies Ltd",
    "line1":   "P.O. Box 00100",
    "line2":   "Nairobi, Kenya",
    "phone":   "+254 700 000 000",
    "email":   "sales@medbiz.example",
}

PAGE_W, PAGE_H = A4
MARGIN_L = 36
MARGIN_R = 36
MARGIN_T = 36
MARGIN_B = 50
CONTENT_W = PAGE_W - MARGIN_L - MARGIN_R

TERMS_FONT_SIZE = 7.5
TERMS_LEADING = 9.5


def _money(v) -> str:
    try:
        return f"{float(v or 0):,.2f}"
    except (TypeError, ValueError):
        return "0.00"


def _num(v) -> float:
    try:
        return float(v or 0)
    except (TypeError, ValueError):
        return 0.0


def _text(v, limit=None) -> str:
    s = "" if v is None else str(v)
    return s[:limit] if limit else s


def _draw_header(c, kind, doc):
    """Company block, document title, and the bill-to / metadata boxes."""
    company = {**COMPANY, **(doc.get("company") if isinstance(doc.get("company"), dict) else {})}
    y = PAGE_H - MARGIN_T

    c.setFont("Helvetica-Bold", 16)
    c.setFillColor(NAVY)
    c.drawString(MARGIN_L, y - 18, _text(company["name"]))

    c.setFont("Helvetica", 8)
    c.setFillColor(GRAY)
    rx = PAGE_W - MARGIN_R
    c.drawRightString(rx, y - 10, _text(company["line1"]))
    c.drawRightString(rx, y - 20, _text(company["line2"]))
    c.drawRightString(rx, y - 30, f"{company['phone']} | {company['email']}")

    y -= 60
    c.setFont("Helvetica-Bold", 18)
    c.setFillColor(BLACK)
    c.drawString(MARGIN_L, y, document_title(kind))
    y -= 14

    box_y = y - 58
    c.setStrokeColor(LBL_BD)
    c.setLineWidth(0.5)

    # Left: counterparty
    c.setFillColor(FILL)
    c.rect(MARGIN_L, box_y, 260, 54, fill=1, stroke=1)
    c.setFillColor(BLACK)
    c.setFont("Helvetica-Bold", 9)
    party_label = "SUPPLIER:" if doc.get("supplier_name") else "CUSTOMER:"
    c.drawString(MARGIN_L + 6, box_y + 40, party_label)
    c.setFont("Helvetica", 9)
    party = doc.get("supplier_name") or doc.get("customer_name", "")
    c.drawString(MARGIN_L + 6, box_y + 26, _text(party, 50))
    if doc.get("delivery_address"):
        c.setFont("Helvetica", 8)
        c.setFillColor(GRAY)
        c.drawString(MARGIN_L + 6, box_y + 12, f"Deliver to: {_text(doc['delivery_address'], 45)}")

    # Right: metadata
    meta_x = MARGIN_L + 280
    c.setFillColor(FILL)
    c.rect(meta_x, box_y, CONTENT_W - 280, 54, fill=1, stroke=1)
    c.setFillColor(BLACK)
    c.setFont("Helvetica-Bold", 9)
    c.drawString(meta_x + 6, box_y + 40, f"No: {document_number(kind, doc)}")
    c.setFont("Helvetica", 9)
    date = _text(doc.get("created_at"), 10) or datetime.now().strftime("%Y-%m-%d")
    c.drawString(meta_x + 6, box_y + 28, f"Date: {date}")
    extra = ""
    if doc.get("due_date"):
        extra = f"Due: {_text(doc['due_date'], 10)}"
    elif doc.get("valid_until"):
        extra = f"Valid until: {_text(doc['valid_until'], 10)}"
    elif doc.get("invoice_number"):
        extra = f"Invoice: {doc['invoice_number']}"
    elif doc.get("payment_method"):
        extra = f"Method: {doc['payment_method']}"
    if extra:
        c.drawString(meta_x + 6, box_y + 16, extra)
    if doc.get("reference_number"):
        c.drawString(meta_x + 6, box_y + 4, f"Ref: {doc['reference_number']}")

    return box_y - 15


def _draw_table_header(c, y, priced):
    row_h = 18
    c.setFillColor(NAVY)
    c.rect(MARGIN_L, y - row_h, CONTENT_W, row_h, fill=1, stroke=0)
    c.setFillColor(WHITE)
    c.setFont("Helvetica-Bold", 8)
    cols = [(MARGIN_L + 4, "LINE"), (MARGIN_L + 36, "DESCRIPTION"), (MARGIN_L + 340, "QTY")]
    if priced:
        cols += [(MARGIN_L + 390, "UNIT PRICE"), (MARGIN_L + 470, "AMOUNT")]
    for cx, label in cols:
        c.drawString(cx, y - 13, label)
    return y - row_h


def _draw_line_item(c, y, idx, item, priced, row_h=16):
    if idx % 2 == 1:
        c.setFillColor(ALT_ROW)
        c.rect(MARGIN_L, y - row_h, CONTENT_W, row_h, fill=1, stroke=0)
    c.setFillColor(BLACK)
    c.setFont("Helvetica", 8)

    if not isinstance(item, dict):
        item = {"description": item}
    desc = item.get("description", "") or item.get("product_name", "")
    pn = _text(item.get("part_number"))
    qty = item.get("quantity", 0) or item.get("qty", 0)
    up = item.get("unit_price", 0)
    total = item.get("line_total") or round(_num(qty) * _num(up), 2)

    c.drawString(MARGIN_L + 8, y - 12, str(idx + 1))
    desc_text = _text(desc, 65) + (f"  [{pn}]" if pn else "")
    lines = simpleSplit(desc_text, "Helvetica", 8, 295)
    for li, line in enumerate(lines[:2]):
        c.drawString(MARGIN_L + 36, y - 12 - (li * 10), line)
    c.drawRightString(MARGIN_L + 370, y - 12, f"{qty:g}" if isinstance(qty, (int, float)) else str(qty))
    if priced:
        c.drawRightString(MARGIN_L + 450, y - 12, _money(up))
        c.setFont("Helvetica-Bold", 8)
        c.drawRightString(MARGIN_L + CONTENT_W - 8, y - 12, _money(total))

    return y - max(row_h, len(lines[:2]) * 10 + 8)


def _draw_totals(c, y, doc, label="TOTAL:"):
    x_label = MARGIN_L + 360
    x_val = MARGIN_L + CONTENT_W - 8

    y -= 8
    c.setFont("Helvetica", 9)
    c.setFillColor(BLACK)
    if doc.get("subtotal") is not None:
        c.drawRightString(x_label, y - 12, "Subtotal:")
        c.drawRightString(x_val, y - 12, _money(doc.get("subtotal")))
        y -= 16
    if doc.get("tax_amount"):
        c.drawRightString(x_label, y - 12, "VAT:")
        c.drawRightString(x_val, y - 12, _money(doc.get("tax_amount")))
        y -= 16

    y -= 4
    c.setFillColor(NAVY)
    c.rect(MARGIN_L + 340, y - 18, CONTENT_W - 340, 22, fill=1, stroke=0)
    c.setFillColor(WHITE)
    c.setFont("Helvetica-Bold", 11)
    c.drawRightString(x_label, y - 12, label)
    c.drawRightString(x_val, y - 12, _money(doc.get("total_amount", doc.get("amount"))))
    return y - 34


def _draw_footer(c, page_num):
    c.setFont("Helvetica", 7)
    c.setFillColor(GRAY)
    c.drawString(MARGIN_L, MARGIN_B - 20, COMPANY["name"])
    c.drawRightString(PAGE_W - MARGIN_R, MARGIN_B - 20, f"Page {page_num}")
    c.setStrokeColor(LBL_BD)
    c.setLineWidth(0.5)
    c.line(MARGIN_L, MARGIN_B - 10, PAGE_W - MARGIN_R, MARGIN_B - 10)


def terms_lines(fragment: str, width: float = CONTENT_W) -> list:
    """Split a terms fragment into drawable (indent_pts, text, bold) lines.

    Decodes the fragment's entities, keeps blank lines and leading
    indentation, and wraps long lines to width.
    """
    text = html.unescape(fragment)
    out = []
    for i, raw in enumerate(text.split("\n")):
        stripped = raw.lstrip(" \t")
        if not stripped:
            out.append((0, "", False))
            continue
        indent = (len(raw) - len(stripped)) * 3
        bold = i == 0 and is_formatted(fragment)
        font = "Helvetica-Bold" if bold else "Helvetica"
        for piece in simpleSplit(stripped, font, TERMS_FONT_SIZE, width - indent) or [stripped]:
            out.append((indent, piece, bold))
    return out


def pdf_filename(kind: str, document: dict) -> str:
    """e.g. invoice_INV-2026-001_20261019.pdf"""
    number = document_number(kind, document) or "DRAFT"
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in number)
    return f"{normalize_kind(kind)}_{safe}_{datetime.now().strftime('%Y%m%d')}.pdf"


def generate_document_pdf(kind: str, document: dict, output_path: str = "") -> dict:
    """Render a document of any kind to PDF.

    document["terms_and_conditions"] must already be formatted (see
    TermsService.prepare_for_pdf); without it the default terms are used.

    Returns:
        {"ok": True, "path": str, "pages": int, "kind": str, "number": str}
    """
    kind = normalize_kind(kind)
    number = document_number(kind, document) or "DRAFT"
    if not output_path:
        from medbiz.core.paths import OUTPUT_DIR
        output_path = os.path.join(OUTPUT_DIR, pdf_filename(kind, document))
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

    fragment = document.get("terms_and_conditions")
    if not isinstance(fragment, str) or not fragment.strip():
        fragment = format_terms_for_pdf(DEFAULT_TERMS)
    priced = kind != DELIVERY_NOTE
    items = document.get("items")
    if not isinstance(items, list):
        items = []

    c = canvas.Canvas(output_path, pagesize=A4)
    c.setTitle(f"{document_title(kind).title()} {number}")
    c.setAuthor(COMPANY["name"])
    page = 1

    def new_page():
        nonlocal page
        _draw_footer(c, page)
        c.showPage()
        page += 1
        return PAGE_H - MARGIN_T

    y = _draw_header(c, kind, document)
    if items:
        y = _draw_table_header(c, y, priced)
        for idx, item in enumerate(items):
            if y < MARGIN_B + 40:
                y = _draw_table_header(c, new_page(), priced)
            y = _draw_line_item(c, y, idx, item, priced)
    if priced:
        if y < MARGIN_B + 80:
            y = new_page()
        label = "AMOUNT PAID:" if kind == PAYMENT_RECEIPT else "TOTAL:"
        y = _draw_totals(c, y, document, label)

    if document.get("notes"):
        c.setFont("Helvetica-Bold", 8)
        c.setFillColor(BLACK)
        c.drawString(MARGIN_L, y, "Notes")
        y -= TERMS_LEADING
        c.setFont("Helvetica", TERMS_FONT_SIZE)
        for line in simpleSplit(str(document["notes"]), "Helvetica", TERMS_FONT_SIZE, CONTENT_W):
            if y < MARGIN_B:
                y = new_page()
            c.drawString(MARGIN_L, y, line)
            y -= TERMS_LEADING
        y -= TERMS_LEADING

    # ── Terms block ──
    c.setFillColor(BLACK)
    for indent, text, bold in terms_lines(fragment):
        if y < MARGIN_B:
            y = new_page()
        c.setFont("Helvetica-Bold" if bold else "Helvetica", TERMS_FONT_SIZE)
        if text:
            c.drawString(MARGIN_L + indent, y, text)
        y -= TERMS_LEADING

    _draw_footer(c, page)
    c.save()
    log.info("%s PDF generated: %s (%d items, %d pages)",
             kind, output_path, len(items), page, extra={"kind": kind})
    return {"ok": True, "path": output_path, "pages": page, "kind": kind, "number": number}
