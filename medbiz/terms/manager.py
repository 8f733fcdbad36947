"""
Terms & Conditions Manager
==========================
Default terms text, the PDF-safe formatter, and the per-session local cache.

Usage:
    from medbiz.terms.manager import DEFAULT_TERMS, format_terms_for_pdf
    fragment = format_terms_for_pdf("Net 30")
"""

import html
import json
import logging
from typing import MutableMapping, Optional

log = logging.getLogger("medbiz.terms")

TERMS_STORAGE_KEY = "default_terms_and_conditions"

# Drafts live in the signed session cookie (browser cap ~4KB after base64).
# Measured as ASCII-escaped JSON, the way the session serializer writes it.
MAX_DRAFT_BYTES = 2800

# Pre-escaped; the formatter output never carries a raw special character.
TERMS_HEADING = "Terms &amp; Conditions"

DEFAULT_TERMS = """1. Payment Terms
   Payment strictly as per approved terms. Interest of 2% per month will be charged on overdue invoices.

2. Goods Return Policy
   Claims and queries must be lodged with us within 21 days of dispatch of goods, otherwise they will not be accepted back.

3. Payment Methods
   Cash transactions of any kind are not acceptable. All payments should be made by cheque, MPESA, or Bank transfer only.

4. Liability and Responsibility
   The company will not be responsible for any loss or damage of goods in transit collected by the customer or sent via customer's courier account.

5. Lien Rights
   The company shall have general as well as particular lien on all goods for any unpaid account.

6. Transportation
   Where applicable, transport will be invoiced separately.

7. Tax Policy
   The VAT is inclusive where applicable.

8. General
   E.&O.E (Errors and Omissions Excepted)"""

# Order matters: & must go first or the other entities get double-escaped.
_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#039;"),
)


def escape_terms(text: str) -> str:
    """Escape the five HTML special characters; everything else untouched."""
    for raw, entity in _ESCAPES:
        text = text.replace(raw, entity)
    return text


def format_terms_for_pdf(terms_text: str) -> str:
    """Convert plain-text terms into the fragment the PDF renderer expects.

    Line breaks, indentation and blank lines are kept exactly as entered.
    Pass raw text exactly once: formatting an already formatted fragment
    escapes the entities a second time.
    """
    return f"{TERMS_HEADING}\n\n{escape_terms(terms_text)}"


def draft_size(terms: str) -> int:
    """Bytes terms take up in the session payload before compression."""
    return len(json.dumps(terms))


def is_formatted(value: Optional[str]) -> bool:
    """True when value already is a fragment produced by format_terms_for_pdf.

    The heading alone is not enough: the body must also be fully escaped,
    so a pasted heading in front of raw text does not pass.
    """
    prefix = TERMS_HEADING + "\n\n"
    if not isinstance(value, str) or not value.startswith(prefix):
        return False
    body = value[len(prefix):]
    return escape_terms(html.unescape(body)) == body


class LocalTermsCache:
    """Single-slot terms cache scoped to one browser session.

    Wraps any mutable mapping: the Flask session in the web layer,
    a plain dict in scripts and tests. Last write wins.
    """

    def __init__(self, storage: MutableMapping = None, key: str = TERMS_STORAGE_KEY):
        self.storage = {} if storage is None else storage
        self.key = key

    def get(self) -> str:
        """Cached text, or "" when nothing is stored."""
        try:
            return self.storage.get(self.key) or ""
        except Exception as e:
            log.error("Error reading local terms: %s", e)
            return ""

    def set(self, terms: str):
        self.storage[self.key] = terms

    def clear(self):
        self.storage.pop(self.key, None)
