"""Terms & conditions pipeline.

Modules:
    manager       — DEFAULT_TERMS, format_terms_for_pdf, LocalTermsCache
    documents     — the eight outbound document kinds
    service       — TermsService: resolve → format → inject, staleness, save
    verification  — per-kind check that PDFs pick up the dynamic terms
"""

from medbiz.terms.manager import (
    DEFAULT_TERMS, TERMS_STORAGE_KEY, LocalTermsCache, format_terms_for_pdf,
)
from medbiz.terms.documents import DOCUMENT_KINDS, UnknownDocumentKind, normalize_kind
from medbiz.terms.service import (
    TermsService, TermsUpdate, TermsError, TermsLookupError,
    TermsSaveError, TermsValidationError,
)
