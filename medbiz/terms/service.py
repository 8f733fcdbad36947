"""
Terms resolution & injection service.

Resolution order for a company's effective terms:
    1. company_settings row for company_id (when a company id is given)
    2. the per-session local cache (only when no company id is given)
    3. DEFAULT_TERMS

A failed settings lookup never raises to the caller and never falls through
to the local cache: it goes straight to DEFAULT_TERMS so PDF generation
always gets *some* terms.

Usage:
    svc = TermsService(SettingsDB(path), LocalTermsCache(session))
    invoice = svc.apply("invoice", invoice, company_id)
    pdf = generate_document_pdf("invoice", invoice, out_path)
"""

import sqlite3
import logging
from typing import NamedTuple, Optional, Sequence

from medbiz.terms.manager import (
    DEFAULT_TERMS, MAX_DRAFT_BYTES, LocalTermsCache, draft_size,
    format_terms_for_pdf, is_formatted,
)
from medbiz.terms.documents import normalize_kind

log = logging.getLogger("medbiz.terms")

SOURCE_COMPANY = "company"
SOURCE_LOCAL = "local"
SOURCE_DEFAULT = "default"

# What a settings store may raise when it is unreachable or broken.
STORE_ERRORS = (sqlite3.Error, OSError)


class TermsError(Exception):
    """Base class for terms pipeline errors."""


class TermsLookupError(TermsError):
    """The settings store could not be queried."""


class TermsSaveError(TermsError):
    """The settings store rejected a write; the previous value still stands."""


class TermsValidationError(TermsError, ValueError):
    """Editor input rejected before reaching the settings store."""


class TermsUpdate(NamedTuple):
    document: dict
    updated: bool


class TermsService:
    """Resolves, formats and injects company terms into outbound documents.

    db           SettingsDB (or anything with get_company_terms/upsert_company_settings)
    local_cache  LocalTermsCache for the current session; None outside a session
    """

    def __init__(self, db=None, local_cache: Optional[LocalTermsCache] = None):
        self.db = db
        self.local_cache = local_cache

    # ── Resolution ────────────────────────────────────────────────────────────
    def _fetch_company_terms(self, company_id: str) -> Optional[str]:
        if self.db is None:
            raise TermsLookupError("no settings store configured")
        try:
            return self.db.get_company_terms(company_id)
        except STORE_ERRORS as e:
            raise TermsLookupError(f"settings lookup failed for {company_id}: {e}") from e

    def _resolve_strict(self, company_id: Optional[str]) -> tuple[str, str]:
        """Like resolve_with_source but lets TermsLookupError through."""
        if not company_id:
            cached = self.local_cache.get() if self.local_cache is not None else ""
            if cached:
                return cached, SOURCE_LOCAL
            return DEFAULT_TERMS, SOURCE_DEFAULT
        stored = self._fetch_company_terms(company_id)
        if stored:
            return stored, SOURCE_COMPANY
        return DEFAULT_TERMS, SOURCE_DEFAULT

    def resolve_with_source(self, company_id: Optional[str] = None) -> tuple[str, str]:
        """Effective plain-text terms plus which link of the chain answered."""
        try:
            return self._resolve_strict(company_id)
        except TermsLookupError as e:
            log.warning("Error fetching company terms, using default: %s", e,
                        extra={"company_id": company_id})
            return DEFAULT_TERMS, SOURCE_DEFAULT

    def resolve(self, company_id: Optional[str] = None) -> str:
        """Effective plain-text terms for company_id. Never empty, never raises."""
        return self.resolve_with_source(company_id)[0]

    def formatted(self, company_id: Optional[str] = None) -> str:
        """Resolved terms as a PDF-ready fragment."""
        return format_terms_for_pdf(self.resolve(company_id))

    # ── Injection ─────────────────────────────────────────────────────────────
    @staticmethod
    def _with_terms(document: dict, fragment: str) -> dict:
        return {**document, "terms_and_conditions": fragment}

    def apply(self, kind: str, document: dict, company_id: Optional[str] = None) -> dict:
        """Copy of document with the company's formatted terms injected.

        Without a company id the document is returned as-is, so the
        renderer's own default applies.
        """
        kind = normalize_kind(kind)
        if not company_id:
            return document
        fragment = self.formatted(company_id)
        log.debug("Applied terms to %s for %s", kind, company_id,
                  extra={"kind": kind, "company_id": company_id})
        return self._with_terms(document, fragment)

    def apply_to_documents(self, kind: str, documents: Sequence[dict],
                           company_id: Optional[str] = None) -> list:
        """Batch apply: one lookup for the whole sequence, same fragment on each."""
        kind = normalize_kind(kind)
        if not company_id:
            return list(documents)
        fragment = self.formatted(company_id)
        log.info("Applied terms to %d %s documents for %s",
                 len(documents), kind, company_id,
                 extra={"kind": kind, "company_id": company_id})
        return [self._with_terms(doc, fragment) for doc in documents]

    def prepare_for_pdf(self, kind: str, document: dict,
                        company_id: Optional[str] = None) -> dict:
        """Render-time entry point.

        A terms snapshot stored on the document wins over the company's
        current terms. Without a snapshot the resolved terms are injected,
        falling back to the session's local terms when there is no company.
        """
        kind = normalize_kind(kind)
        snapshot = document.get("terms_and_conditions")
        if isinstance(snapshot, str) and snapshot.strip():
            if is_formatted(snapshot):
                return document
            return self._with_terms(document, format_terms_for_pdf(snapshot))
        if company_id:
            return self.apply(kind, document, company_id)
        return self._with_terms(document, self.formatted(None))

    # ── Staleness ─────────────────────────────────────────────────────────────
    @staticmethod
    def _matches(stored: Optional[str], current: str) -> bool:
        # Current either as stored raw, or in the shape apply() leaves behind.
        return stored == current or stored == format_terms_for_pdf(current)

    def has_current_terms(self, document: dict, company_id: Optional[str] = None) -> bool:
        """True if the document's stored terms match the company's current terms.

        Without a company id there is nothing to compare against: False.
        """
        if not company_id:
            return False
        try:
            current, _ = self._resolve_strict(company_id)
        except TermsLookupError as e:
            log.warning("Error checking document terms: %s", e,
                        extra={"company_id": company_id})
            return False
        return self._matches(document.get("terms_and_conditions"), current)

    def update_if_stale(self, kind: str, document: dict,
                        company_id: Optional[str] = None) -> TermsUpdate:
        """Refresh a document's terms if they no longer match the company's.

        Returns the same object with updated=False when already current.
        """
        kind = normalize_kind(kind)
        if not company_id:
            return TermsUpdate(document, False)
        try:
            current, _ = self._resolve_strict(company_id)
        except TermsLookupError as e:
            log.warning("Error checking document terms, treating as stale: %s", e,
                        extra={"company_id": company_id})
            current = None
        if current is not None and self._matches(document.get("terms_and_conditions"), current):
            return TermsUpdate(document, False)
        fragment = format_terms_for_pdf(current if current is not None else DEFAULT_TERMS)
        log.info("Refreshed stale terms on %s for %s", kind, company_id,
                 extra={"kind": kind, "company_id": company_id})
        return TermsUpdate(self._with_terms(document, fragment), True)

    # ── Settings editor ───────────────────────────────────────────────────────
    @staticmethod
    def _validate_terms(terms) -> str:
        if not isinstance(terms, str) or not terms.strip():
            raise TermsValidationError("Terms & Conditions cannot be empty")
        return terms

    def save(self, company_id: str, terms: str, updated_by: Optional[str] = None) -> dict:
        """Upsert the company's terms. Raises TermsValidationError / TermsSaveError."""
        if not company_id:
            raise TermsValidationError("company_id is required")
        self._validate_terms(terms)
        if self.db is None:
            raise TermsSaveError("no settings store configured")
        try:
            row = self.db.upsert_company_settings(company_id, terms, updated_by)
        except STORE_ERRORS as e:
            log.error("Failed to update terms for %s: %s", company_id, e,
                      extra={"company_id": company_id, "user": updated_by})
            raise TermsSaveError(f"Failed to update terms: {e}") from e
        # persisted now, the draft is irrelevant
        if self.local_cache is not None:
            self.local_cache.clear()
        return row

    def load_draft(self) -> str:
        """Session draft, or the default terms when nothing is drafted."""
        if self.local_cache is None:
            return DEFAULT_TERMS
        return self.local_cache.get() or DEFAULT_TERMS

    def save_draft(self, terms: str) -> str:
        """Keep terms as this session's draft. Raises TermsValidationError if too large."""
        self._validate_terms(terms)
        if draft_size(terms) > MAX_DRAFT_BYTES:
            raise TermsValidationError(
                f"Draft terms are too large to keep in the session "
                f"({draft_size(terms)} > {MAX_DRAFT_BYTES} bytes); save them to the company instead")
        if self.local_cache is None:
            raise TermsSaveError("no session available for draft terms")
        self.local_cache.set(terms)
        return terms

    def reset_draft(self):
        if self.local_cache is not None:
            self.local_cache.clear()
