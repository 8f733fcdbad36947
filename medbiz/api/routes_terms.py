# routes_terms.py: Terms & Conditions settings editor + document terms/PDF endpoints
# Registered by app.create_app(); the SettingsDB lives in app.extensions.

import io
import os
import tempfile
import logging

from flask import Blueprint, current_app, jsonify, request, send_file, session

from medbiz.terms.documents import UnknownDocumentKind, normalize_kind
from medbiz.terms.manager import DEFAULT_TERMS, LocalTermsCache, TERMS_STORAGE_KEY
from medbiz.terms.service import (
    TermsService, TermsSaveError, TermsValidationError, STORE_ERRORS,
)
from medbiz.terms.verification import generate_verification_report, verify_document_kinds
from medbiz.forms.document_pdf import generate_document_pdf, pdf_filename

log = logging.getLogger("medbiz.api")

bp = Blueprint("terms", __name__)

EXTENSION_KEY = "medbiz.settings_db"


def _service() -> TermsService:
    """A TermsService bound to the app's SettingsDB and this session's draft."""
    db = current_app.extensions[EXTENSION_KEY]
    return TermsService(db, LocalTermsCache(session, TERMS_STORAGE_KEY))


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _company_id(body: dict = None, document: dict = None):
    body = body or {}
    return (request.args.get("company_id") or body.get("company_id")
            or (document or {}).get("company_id") or None)


@bp.errorhandler(UnknownDocumentKind)
def _unknown_kind(e):
    return jsonify({"ok": False, "error": str(e)}), 404


# ═══════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/health")
def health():
    try:
        stats = current_app.extensions[EXTENSION_KEY].stats()
        return jsonify({"ok": True, "db": stats})
    except STORE_ERRORS as e:
        log.error("Health check: DB unavailable: %s", e)
        return jsonify({"ok": False, "error": f"DB unavailable: {e}"}), 503


# ═══════════════════════════════════════════════════════════════════════
# Settings editor
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/settings/terms", methods=["GET"])
def get_terms():
    """Effective terms for a company (or this session) and where they came from."""
    terms, source = _service().resolve_with_source(_company_id())
    return jsonify({"ok": True, "terms": terms, "source": source})


@bp.route("/api/settings/terms", methods=["POST", "PUT"])
def save_terms():
    """Administrator saves new terms for a company."""
    body = _body()
    company_id = _company_id(body)
    updated_by = body.get("updated_by") or (request.authorization.username
                                            if request.authorization else None)
    try:
        row = _service().save(company_id, body.get("terms"), updated_by)
    except TermsValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except TermsSaveError as e:
        return jsonify({"ok": False, "error": str(e)}), 503
    return jsonify({"ok": True, "settings": row})


@bp.route("/api/settings/terms/default")
def default_terms():
    return jsonify({"ok": True, "terms": DEFAULT_TERMS})


@bp.route("/api/settings/terms/draft", methods=["GET", "POST", "DELETE"])
def terms_draft():
    """Session-scoped draft: load (GET), save (POST), reset to default (DELETE)."""
    svc = _service()
    if request.method == "POST":
        try:
            svc.save_draft(_body().get("terms"))
        except TermsValidationError as e:
            return jsonify({"ok": False, "error": str(e)}), 400
    elif request.method == "DELETE":
        svc.reset_draft()
    return jsonify({"ok": True, "terms": svc.load_draft()})


@bp.route("/api/terms/formatted")
def formatted_terms():
    return jsonify({"ok": True, "formatted": _service().formatted(_company_id())})


@bp.route("/api/terms/verify")
def verify_terms():
    results = verify_document_kinds(_service(), _company_id())
    return jsonify({
        "ok": all(r.success for r in results),
        "results": [r._asdict() for r in results],
        "report": generate_verification_report(results),
    })


# ═══════════════════════════════════════════════════════════════════════
# Documents
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/documents/<kind>/terms", methods=["POST"])
def apply_document_terms(kind):
    """Inject the company's current terms into one document or a batch.

    Body: {"document": {...}} or {"documents": [...]}, plus optional company_id.
    """
    kind = normalize_kind(kind)
    body = _body()
    svc = _service()
    if isinstance(body.get("documents"), list):
        docs = body["documents"]
        if not all(isinstance(d, dict) for d in docs):
            return jsonify({"ok": False, "error": "documents must be objects"}), 400
        company_id = _company_id(body, docs[0] if docs else None)
        return jsonify({"ok": True, "documents": svc.apply_to_documents(kind, docs, company_id)})
    document = body.get("document")
    if not isinstance(document, dict):
        return jsonify({"ok": False, "error": "document required"}), 400
    return jsonify({"ok": True,
                    "document": svc.apply(kind, document, _company_id(body, document))})


@bp.route("/api/documents/<kind>/terms/refresh", methods=["POST"])
def refresh_document_terms(kind):
    kind = normalize_kind(kind)
    body = _body()
    document = body.get("document")
    if not isinstance(document, dict):
        return jsonify({"ok": False, "error": "document required"}), 400
    result = _service().update_if_stale(kind, document, _company_id(body, document))
    return jsonify({"ok": True, "document": result.document, "updated": result.updated})


@bp.route("/api/documents/<kind>/pdf", methods=["POST"])
def document_pdf(kind):
    """Render a document to PDF with its terms resolved, and download it.

    Each request renders into its own temp file under OUTPUT_DIR, which is
    removed once the bytes are read back.
    """
    kind = normalize_kind(kind)
    body = _body()
    document = body.get("document")
    if not isinstance(document, dict):
        return jsonify({"ok": False, "error": "document required"}), 400
    prepared = _service().prepare_for_pdf(kind, document, _company_id(body, document))
    out_dir = current_app.config["OUTPUT_DIR"]
    os.makedirs(out_dir, exist_ok=True)
    fd, out_path = tempfile.mkstemp(dir=out_dir, prefix=f"{kind}_", suffix=".pdf")
    os.close(fd)
    try:
        generate_document_pdf(kind, prepared, out_path)
        with open(out_path, "rb") as f:
            data = io.BytesIO(f.read())
    finally:
        os.remove(out_path)
    return send_file(data, mimetype="application/pdf", as_attachment=True,
                     download_name=pdf_filename(kind, prepared))
