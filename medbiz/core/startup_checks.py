"""
medbiz/core/startup_checks.py — Runtime Self-Test on App Boot

Runs when the app starts. Catches the bugs that only show at runtime:

  1. Path resolution — DATA_DIR / OUTPUT_DIR exist and are writable
  2. Settings DB — company_settings table reachable
  3. Terms pipeline — default terms present, formatter escapes them
  4. Routes — every document endpoint is registered
"""

import logging

log = logging.getLogger("medbiz.startup")

REQUIRED_ROUTES = (
    "/api/settings/terms",
    "/api/settings/terms/draft",
    "/api/documents/<kind>/terms",
    "/api/documents/<kind>/terms/refresh",
    "/api/documents/<kind>/pdf",
)


def run_startup_checks(app=None) -> dict:
    """Run all startup validation checks. Call from create_app() after blueprint registration.

    Returns:
        {"passed": int, "failed": int, "warnings": int, "details": [...]}
    """
    results = {"passed": 0, "failed": 0, "warnings": 0, "details": []}

    def _pass(msg):
        results["passed"] += 1
        results["details"].append(("PASS", msg))
        log.info("%s", msg)

    def _fail(msg):
        results["failed"] += 1
        results["details"].append(("FAIL", msg))
        log.error("STARTUP CHECK FAILED: %s", msg)

    def _warn(msg):
        results["warnings"] += 1
        results["details"].append(("WARN", msg))
        log.warning("%s", msg)

    # ── 1. Path Validation ────────────────────────────────────────────────────
    try:
        from medbiz.core.paths import validate_paths
        path_result = validate_paths()
        if path_result["ok"]:
            _pass("All paths valid")
        for err in path_result["errors"]:
            _fail(err)
        for warn in path_result.get("warnings", []):
            _warn(warn)
    except Exception as e:
        _fail(f"Path validation error: {e}")

    # ── 2. Settings DB ────────────────────────────────────────────────────────
    if app is not None:
        db = app.extensions.get("medbiz.settings_db")
        if db is None:
            _fail("SettingsDB not registered on app")
        else:
            try:
                stats = db.stats()
                _pass(f"Settings DB OK ({stats['company_settings']} companies)")
            except Exception as e:
                _fail(f"Settings DB unreachable: {e}")

    # ── 3. Terms pipeline ─────────────────────────────────────────────────────
    try:
        from medbiz.terms.manager import DEFAULT_TERMS, format_terms_for_pdf
        if not DEFAULT_TERMS.strip():
            _fail("DEFAULT_TERMS is empty")
        elif "E.&amp;O.E" not in format_terms_for_pdf(DEFAULT_TERMS):
            _fail("Terms formatter does not escape default terms")
        else:
            _pass("Terms formatter OK")
    except Exception as e:
        _fail(f"Terms pipeline import error: {e}")

    # ── 4. Routes ─────────────────────────────────────────────────────────────
    if app is not None:
        rules = {r.rule for r in app.url_map.iter_rules()}
        missing = [r for r in REQUIRED_ROUTES if r not in rules]
        if missing:
            _fail(f"Missing routes: {', '.join(missing)}")
        else:
            _pass(f"All {len(REQUIRED_ROUTES)} terms routes registered")

    log.info("Startup checks: %d passed, %d failed, %d warnings",
             results["passed"], results["failed"], results["warnings"])
    return results
