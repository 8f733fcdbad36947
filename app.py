#!/usr/bin/env python3
"""
Medbiz — Application Entry Point
Creates the Flask app, the settings DB, and registers the terms Blueprint.

For gunicorn: gunicorn "app:create_app()"
"""

import os
import time
import logging

from flask import Flask, jsonify, request

log = logging.getLogger("medbiz")


def create_app(config: dict = None):
    """Application factory.

    config overrides: DB_PATH, OUTPUT_DIR, TESTING, SECRET_KEY, RUN_STARTUP_CHECKS.
    """
    from medbiz.core import paths
    from medbiz.core.db import SettingsDB
    from medbiz.api.routes_terms import bp, EXTENSION_KEY

    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=os.environ.get("SECRET_KEY", "medbiz-dev-key"),
        DB_PATH=paths.DB_PATH,
        OUTPUT_DIR=paths.OUTPUT_DIR,
        RUN_STARTUP_CHECKS=True,
    )
    if config:
        app.config.update(config)

    if not app.config.get("TESTING"):
        from logging_config import setup_logging
        paths.ensure_dirs()
        setup_logging()

    # ── Settings DB: one client per process ──────────────────────────────────
    db = SettingsDB(app.config["DB_PATH"])
    try:
        db.init()
    except Exception as e:
        log.warning("DB init failed, terms will fall back to defaults: %s", e)
    app.extensions[EXTENSION_KEY] = db

    app.register_blueprint(bp)

    # ── Request-level structured logging ────────────────────────────────────
    @app.before_request
    def _log_request_start():
        request._start_time = time.time()

    @app.after_request
    def _log_request_end(response):
        if hasattr(request, "_start_time"):
            duration_ms = round((time.time() - request._start_time) * 1000, 1)
            if request.path != "/api/health":
                log.info("%s %s → %d (%.0fms)",
                         request.method, request.path, response.status_code, duration_ms,
                         extra={"route": request.path, "method": request.method,
                                "status": response.status_code, "duration_ms": duration_ms})
        return response

    @app.errorhandler(500)
    def _server_error(e):
        log.error("Unhandled error on %s: %s", request.path, e, exc_info=True)
        return jsonify({"ok": False, "error": "Internal server error"}), 500

    # ── Runtime self-test: catches path/route/data bugs at boot ──────────
    if app.config.get("RUN_STARTUP_CHECKS"):
        from medbiz.core.startup_checks import run_startup_checks
        checks = run_startup_checks(app)
        if checks["failed"] > 0:
            log.error("STARTUP: %d checks FAILED — review logs", checks["failed"])

    return app


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, debug=False)
