"""
medbiz/core/db.py — SQLite Settings Store

Per-company settings live in one table keyed by company_id. The terms
pipeline only ever does two things with it:

  point lookup   SELECT ... FROM company_settings WHERE company_id=?
  upsert         INSERT ... ON CONFLICT(company_id) DO UPDATE

TABLES:
  company_settings — one row per company: terms_and_conditions + audit columns

A SettingsDB is constructed once per process (see app.create_app) and handed
to whatever needs it. sqlite3 errors propagate to the caller; the terms
service decides whether they are fatal.
"""

import os
import sqlite3
import logging
import threading
from datetime import datetime, timezone
from contextlib import contextmanager

log = logging.getLogger("medbiz.db")

# ── Schema ────────────────────────────────────────────────────────────────────
SCHEMA = """
CREATE TABLE IF NOT EXISTS company_settings (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    company_id           TEXT UNIQUE NOT NULL,
    terms_and_conditions TEXT,
    created_at           TEXT NOT NULL,
    updated_at           TEXT,
    updated_by           TEXT           -- user id of the editor, nullable
);

CREATE INDEX IF NOT EXISTS idx_settings_company ON company_settings(company_id);
"""


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SettingsDB:
    """Thin client over the SQLite company_settings table."""

    def __init__(self, db_path: str = None, timeout: float = 30):
        if db_path is None:
            from medbiz.core.paths import DB_PATH
            db_path = DB_PATH
        self.db_path = db_path
        self.timeout = timeout
        self._lock = threading.Lock()

    def __repr__(self):
        return f"SettingsDB({self.db_path!r})"

    # ── Connection factory ────────────────────────────────────────────────────
    @contextmanager
    def connect(self):
        """Thread-safe SQLite connection with WAL mode for threaded workers."""
        with self._lock:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout,
                                   check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def init(self) -> bool:
        """Create tables if they don't exist. Safe to call multiple times."""
        parent = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(parent, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(SCHEMA)
        log.info("DB initialized at %s", self.db_path)
        return True

    # ── Company settings ──────────────────────────────────────────────────────
    def get_company_settings(self, company_id: str) -> dict | None:
        """Fetch the settings row for one company, or None."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM company_settings WHERE company_id=?",
                (company_id,)).fetchone()
        return dict(row) if row else None

    def get_company_terms(self, company_id: str) -> str | None:
        """Stored terms text for a company; None when there is no row."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT terms_and_conditions FROM company_settings WHERE company_id=?",
                (company_id,)).fetchone()
        if not row:
            return None
        return row["terms_and_conditions"]

    def upsert_company_settings(self, company_id: str, terms: str,
                                updated_by: str = None) -> dict:
        """Insert or update the settings row for company_id. Returns the saved row."""
        now = utc_now()
        with self.connect() as conn:
            conn.execute("""
                INSERT INTO company_settings
                  (company_id, terms_and_conditions, created_at, updated_at, updated_by)
                VALUES (?,?,?,?,?)
                ON CONFLICT(company_id) DO UPDATE SET
                  terms_and_conditions=excluded.terms_and_conditions,
                  updated_at=excluded.updated_at,
                  updated_by=excluded.updated_by
            """, (company_id, terms, now, now, updated_by))
            row = conn.execute(
                "SELECT * FROM company_settings WHERE company_id=?",
                (company_id,)).fetchone()
        log.info("company_settings saved for %s by %s", company_id, updated_by or "?")
        return dict(row)

    def stats(self) -> dict:
        """Row counts, for the health endpoint."""
        with self.connect() as conn:
            n = conn.execute("SELECT COUNT(*) FROM company_settings").fetchone()[0]
        return {"db_path": self.db_path, "company_settings": n}
