"""
Shared pytest fixtures for the Medbiz terms test suite.

Every test gets its own data/output directory and SQLite file under tmp_path;
nothing touches the project data/ folder.
"""
import os
import sqlite3
import pytest

from medbiz.core import paths
from medbiz.core.db import SettingsDB
from medbiz.terms.manager import LocalTermsCache
from medbiz.terms.service import TermsService


# ── Temp data directory (per-test isolation) ──────────────────────────────────

@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Redirect DATA_DIR / OUTPUT_DIR / DB_PATH to an isolated tmp directory."""
    data = str(tmp_path / "data")
    output = str(tmp_path / "output")
    os.makedirs(data, exist_ok=True)
    os.makedirs(output, exist_ok=True)
    monkeypatch.setattr(paths, "DATA_DIR", data)
    monkeypatch.setattr(paths, "OUTPUT_DIR", output)
    monkeypatch.setattr(paths, "LOG_DIR", os.path.join(data, "logs"))
    monkeypatch.setattr(paths, "DB_PATH", os.path.join(data, "medbiz.db"))
    return data


# ── Settings store doubles ────────────────────────────────────────────────────

class CountingDB:
    """Wraps a SettingsDB and counts point lookups."""
    def __init__(self, db):
        self._db = db
        self.lookups = 0

    def get_company_terms(self, company_id):
        self.lookups += 1
        return self._db.get_company_terms(company_id)

    def upsert_company_settings(self, company_id, terms, updated_by=None):
        return self._db.upsert_company_settings(company_id, terms, updated_by)


class FailingDB:
    """A settings store whose every call fails like a locked/corrupt DB."""
    def __init__(self):
        self.calls = 0

    def get_company_terms(self, company_id):
        self.calls += 1
        raise sqlite3.OperationalError("database is locked")

    def upsert_company_settings(self, company_id, terms, updated_by=None):
        self.calls += 1
        raise sqlite3.OperationalError("database is locked")

    def stats(self):
        raise sqlite3.OperationalError("database is locked")


@pytest.fixture
def settings_db(temp_data_dir):
    db = SettingsDB(os.path.join(temp_data_dir, "medbiz.db"))
    db.init()
    return db


@pytest.fixture
def counting_db(settings_db):
    return CountingDB(settings_db)


@pytest.fixture
def failing_db():
    return FailingDB()


@pytest.fixture
def local_cache():
    return LocalTermsCache({})


@pytest.fixture
def terms_service(settings_db, local_cache):
    return TermsService(settings_db, local_cache)


# ── Flask app ─────────────────────────────────────────────────────────────────

@pytest.fixture
def app(temp_data_dir, tmp_path):
    from app import create_app
    return create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "DB_PATH": os.path.join(temp_data_dir, "medbiz.db"),
        "OUTPUT_DIR": str(tmp_path / "output"),
    })


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ── Sample data factories ─────────────────────────────────────────────────────

@pytest.fixture
def sample_items():
    return [
        {"description": "Nitrile examination gloves, medium, box of 100",
         "part_number": "NG-100-M", "quantity": 20, "unit_price": 850.0,
         "line_total": 17000.0},
        {"description": "Disposable syringe 5ml with needle",
         "part_number": "SY-5ML", "quantity": 500, "unit_price": 12.5,
         "line_total": 6250.0},
    ]


@pytest.fixture
def sample_invoice(sample_items):
    return {
        "kind": "invoice",
        "id": "inv-001",
        "company_id": "acme-co",
        "invoice_number": "INV-2026-001",
        "customer_name": "St. Mary's Mission Hospital",
        "created_at": "2026-10-01T09:00:00",
        "due_date": "2026-10-31",
        "items": sample_items,
        "subtotal": 23250.0,
        "tax_amount": 3720.0,
        "total_amount": 26970.0,
    }


@pytest.fixture
def sample_quotation(sample_items):
    return {
        "kind": "quotation",
        "id": "qt-001",
        "company_id": "acme-co",
        "quotation_number": "QT-2026-014",
        "customer_name": "Kenyatta Clinic",
        "created_at": "2026-10-02T10:30:00",
        "valid_until": "2026-11-01",
        "items": sample_items,
        "subtotal": 23250.0,
        "total_amount": 23250.0,
    }
