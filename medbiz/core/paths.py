"""
medbiz/core/paths.py — Centralized Path Configuration

Single source of truth for the directories the app writes to.
Every module imports from here instead of computing its own DATA_DIR.

Priority: MEDBIZ_DATA_DIR env → project data/ directory.
"""

import os
import logging

log = logging.getLogger("medbiz.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))

_DEFAULT_DATA_DIR = os.path.join(PROJECT_ROOT, "data")


def _resolve_data_dir() -> str:
    """Find the data directory (SQLite file, logs)."""
    env_dir = os.environ.get("MEDBIZ_DATA_DIR", "")
    if env_dir:
        return env_dir
    return _DEFAULT_DATA_DIR


DATA_DIR = _resolve_data_dir()
OUTPUT_DIR = os.environ.get("MEDBIZ_OUTPUT_DIR", "") or os.path.join(PROJECT_ROOT, "output")
LOG_DIR = os.path.join(DATA_DIR, "logs")
DB_PATH = os.environ.get("MEDBIZ_DB_PATH", "") or os.path.join(DATA_DIR, "medbiz.db")


def ensure_dirs():
    """Create the writable directories. Called once from create_app()."""
    for d in (DATA_DIR, OUTPUT_DIR):
        os.makedirs(d, exist_ok=True)


def validate_paths() -> dict:
    """Runtime validation — call at app startup to catch path issues early.

    Returns:
        {"ok": bool, "errors": [str], "warnings": [str], "resolved": {name: path}}
    """
    result = {"ok": True, "errors": [], "warnings": [], "resolved": {}}

    for name, path in (("DATA_DIR", DATA_DIR), ("OUTPUT_DIR", OUTPUT_DIR)):
        result["resolved"][name] = path
        if not os.path.isdir(path):
            result["errors"].append(f"{name} not found: {path}")
            result["ok"] = False
            continue
        test_file = os.path.join(path, ".write_test")
        try:
            with open(test_file, "w") as f:
                f.write("ok")
            os.remove(test_file)
        except OSError as e:
            result["errors"].append(f"{name} not writable: {e}")
            result["ok"] = False

    result["resolved"]["DB_PATH"] = DB_PATH
    if not os.environ.get("MEDBIZ_DATA_DIR"):
        result["warnings"].append(
            f"MEDBIZ_DATA_DIR not set, using project data dir {DATA_DIR}")

    return result
