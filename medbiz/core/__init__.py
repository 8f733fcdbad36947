"""Shared configuration, persistence and paths.

Modules:
    paths           — DATA_DIR / OUTPUT_DIR resolution
    db              — SQLite company_settings store
    startup_checks  — boot-time self test
"""
