"""
Structured logging configuration for Medbiz.
Import and call setup_logging() once at app startup.

Log calls attach context via extra={...}; the keys below are carried into
JSON lines and appended to console lines.
"""
import logging
import logging.handlers
import os
import json
from datetime import datetime, timezone

# Context keys passed via extra={...} by the terms service, PDF renderer and app
CONTEXT_FIELDS = ("company_id", "kind", "user", "route", "method", "status", "duration_ms")

LOG_FILE = "medbiz.log"
LOG_MAX_BYTES = 5_000_000
LOG_BACKUPS = 5
QUIET_LOGGERS = ("werkzeug", "reportlab", "pdfminer", "pdfplumber")


def _context(record) -> dict:
    return {k: getattr(record, k) for k in CONTEXT_FIELDS if hasattr(record, k)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, context."""
    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(_context(record))
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Colored console line, context appended as key=value."""
    COLORS = {
        "DEBUG": "\033[36m", "INFO": "\033[32m",
        "WARNING": "\033[33m", "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        ctx = _context(record)
        if ctx:
            line += " (" + " ".join(f"{k}={v}" for k, v in ctx.items()) + ")"
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return f"{color}{line}{self.RESET}"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


def setup_logging(level=None, json_logs=None, log_dir=None):
    """
    Configure the root logger: console plus a rotating JSON file.

    Args:
        level: LOG_LEVEL env, else INFO
        json_logs: JSON on the console too (MEDBIZ_JSON_LOGS env), else colored lines
        log_dir: directory for medbiz.log (default: paths.LOG_DIR)
    """
    level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if json_logs is None:
        json_logs = _env_flag("MEDBIZ_JSON_LOGS")
    if log_dir is None:
        from medbiz.core.paths import LOG_DIR
        log_dir = LOG_DIR

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    handlers = [console]

    file_error = None
    try:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, LOG_FILE), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS)
        fh.setFormatter(JSONFormatter())
        handlers.append(fh)
    except OSError as e:
        file_error = e

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers[:] = handlers

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    log = logging.getLogger("medbiz")
    if file_error:
        log.warning("File logging disabled, %s not writable: %s", log_dir, file_error)
    log.info("Logging initialized at %s", level)
