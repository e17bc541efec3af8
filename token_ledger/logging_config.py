"""
Ledger Logging

One JSON object per line for every ledger, journal and ownership action.
Accounts go in `user_id`, the entry point in `action`, and amounts travel
as strings inside `extra` so 256-bit values are never rounded by a log
shipper.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


# Record attributes log_action may set, in output order
STRUCTURED_FIELDS = ("correlation_id", "user_id", "action", "resource", "extra")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line, omitting unset fields"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }
        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "token_ledger",
                  log_format: str = "json") -> logging.Logger:
    """
    Attach a single stderr handler to the ledger's logger tree.

    Calling it again replaces the handler, so the API server and tests can
    reconfigure freely.

    Args:
        level: Level name, case-insensitive
        logger_name: Root of the tree to configure
        log_format: "json" or "text"
    """
    logger = logging.getLogger(logger_name)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(TEXT_FORMAT) if log_format == "text" else JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = "token_ledger") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, correlation_id: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Emit one structured record describing a ledger action.

    Nothing is built when the level is disabled. Empty fields are left off
    the record.

    Args:
        logger: Destination logger
        level: Level name such as "info" or "warning"
        message: Human-readable summary
        user_id: Account that invoked the action
        action: Entry point name (transfer, approve, ...)
        resource: What was acted on, e.g. "account:0xabc..."
        correlation_id: Request id when called from the API
        extra: Further fields; amounts as strings
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    record = logger.makeRecord(logger.name, levelno, __name__, 0, message, (), None)
    fields = {
        "user_id": user_id,
        "action": action,
        "resource": resource,
        "correlation_id": correlation_id,
        "extra": extra,
    }
    for name, value in fields.items():
        if value:
            setattr(record, name, value)

    logger.handle(record)
