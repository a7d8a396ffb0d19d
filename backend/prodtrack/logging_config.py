"""
Logging configuration for ProdTrack

Call setup_logging() once at startup; modules then use:

    from prodtrack.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Operation ended", extra={"po_number": po.po_number})

Anything passed via ``extra`` is emitted as a field in JSON mode.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from prodtrack.core.config import settings

# Attributes every LogRecord carries; everything else came in through extra={}
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for local development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "text":
        return TextFormatter()
    return JSONFormatter()


def setup_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Arguments default to LOG_LEVEL, LOG_FORMAT and LOG_FILE from settings.
    Safe to call more than once; existing handlers are replaced.
    """
    level = (level or settings.LOG_LEVEL).upper()
    formatter = _build_formatter(log_format or settings.LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_file = log_file or settings.LOG_FILE
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Uvicorn access logs duplicate our request logging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
