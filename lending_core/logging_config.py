"""
Structured Logging Configuration Module

Log records emitted by the library may carry entity fields (which loan,
payment or advance; what happened; who asked). The JSON formatter writes
them as keys, the text formatter appends them in brackets.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Record attributes promoted to structured output, in output order
STRUCTURED_FIELDS = ("entity_type", "entity_id", "action", "actor", "extra")

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _structured(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        name: getattr(record, name)
        for name in STRUCTURED_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }
        entry.update(_structured(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain line format with entity fields appended"""

    def __init__(self):
        super().__init__(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record):
        line = super().format(record)
        fields = _structured(record)
        fields.pop("extra", None)
        if fields:
            line += " [" + " ".join(f"{k}={v}" for k, v in fields.items()) + "]"
        return line


def setup_logging(
    level: str = "INFO",
    logger_name: str = "lending_core",
    log_format: str = "json"
) -> logging.Logger:
    """
    Attach a single stream handler to the library logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        logger_name: Logger to configure
        log_format: "json" or "text"

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if log_format == "json" else TextFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    return logger


def setup_logging_from_config(config=None) -> logging.Logger:
    """Setup logging using LendingConfig values"""
    from .config import get_config

    config = config or get_config()
    return setup_logging(level=config.log_level, log_format=config.log_format)


def get_logger(name: str = "lending_core") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               entity_type: Optional[str] = None, entity_id: Optional[str] = None,
               action: Optional[str] = None, actor: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Log a message with entity fields attached to the record.

    Args:
        logger: Logger instance
        level: Level name (info, warning, ...)
        message: Log message
        entity_type: Kind of entity acted upon (loan, payment, advance)
        entity_id: ID of the entity
        action: What happened
        actor: Who requested it
        extra: Additional structured data
    """
    fields = {
        "entity_type": entity_type,
        "entity_id": entity_id,
        "action": action,
        "actor": actor,
        "extra": extra,
    }
    logger.log(
        getattr(logging, level.upper()),
        message,
        extra={k: v for k, v in fields.items() if v is not None},
    )
