"""Structured logging configuration"""

import logging
import json
import os
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


def _json_default(value: Any) -> Any:
    """Encode domain values: Decimal amounts stay exact, enums log by value"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


class StructuredLogger:
    """
    Structured JSON logger for spendcore.

    Keyword arguments become JSON fields. Fields bound with bind() are
    repeated on every record, e.g. the upload being processed.
    """

    def __init__(self, name: str, level: str = "INFO", context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self.context = dict(context or {})

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context) -> "StructuredLogger":
        """Child logger on the same channel with extra fixed fields"""
        child = StructuredLogger.__new__(StructuredLogger)
        child.logger = self.logger
        child.context = {**self.context, **context}
        return child

    def log(self, level: str, message: str, exc_info: bool = False, **kwargs):
        """Log structured message"""
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "level": level.upper(),
            "message": message,
            **self.context,
            **kwargs
        }

        getattr(self.logger, level.lower())(json.dumps(log_data, default=_json_default), exc_info=exc_info)

    def info(self, message: str, **kwargs):
        self.log("info", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.log("warning", message, **kwargs)

    def error(self, message: str, **kwargs):
        self.log("error", message, **kwargs)

    def debug(self, message: str, **kwargs):
        self.log("debug", message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Error record with the active traceback attached"""
        self.log("error", message, exc_info=True, **kwargs)


class JSONFormatter(logging.Formatter):
    """Wraps plain records as JSON; records from StructuredLogger pass through"""

    def format(self, record):
        message = record.getMessage()

        try:
            log_data = json.loads(message)
        except ValueError:
            log_data = None
        if not isinstance(log_data, dict):
            log_data = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "message": message,
            }
        log_data["logger"] = record.name

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=_json_default)


def get_logger(name: str) -> StructuredLogger:
    """Get or create structured logger; level from LOG_LEVEL"""
    return StructuredLogger(name, os.getenv("LOG_LEVEL", "INFO"))
