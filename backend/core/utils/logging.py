"""
Structured logging utility for the offers and rewards services
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StructuredLogger:
    """
    Structured logger that outputs one JSON document per log line
    """

    def __init__(self, name: str = "offers", service: str = "offers-engine"):
        self.service = service
        self.logger = logging.getLogger(name)

        # Create console handler if the application has not configured one
        if not self.logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def _create_log_entry(
        self,
        level: str,
        message: str,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None
    ) -> Dict[str, Any]:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "message": message,
            "service": self.service,
        }

        if customer_id:
            log_entry["customer_id"] = customer_id

        if metadata:
            log_entry["metadata"] = metadata

        if exception:
            log_entry["exception"] = {
                "type": type(exception).__name__,
                "message": str(exception),
            }

        return log_entry

    def _emit(self, level: int, entry: Dict[str, Any]):
        # default=str keeps Decimal and UUID values printable
        self.logger.log(level, json.dumps(entry, default=str))

    def info(
        self,
        message: str,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """Log info message"""
        self._emit(logging.INFO, self._create_log_entry("info", message, customer_id, metadata))

    def warning(
        self,
        message: str,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None
    ):
        """Log warning message"""
        self._emit(
            logging.WARNING,
            self._create_log_entry("warning", message, customer_id, metadata, exception)
        )

    def error(
        self,
        message: str,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None
    ):
        """Log error message"""
        self._emit(
            logging.ERROR,
            self._create_log_entry("error", message, customer_id, metadata, exception)
        )

    def critical(
        self,
        message: str,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None
    ):
        """Log critical message"""
        self._emit(
            logging.CRITICAL,
            self._create_log_entry("critical", message, customer_id, metadata, exception)
        )


# Create global logger instance
structured_logger = StructuredLogger()
