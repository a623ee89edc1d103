"""
Structured logging for journal operations.
Entry writes, embedding generation and similarity searches share one format.
"""

import logging
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for entry, embedding and search operations."""

    def __init__(self, name: str = "journal"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_entry_operation(self, operation: str, entry_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log an entry write (create, update, delete)."""
        log_details = {"entry_id": entry_id}
        if details:
            log_details.update(details)

        self.log_operation(f"entry.{operation}", status, log_details)

    def log_embedding_operation(self, operation: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log embedding generation. Failures are warnings, never errors."""
        level = logging.WARNING if status == "failed" else logging.INFO
        self.log_operation(f"embedding.{operation}", status, details, level=level)

    def log_search(self, scanned: int, matched: int, returned: int, threshold: float, limit: int, duration_ms: float = None):
        """Log a completed similarity search."""
        log_details = {
            "scanned": scanned,
            "matched": matched,
            "returned": returned,
            "threshold": threshold,
            "limit": limit,
        }
        if duration_ms is not None:
            log_details["duration_ms"] = round(duration_ms, 2)

        self.log_operation("search.similar", "success", log_details)

    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
