"""Structured logging for plan version commits."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the service process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


class StructuredVersionLogger:
    """Structured logger for version manager outcomes."""

    def log_commit(
        self,
        trip_id: str,
        operation: str,
        version_number: int,
        attempts: int,
        num_changes: int = 0,
    ) -> None:
        """Log a committed plan version."""
        log_data: dict[str, Any] = {
            "trip_id": trip_id,
            "operation": operation,
            "version_number": version_number,
            "attempts": attempts,
            "num_changes": num_changes,
        }
        logger.info(
            f"Plan version committed: trip {trip_id} v{version_number}",
            extra={"structured": log_data},
        )

    def log_rejection(
        self,
        trip_id: str,
        operation: str,
        code: str,
        message: str,
    ) -> None:
        """Log a candidate schedule rejected before commit."""
        log_data: dict[str, Any] = {
            "trip_id": trip_id,
            "operation": operation,
            "code": code,
            "error_reason": message,
        }
        logger.warning(
            f"Plan version rejected: trip {trip_id} - {code}",
            extra={"structured": log_data},
        )

    def log_conflict(
        self,
        trip_id: str,
        attempt: int,
        max_attempts: int,
        expected_version: int,
    ) -> None:
        """Log an optimistic version conflict."""
        log_data: dict[str, Any] = {
            "trip_id": trip_id,
            "attempt": attempt,
            "max_attempts": max_attempts,
            "expected_version": expected_version,
        }
        outcome = "retrying" if attempt < max_attempts else "giving up"
        logger.warning(
            f"Version conflict on trip {trip_id} ({outcome})",
            extra={"structured": log_data},
        )
