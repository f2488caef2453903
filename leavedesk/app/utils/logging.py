"""Structured logging for resource requests."""

import logging
from typing import Any

from leavedesk.app.db.context import RequestContext

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root.setLevel(level.upper())


class StructuredRequestLogger:
    """Structured logger for access decisions and request outcomes."""

    def log_decision(
        self,
        ctx: RequestContext,
        resource: str,
        record_id: str | None,
        operation: str,
        allowed: bool,
        reason: str,
    ) -> None:
        """Log an access decision with structured data."""
        log_data: dict[str, Any] = {
            "tenant_id": ctx.tenant_id,
            "user_id": ctx.user_id,
            "roles": sorted(ctx.roles),
            "resource": resource,
            "record_id": record_id,
            "operation": operation,
            "allowed": allowed,
            "reason": reason,
        }

        if allowed:
            logger.debug(f"Access granted: {operation} {resource}", extra={"structured": log_data})
        else:
            logger.warning(f"Access denied: {operation} {resource} - {reason}", extra={"structured": log_data})

    def log_request(
        self,
        method: str,
        resource: str,
        record_id: str | None,
        status: int,
        latency_ms: float,
        ctx: RequestContext | None = None,
        error_code: str | None = None,
    ) -> None:
        """Log a completed request with structured data."""
        log_data: dict[str, Any] = {
            "method": method,
            "resource": resource,
            "record_id": record_id,
            "status": status,
            "latency_ms": round(latency_ms, 2),
        }

        if ctx is not None:
            log_data["tenant_id"] = ctx.tenant_id
            log_data["user_id"] = ctx.user_id

        if error_code:
            log_data["error_code"] = error_code

        log_msg = f"{method} {resource} - {status}"

        if status < 400:
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
