"""Audit trail for account and security events."""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.clock import Clock, utcnow
from app.models.audit_event import AuditEvent

logger = logging.getLogger("quiz_auth")


class AuditService:
    """Writes audit events to the log and the ``audit_event`` table.

    Recording is best-effort: if the database write fails the event is still
    logged and the caller's operation carries on.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self.clock = clock

    def record(
        self,
        db: Session,
        action: str,
        account_id: int | None = None,
        severity: str = "info",
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> None:
        details = details or {}
        level = logging.WARNING if severity in ("medium", "high") else logging.INFO
        logger.log(level, "AUDIT %s account=%s severity=%s details=%s", action, account_id, severity, details)

        event = AuditEvent(
            account_id=account_id,
            action=action,
            severity=severity,
            details=details,
            ip_address=ip_address,
            created_at=self.clock(),
        )
        try:
            db.add(event)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Failed to persist audit event %s for account %s", action, account_id, exc_info=True)


_audit_service: AuditService | None = None


def get_audit_service() -> AuditService:
    """Get singleton audit service instance."""
    global _audit_service
    if _audit_service is None:
        _audit_service = AuditService()
    return _audit_service
