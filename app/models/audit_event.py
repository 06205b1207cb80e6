"""Audit event model."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from app.database import Base


class AuditEvent(Base):
    """Security and account activity log entry."""

    __tablename__ = "audit_event"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("account.id"), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    severity = Column(String(16), nullable=False, default="info")  # info, low, medium, high
    details = Column(JSON, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False)
