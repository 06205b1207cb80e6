"""Session record model."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from app.database import Base


class SessionRecord(Base):
    """Logged-in session, tracked independently of the access token."""

    __tablename__ = "session_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("account.id"), nullable=False, index=True)
    session_token = Column(String(64), nullable=False, unique=True, index=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    device_type = Column(String(64), nullable=True)
    browser_info = Column(String(256), nullable=True)
    vr_mode = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=True, index=True)
