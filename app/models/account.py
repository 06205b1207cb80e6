"""Account model."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from app.clock import utcnow
from app.database import Base

SELF_REGISTER_ROLES = ("student", "teacher")


class Account(Base):
    """Platform account. Deactivated through ``is_active``, never deleted."""

    __tablename__ = "account"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    name = Column(String(256), nullable=False)
    role = Column(String(16), nullable=False, default="student")  # student, teacher, admin
    is_active = Column(Boolean, nullable=False, default=True)
    vr_enabled = Column(Boolean, nullable=False, default=False)
    profile = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    last_login_at = Column(DateTime, nullable=True)
