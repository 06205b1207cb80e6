"""Rate limit models."""

from sqlalchemy import Column, DateTime, Index, Integer, String

from app.database import Base


class RateLimitAttempt(Base):
    """A single throttled action. Append-only; pruned out-of-band."""

    __tablename__ = "rate_limit_attempt"
    __table_args__ = (Index("ix_rate_limit_attempt_key", "identifier", "action", "created_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String(256), nullable=False)
    action = Column(String(32), nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)


class RateLimitBucket(Base):
    """Lock row for one (identifier, action) pair. Written on every check."""

    __tablename__ = "rate_limit_bucket"

    identifier = Column(String(256), primary_key=True)
    action = Column(String(32), primary_key=True)
    touched_at = Column(DateTime, nullable=False)
