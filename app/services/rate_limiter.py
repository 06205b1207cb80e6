"""Sliding-window attempt throttling per identifier and action."""

import logging
import threading
from datetime import datetime, timedelta

from sqlalchemy import exists, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.clock import Clock, utcnow
from app.database import storage_guard
from app.errors import Throttled
from app.models.rate_limit import RateLimitAttempt, RateLimitBucket
from app.services.audit import AuditService, get_audit_service

logger = logging.getLogger("quiz_auth")

LOGIN = "login"
REGISTER = "register"
PASSWORD_RESET = "password_reset"

LOCK_STRIPES = 64


class RateLimiter:
    """Counts attempts for (identifier, action) over a trailing window.

    Count-then-record runs under a striped lock in this process and, in the
    database, behind a write to the key's bucket row. The write takes a row lock
    on server databases and the write lock on SQLite, so two concurrent checks
    for the same key cannot both see a count below the limit, even from
    separate processes.
    """

    def __init__(self, clock: Clock = utcnow, audit: AuditService | None = None) -> None:
        self.clock = clock
        self.audit = audit or get_audit_service()
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    def _lock_for(self, key: tuple[str, str]) -> threading.Lock:
        return self._locks[hash(key) % LOCK_STRIPES]

    def _touch_bucket(self, db: Session, identifier: str, action: str, now: datetime) -> int:
        return (
            db.query(RateLimitBucket)
            .filter(RateLimitBucket.identifier == identifier, RateLimitBucket.action == action)
            .update({RateLimitBucket.touched_at: now}, synchronize_session=False)
        )

    def _lock_bucket(self, db: Session, identifier: str, action: str) -> None:
        now = self.clock()
        if self._touch_bucket(db, identifier, action, now):
            return
        try:
            db.add(RateLimitBucket(identifier=identifier, action=action, touched_at=now))
            db.flush()
        except IntegrityError:
            # Another worker created the bucket first
            db.rollback()
            self._touch_bucket(db, identifier, action, now)

    def count(self, db: Session, identifier: str, action: str, window_seconds: int) -> int:
        since = self.clock() - timedelta(seconds=window_seconds)
        return (
            db.query(func.count(RateLimitAttempt.id))
            .filter(
                RateLimitAttempt.identifier == identifier,
                RateLimitAttempt.action == action,
                RateLimitAttempt.created_at > since,
            )
            .scalar()
            or 0
        )

    def check(self, db: Session, identifier: str, action: str, max_attempts: int, window_seconds: int) -> None:
        """Record an attempt, or raise Throttled if the window is already full."""
        with self._lock_for((identifier, action)):
            with storage_guard(db):
                self._lock_bucket(db, identifier, action)
                attempts = self.count(db, identifier, action, window_seconds)
                if attempts >= max_attempts:
                    db.rollback()
                else:
                    db.add(RateLimitAttempt(identifier=identifier, action=action, created_at=self.clock()))
                    db.commit()
                    return

        self.audit.record(
            db,
            "rate_limit_exceeded",
            severity="medium",
            details={"action": action, "identifier": identifier, "attempts": attempts + 1},
        )
        raise Throttled()

    def prune(self, db: Session, older_than_seconds: int) -> int:
        """Delete attempts older than the retention period, then buckets left empty.

        Returns attempt rows removed.
        """
        cutoff = self.clock() - timedelta(seconds=older_than_seconds)
        with storage_guard(db):
            removed = (
                db.query(RateLimitAttempt)
                .filter(RateLimitAttempt.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            has_attempts = exists().where(
                RateLimitAttempt.identifier == RateLimitBucket.identifier,
                RateLimitAttempt.action == RateLimitBucket.action,
            )
            buckets = db.query(RateLimitBucket).filter(~has_attempts).delete(synchronize_session=False)
            db.commit()
        logger.info("Pruned %d rate limit attempts older than %s and %d empty buckets", removed, cutoff, buckets)
        return removed


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get singleton rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
