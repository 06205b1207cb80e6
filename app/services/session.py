"""Session tracking, independent of access tokens."""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.orm import Session

from app.clock import Clock, utcnow
from app.config import get_settings
from app.database import storage_guard
from app.errors import SessionExpired, SessionInvalid
from app.models.session_record import SessionRecord

logger = logging.getLogger("quiz_auth")


@dataclass
class DeviceInfo:
    """Client metadata stored alongside a session."""

    ip_address: str | None = None
    user_agent: str | None = None
    device_type: str | None = None
    browser_info: str | None = None
    vr_mode: bool = False


class SessionService:
    """Opens, closes, validates and reaps session records."""

    def __init__(
        self,
        max_duration_seconds: int | None = None,
        max_concurrent: int | None = None,
        clock: Clock = utcnow,
    ) -> None:
        settings = get_settings()
        self.max_duration = timedelta(seconds=max_duration_seconds or settings.SESSION_MAX_DURATION_SECONDS)
        self.max_concurrent = max_concurrent or settings.MAX_CONCURRENT_SESSIONS
        self.clock = clock

    def _open_sessions(self, db: Session, account_id: int) -> list[SessionRecord]:
        return (
            db.query(SessionRecord)
            .filter(SessionRecord.account_id == account_id, SessionRecord.ended_at.is_(None))
            .order_by(SessionRecord.started_at.asc(), SessionRecord.id.asc())
            .all()
        )

    def open(self, db: Session, account_id: int, device: DeviceInfo | None = None) -> SessionRecord:
        """Start a session. The oldest open sessions are closed to stay within the concurrency cap."""
        device = device or DeviceInfo()
        now = self.clock()
        with storage_guard(db):
            open_sessions = self._open_sessions(db, account_id)
            overflow = len(open_sessions) - self.max_concurrent + 1
            for stale in open_sessions[: max(overflow, 0)]:
                stale.ended_at = now
                logger.info("Closed session %s for account %s (concurrent session limit)", stale.id, account_id)

            record = SessionRecord(
                account_id=account_id,
                session_token=secrets.token_hex(32),
                ip_address=device.ip_address,
                user_agent=device.user_agent,
                device_type=device.device_type,
                browser_info=device.browser_info,
                vr_mode=device.vr_mode,
                started_at=now,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
        return record

    def close(self, db: Session, session_token: str) -> None:
        """End the open session with this token. Unknown or already-closed tokens are ignored."""
        with storage_guard(db):
            record = (
                db.query(SessionRecord)
                .filter(SessionRecord.session_token == session_token, SessionRecord.ended_at.is_(None))
                .first()
            )
            if record is None:
                return
            record.ended_at = self.clock()
            db.commit()

    def close_all(self, db: Session, account_id: int) -> int:
        """End every open session for an account. Does not commit."""
        now = self.clock()
        open_sessions = self._open_sessions(db, account_id)
        for record in open_sessions:
            record.ended_at = now
        return len(open_sessions)

    def validate(self, db: Session, session_id: int, session_token: str, account_id: int) -> SessionRecord:
        """Return the open session matching all three fields.

        Raises SessionInvalid if there is no such open session, and
        SessionExpired (after closing it) if it has outlived the maximum duration.
        """
        with storage_guard(db):
            record = (
                db.query(SessionRecord)
                .filter(
                    SessionRecord.id == session_id,
                    SessionRecord.session_token == session_token,
                    SessionRecord.account_id == account_id,
                    SessionRecord.ended_at.is_(None),
                )
                .first()
            )
            if record is None:
                logger.warning("Invalid session %s for account %s", session_id, account_id)
                raise SessionInvalid()

            now = self.clock()
            if now - record.started_at > self.max_duration:
                record.ended_at = now
                db.commit()
                logger.warning("Session %s expired", session_id)
                raise SessionExpired()
        return record

    def reap_expired(self, db: Session) -> int:
        """Close open sessions that have outlived the maximum duration."""
        now = self.clock()
        with storage_guard(db):
            reaped = (
                db.query(SessionRecord)
                .filter(SessionRecord.ended_at.is_(None), SessionRecord.started_at < now - self.max_duration)
                .update({SessionRecord.ended_at: now}, synchronize_session=False)
            )
            db.commit()
        return reaped

    def purge_closed(self, db: Session, older_than_seconds: int) -> int:
        """Delete sessions that ended before the retention cutoff."""
        cutoff = self.clock() - timedelta(seconds=older_than_seconds)
        with storage_guard(db):
            removed = (
                db.query(SessionRecord)
                .filter(SessionRecord.ended_at.is_not(None), SessionRecord.ended_at < cutoff)
                .delete(synchronize_session=False)
            )
            db.commit()
        return removed


_session_service: SessionService | None = None


def get_session_service() -> SessionService:
    """Get singleton session service instance."""
    global _session_service
    if _session_service is None:
        _session_service = SessionService()
    return _session_service
