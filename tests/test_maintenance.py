"""Tests for the cleanup job."""

from sqlalchemy.orm import Session

from app.maintenance import run_cleanup
from app.models.rate_limit import RateLimitAttempt
from app.models.session_record import SessionRecord
from app.services.audit import AuditService
from app.services.rate_limiter import LOGIN, RateLimiter
from app.services.session import SessionService


def test_run_cleanup(db_session: Session, account, clock):
    limiter = RateLimiter(clock=clock, audit=AuditService(clock=clock))
    sessions = SessionService(max_duration_seconds=7200, max_concurrent=3, clock=clock)

    limiter.check(db_session, "a@x.com", LOGIN, 5, 300)
    closed = sessions.open(db_session, account.id)
    sessions.close(db_session, closed.session_token)
    overlong = sessions.open(db_session, account.id)

    clock.advance(86400 * 8)
    fresh = sessions.open(db_session, account.id)
    limiter.check(db_session, "a@x.com", LOGIN, 5, 300)

    closed_id, overlong_id, fresh_id = closed.id, overlong.id, fresh.id
    report = run_cleanup(db_session, rate_limiter=limiter, sessions=sessions)

    assert report.attempts_pruned == 1
    assert report.sessions_reaped == 1
    assert report.sessions_purged == 1
    assert db_session.query(RateLimitAttempt).count() == 1

    remaining = {record.id: record for record in db_session.query(SessionRecord).all()}
    assert closed_id not in remaining
    assert remaining[overlong_id].ended_at is not None
    assert remaining[fresh_id].ended_at is None
