"""Out-of-band cleanup of expired throttle and session data.

Run once (e.g. from cron):

    python -m app.maintenance

or keep it running with ``--loop``, which repeats every
``CLEANUP_INTERVAL_SECONDS``. Only expired or closed rows are touched, so it is
safe alongside live traffic.
"""

import argparse
import logging
import time
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import SessionLocal
from app.errors import StorageFailure
from app.services.rate_limiter import RateLimiter, get_rate_limiter
from app.services.session import SessionService, get_session_service

logger = logging.getLogger("quiz_auth")


@dataclass
class CleanupReport:
    attempts_pruned: int
    sessions_reaped: int
    sessions_purged: int


def run_cleanup(
    db: Session,
    rate_limiter: RateLimiter | None = None,
    sessions: SessionService | None = None,
) -> CleanupReport:
    """Prune old attempts, close overlong sessions and delete old closed ones."""
    settings = get_settings()
    rate_limiter = rate_limiter or get_rate_limiter()
    sessions = sessions or get_session_service()

    report = CleanupReport(
        attempts_pruned=rate_limiter.prune(db, settings.RATE_LIMIT_RETENTION_SECONDS),
        sessions_reaped=sessions.reap_expired(db),
        sessions_purged=sessions.purge_closed(db, settings.SESSION_RETENTION_SECONDS),
    )
    logger.info(
        "Cleanup finished: %d attempts pruned, %d sessions reaped, %d sessions purged",
        report.attempts_pruned,
        report.sessions_reaped,
        report.sessions_purged,
    )
    return report


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Prune expired rate limit and session data.")
    parser.add_argument("--loop", action="store_true", help="repeat every CLEANUP_INTERVAL_SECONDS")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    interval = get_settings().CLEANUP_INTERVAL_SECONDS

    while True:
        db = SessionLocal()
        try:
            run_cleanup(db)
        except StorageFailure:
            if not args.loop:
                raise
            logger.exception("Cleanup failed; retrying in %ds", interval)
        finally:
            db.close()
        if not args.loop:
            break
        time.sleep(interval)


if __name__ == "__main__":
    main()
