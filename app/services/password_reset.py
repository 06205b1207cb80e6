"""Password reset tickets."""

import secrets
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.clock import Clock, utcnow
from app.config import get_settings
from app.database import storage_guard
from app.errors import ResetTokenInvalidOrExpired
from app.models.account import Account
from app.models.reset_ticket import ResetTicket
from app.services.audit import AuditService, get_audit_service
from app.services.auth import normalize_email
from app.services.passwords import PasswordService, get_password_service
from app.services.session import SessionService, get_session_service


class PasswordResetService:
    """Issues and redeems one-time reset tickets.

    Requesting a ticket does not revoke earlier ones; each stays redeemable
    until it is used or expires.
    """

    def __init__(
        self,
        lifetime_seconds: int | None = None,
        clock: Clock = utcnow,
        passwords: PasswordService | None = None,
        sessions: SessionService | None = None,
        audit: AuditService | None = None,
    ) -> None:
        self.lifetime = timedelta(seconds=lifetime_seconds or get_settings().RESET_TICKET_LIFETIME_SECONDS)
        self.clock = clock
        self.passwords = passwords or get_password_service()
        self.sessions = sessions or get_session_service()
        self.audit = audit or get_audit_service()

    def request(self, db: Session, account: Account) -> ResetTicket:
        """Create a new ticket for the account."""
        now = self.clock()
        ticket = ResetTicket(
            account_id=account.id,
            token=secrets.token_hex(32),
            expires_at=now + self.lifetime,
            used=False,
            created_at=now,
        )
        with storage_guard(db):
            db.add(ticket)
            db.commit()
            db.refresh(ticket)
        self.audit.record(db, "password_reset_requested", account_id=account.id)
        return ticket

    def request_for_email(self, db: Session, email: str) -> ResetTicket | None:
        """Create a ticket if an active account has this email.

        Returns None otherwise. Caller should not reveal whether the account was found.
        """
        with storage_guard(db):
            account = db.query(Account).filter(Account.email == normalize_email(email)).first()
        if account is None or not account.is_active:
            return None
        return self.request(db, account)

    def _find_redeemable(self, db: Session, token: str, now: datetime) -> tuple[ResetTicket, Account]:
        ticket = db.query(ResetTicket).filter(ResetTicket.token == token).first()
        if ticket is None or ticket.used or ticket.expires_at <= now:
            raise ResetTokenInvalidOrExpired()
        account = db.get(Account, ticket.account_id)
        if account is None or not account.is_active:
            raise ResetTokenInvalidOrExpired()
        return ticket, account

    def validate(self, db: Session, token: str) -> Account:
        """Return the account a ticket would reset, without using it up.

        Raises ResetTokenInvalidOrExpired under the same rules as redeem.
        """
        with storage_guard(db):
            _, account = self._find_redeemable(db, token, self.clock())
        return account

    def redeem(self, db: Session, token: str, new_password: str) -> Account:
        """Set a new password using a ticket. The ticket is usable exactly once."""
        self.passwords.check_policy(new_password)
        now = self.clock()

        with storage_guard(db):
            ticket, account = self._find_redeemable(db, token, now)

            # Conditional update so a concurrent redeem cannot also succeed
            claimed = (
                db.query(ResetTicket)
                .filter(ResetTicket.id == ticket.id, ResetTicket.used.is_(False))
                .update({ResetTicket.used: True, ResetTicket.used_at: now}, synchronize_session=False)
            )
            if claimed != 1:
                db.rollback()
                raise ResetTokenInvalidOrExpired()

            account.password_hash = self.passwords.hash(new_password)
            closed = self.sessions.close_all(db, account.id)
            db.commit()
            db.refresh(account)

        self.audit.record(
            db,
            "password_reset_completed",
            account_id=account.id,
            details={"method": "reset_token", "sessions_closed": closed},
        )
        return account


_password_reset_service: PasswordResetService | None = None


def get_password_reset_service() -> PasswordResetService:
    """Get singleton password reset service instance."""
    global _password_reset_service
    if _password_reset_service is None:
        _password_reset_service = PasswordResetService()
    return _password_reset_service
