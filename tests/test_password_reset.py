"""Tests for one-time password reset tickets."""

import re

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.errors import InvalidInput, ResetTokenInvalidOrExpired, StorageFailure
from app.models.account import Account
from app.models.reset_ticket import ResetTicket
from app.models.session_record import SessionRecord
from app.services.audit import AuditService
from app.services.password_reset import PasswordResetService
from app.services.passwords import PasswordService
from app.services.session import SessionService

NEW_PASSWORD = "NewPassword456"


@pytest.fixture(name="passwords")
def passwords_fixture() -> PasswordService:
    return PasswordService()


@pytest.fixture(name="resets")
def resets_fixture(clock, passwords: PasswordService) -> PasswordResetService:
    return PasswordResetService(
        lifetime_seconds=3600,
        clock=clock,
        passwords=passwords,
        sessions=SessionService(max_duration_seconds=7200, max_concurrent=3, clock=clock),
        audit=AuditService(clock=clock),
    )


class TestRequest:
    """Tests for requesting tickets."""

    def test_request_creates_ticket(self, resets: PasswordResetService, db_session: Session, account, clock):
        ticket = resets.request(db_session, account)
        assert re.fullmatch(r"[0-9a-f]{64}", ticket.token)
        assert ticket.account_id == account.id
        assert ticket.used is False
        assert (ticket.expires_at - clock.now).total_seconds() == 3600

    def test_request_for_email_is_case_insensitive(self, resets: PasswordResetService, db_session: Session, account):
        ticket = resets.request_for_email(db_session, "  A@X.COM ")
        assert ticket is not None
        assert ticket.account_id == account.id

    def test_request_for_unknown_email(self, resets: PasswordResetService, db_session: Session):
        assert resets.request_for_email(db_session, "nobody@x.com") is None

    def test_request_for_inactive_account(self, resets: PasswordResetService, db_session: Session, account):
        account.is_active = False
        db_session.commit()
        assert resets.request_for_email(db_session, "a@x.com") is None


class TestValidate:
    """Tests for checking a ticket before redeeming it."""

    def test_validate_returns_account(self, resets: PasswordResetService, db_session: Session, account):
        ticket = resets.request(db_session, account)
        assert resets.validate(db_session, ticket.token).id == account.id

    def test_validate_does_not_consume_ticket(self, resets: PasswordResetService, db_session: Session, account):
        ticket = resets.request(db_session, account)
        resets.validate(db_session, ticket.token)
        resets.validate(db_session, ticket.token)

        resets.redeem(db_session, ticket.token, NEW_PASSWORD)
        with pytest.raises(ResetTokenInvalidOrExpired):
            resets.validate(db_session, ticket.token)

    def test_validate_expired_ticket(self, resets: PasswordResetService, db_session: Session, account, clock):
        ticket = resets.request(db_session, account)
        clock.advance(3600)
        with pytest.raises(ResetTokenInvalidOrExpired):
            resets.validate(db_session, ticket.token)

    def test_validate_unknown_token(self, resets: PasswordResetService, db_session: Session):
        with pytest.raises(ResetTokenInvalidOrExpired):
            resets.validate(db_session, "f" * 64)


class TestRedeem:
    """Tests for redeeming tickets."""

    def test_redeem_sets_new_password(
        self, resets: PasswordResetService, passwords: PasswordService, db_session: Session, account
    ):
        ticket = resets.request(db_session, account)
        redeemed = resets.redeem(db_session, ticket.token, NEW_PASSWORD)

        assert redeemed.id == account.id
        assert passwords.verify(redeemed.password_hash, NEW_PASSWORD)
        db_session.refresh(ticket)
        assert ticket.used is True
        assert ticket.used_at is not None

    def test_redeem_succeeds_exactly_once(self, resets: PasswordResetService, db_session: Session, account):
        ticket = resets.request(db_session, account)
        resets.redeem(db_session, ticket.token, NEW_PASSWORD)

        with pytest.raises(ResetTokenInvalidOrExpired):
            resets.redeem(db_session, ticket.token, "AnotherPass789")

    def test_expired_ticket(self, resets: PasswordResetService, db_session: Session, account, clock):
        ticket = resets.request(db_session, account)
        clock.advance(3601)
        with pytest.raises(ResetTokenInvalidOrExpired):
            resets.redeem(db_session, ticket.token, NEW_PASSWORD)

    def test_unknown_token(self, resets: PasswordResetService, db_session: Session):
        with pytest.raises(ResetTokenInvalidOrExpired):
            resets.redeem(db_session, "totally-bogus-token", NEW_PASSWORD)

    def test_unknown_token_skips_hashing(
        self, resets: PasswordResetService, passwords: PasswordService, db_session: Session, monkeypatch
    ):
        hashed: list[str] = []
        monkeypatch.setattr(passwords, "hash", hashed.append)
        with pytest.raises(ResetTokenInvalidOrExpired):
            resets.redeem(db_session, "totally-bogus-token", NEW_PASSWORD)
        assert hashed == []

    def test_older_ticket_not_revoked_by_new_request(self, resets: PasswordResetService, db_session: Session, account):
        older = resets.request(db_session, account)
        resets.request(db_session, account)
        resets.redeem(db_session, older.token, NEW_PASSWORD)

    def test_weak_password_does_not_consume_ticket(self, resets: PasswordResetService, db_session: Session, account):
        ticket = resets.request(db_session, account)
        with pytest.raises(InvalidInput):
            resets.redeem(db_session, ticket.token, "short")

        db_session.refresh(ticket)
        assert ticket.used is False
        resets.redeem(db_session, ticket.token, NEW_PASSWORD)

    def test_redeem_closes_open_sessions(self, resets: PasswordResetService, db_session: Session, account):
        resets.sessions.open(db_session, account.id)
        resets.sessions.open(db_session, account.id)
        ticket = resets.request(db_session, account)

        resets.redeem(db_session, ticket.token, NEW_PASSWORD)

        assert db_session.query(SessionRecord).filter(SessionRecord.ended_at.is_(None)).count() == 0

    def test_failure_mid_redeem_leaves_ticket_reusable(
        self, resets: PasswordResetService, db_session: Session, account, monkeypatch
    ):
        """A storage failure after the ticket is claimed rolls back both changes."""
        original_hash = account.password_hash
        ticket = resets.request(db_session, account)

        def boom(db, account_id):
            raise OperationalError("UPDATE session_record", {}, Exception("disk I/O error"))

        monkeypatch.setattr(resets.sessions, "close_all", boom)
        with pytest.raises(StorageFailure):
            resets.redeem(db_session, ticket.token, NEW_PASSWORD)

        db_session.refresh(ticket)
        assert ticket.used is False
        assert db_session.get(Account, account.id).password_hash == original_hash

        monkeypatch.undo()
        resets.redeem(db_session, ticket.token, NEW_PASSWORD)
        assert db_session.query(ResetTicket).filter(ResetTicket.used.is_(True)).count() == 1
