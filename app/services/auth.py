"""Authentication service."""

import re
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.clock import Clock, utcnow
from app.database import storage_guard
from app.errors import AccountInactive, EmailAlreadyRegistered, InvalidCredentials, InvalidInput
from app.models.account import SELF_REGISTER_ROLES, Account
from app.services.audit import AuditService, get_audit_service
from app.services.passwords import PasswordService, get_password_service

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PROFILE_FIELDS = ("name", "vr_enabled", "profile")


def normalize_email(email: str) -> str:
    """Canonical form used for lookups, uniqueness and throttling keys."""
    return email.strip().lower()


class AuthService:
    """Handles account registration, credential checks and profiles."""

    def __init__(
        self,
        clock: Clock = utcnow,
        passwords: PasswordService | None = None,
        audit: AuditService | None = None,
    ) -> None:
        self.clock = clock
        self.passwords = passwords or get_password_service()
        self.audit = audit or get_audit_service()

    def get_by_email(self, db: Session, email: str) -> Account | None:
        with storage_guard(db):
            return db.query(Account).filter(Account.email == normalize_email(email)).first()

    def get_account(self, db: Session, account_id: int) -> Account | None:
        with storage_guard(db):
            return db.get(Account, account_id)

    def validate_registration(self, email: str, password: str, name: str, role: str) -> None:
        """Raise InvalidInput if the registration fields are malformed. Does not touch storage."""
        if not EMAIL_PATTERN.match(normalize_email(email)):
            raise InvalidInput("Invalid email format")
        if not name.strip():
            raise InvalidInput("Name is required")
        if role not in SELF_REGISTER_ROLES:
            raise InvalidInput("Invalid role. Only student and teacher roles are allowed")
        self.passwords.check_policy(password)

    def register(
        self,
        db: Session,
        email: str,
        password: str,
        name: str,
        role: str = "student",
        vr_enabled: bool = False,
    ) -> Account:
        """Register a new account. Raises InvalidInput or EmailAlreadyRegistered."""
        self.validate_registration(email, password, name, role)
        email = normalize_email(email)
        if self.get_by_email(db, email) is not None:
            raise EmailAlreadyRegistered()

        account = Account(
            email=email,
            password_hash=self.passwords.hash(password),
            name=name.strip(),
            role=role,
            is_active=True,
            vr_enabled=vr_enabled,
            profile={},
        )
        with storage_guard(db):
            db.add(account)
            try:
                db.commit()
            except IntegrityError as exc:
                # Lost a race with a concurrent registration for the same email
                db.rollback()
                raise EmailAlreadyRegistered() from exc
            db.refresh(account)

        self.audit.record(db, "registration", account_id=account.id, details={"role": role, "vr_enabled": vr_enabled})
        return account

    def authenticate(self, db: Session, email: str, password: str, ip_address: str | None = None) -> Account:
        """Return the account for valid credentials.

        Unknown email, inactive account and wrong password all raise the same
        InvalidCredentials so callers cannot tell which accounts exist.
        """
        email = normalize_email(email)
        account = self.get_by_email(db, email)
        if account is None or not account.is_active:
            # Same hashing cost as a real mismatch
            self.passwords.verify(self.passwords.dummy_hash, password)
            valid = False
        else:
            valid = self.passwords.verify(account.password_hash, password)
        if not valid:
            self.audit.record(
                db,
                "login_failed",
                account_id=account.id if account is not None else None,
                severity="low",
                details={"email": email},
                ip_address=ip_address,
            )
            raise InvalidCredentials()

        with storage_guard(db):
            if self.passwords.needs_rehash(account.password_hash):
                account.password_hash = self.passwords.hash(password)
            account.last_login_at = self.clock()
            db.commit()
            db.refresh(account)

        self.audit.record(db, "login", account_id=account.id, ip_address=ip_address)
        return account

    def require_active(self, db: Session, account_id: int) -> Account:
        """Load an account referenced by a token. Raises AccountInactive if gone or deactivated."""
        account = self.get_account(db, account_id)
        if account is None or not account.is_active:
            raise AccountInactive()
        return account

    def update_profile(self, db: Session, account: Account, updates: dict[str, Any]) -> Account:
        """Apply allowed profile field updates."""
        changes = {field: value for field, value in updates.items() if field in PROFILE_FIELDS and value is not None}
        if not changes:
            raise InvalidInput("No valid fields to update")
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise InvalidInput("Name is required")

        with storage_guard(db):
            for field, value in changes.items():
                setattr(account, field, value)
            db.commit()
            db.refresh(account)

        self.audit.record(db, "profile_update", account_id=account.id, details={"updated_fields": sorted(changes)})
        return account


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
