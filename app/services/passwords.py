"""Password hashing and policy."""

import re
from functools import cached_property

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from app.config import get_settings
from app.errors import InvalidInput

BCRYPT_PREFIX = "$2"

_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"\d")


class PasswordService:
    """Argon2 hashing, with verification of legacy bcrypt hashes."""

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self.hasher = hasher or PasswordHasher()

    def hash(self, password: str) -> str:
        return self.hasher.hash(password)

    @cached_property
    def dummy_hash(self) -> str:
        """Hash checked when there is no real one, so a miss costs as much as a wrong password."""
        return self.hasher.hash("not-a-real-password")

    def verify(self, password_hash: str, password: str) -> bool:
        """Check a plaintext password against a stored hash."""
        if not password_hash or not password:
            return False
        if password_hash.startswith(BCRYPT_PREFIX):
            # PHP writes $2y$; the bcrypt package only accepts $2b$
            legacy = "$2b$" + password_hash[4:] if password_hash.startswith("$2y$") else password_hash
            try:
                return bcrypt.checkpw(password.encode("utf-8"), legacy.encode("utf-8"))
            except ValueError:
                return False
        try:
            return self.hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        if password_hash.startswith(BCRYPT_PREFIX):
            return True
        return self.hasher.check_needs_rehash(password_hash)

    def check_policy(self, password: str) -> None:
        """Raise InvalidInput unless the password meets the strength policy."""
        min_length = get_settings().PASSWORD_MIN_LENGTH
        if len(password) < min_length:
            raise InvalidInput(f"Password must be at least {min_length} characters long")
        if not (_LOWER.search(password) and _UPPER.search(password) and _DIGIT.search(password)):
            raise InvalidInput("Password must contain an uppercase letter, a lowercase letter, and a number")


_password_service: PasswordService | None = None


def get_password_service() -> PasswordService:
    """Get singleton password service instance."""
    global _password_service
    if _password_service is None:
        _password_service = PasswordService()
    return _password_service
