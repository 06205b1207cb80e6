"""Tests for password hashing and policy."""

import bcrypt
import pytest

from app.errors import InvalidInput
from app.services.passwords import PasswordService


@pytest.fixture(name="passwords")
def passwords_fixture() -> PasswordService:
    return PasswordService()


class TestHashing:
    """Tests for argon2 hashing and legacy bcrypt support."""

    def test_hash_is_argon2(self, passwords: PasswordService):
        password_hash = passwords.hash("Password123")
        assert password_hash.startswith("$argon2")
        assert passwords.verify(password_hash, "Password123")
        assert not passwords.verify(password_hash, "Password124")
        assert not passwords.needs_rehash(password_hash)

    def test_verify_legacy_bcrypt(self, passwords: PasswordService):
        legacy = bcrypt.hashpw(b"Password123", bcrypt.gensalt(rounds=4)).decode()
        assert passwords.verify(legacy, "Password123")
        assert not passwords.verify(legacy, "wrong")
        assert passwords.needs_rehash(legacy)

    def test_verify_php_bcrypt_prefix(self, passwords: PasswordService):
        legacy = bcrypt.hashpw(b"Password123", bcrypt.gensalt(rounds=4)).decode()
        php_style = "$2y$" + legacy[4:]
        assert passwords.verify(php_style, "Password123")

    @pytest.mark.parametrize("stored", ["", "garbage", "$2b$broken"])
    def test_unusable_hash_never_verifies(self, passwords: PasswordService, stored: str):
        assert not passwords.verify(stored, "Password123")


class TestPolicy:
    """Tests for the password strength policy."""

    def test_accepts_strong_password(self, passwords: PasswordService):
        passwords.check_policy("Password123")

    @pytest.mark.parametrize("password", ["Pa1", "password123", "PASSWORD123", "Passwordabc"])
    def test_rejects_weak_passwords(self, passwords: PasswordService, password: str):
        with pytest.raises(InvalidInput):
            passwords.check_policy(password)
