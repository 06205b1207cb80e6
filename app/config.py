"""Configuration settings for Quiz Auth."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./quiz_auth.db")

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_LIFETIME_SECONDS: int = int(os.getenv("ACCESS_TOKEN_LIFETIME_SECONDS", "7200"))

    # Sessions
    SESSION_MAX_DURATION_SECONDS: int = int(os.getenv("SESSION_MAX_DURATION_SECONDS", "7200"))
    MAX_CONCURRENT_SESSIONS: int = int(os.getenv("MAX_CONCURRENT_SESSIONS", "3"))

    # Password reset
    RESET_TICKET_LIFETIME_SECONDS: int = int(os.getenv("RESET_TICKET_LIFETIME_SECONDS", "3600"))
    PASSWORD_MIN_LENGTH: int = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))

    # Throttling (attempts per window, keyed by normalized email)
    LOGIN_RATE_LIMIT: int = int(os.getenv("LOGIN_RATE_LIMIT", "5"))
    LOGIN_RATE_WINDOW_SECONDS: int = int(os.getenv("LOGIN_RATE_WINDOW_SECONDS", "300"))
    REGISTRATION_RATE_LIMIT: int = int(os.getenv("REGISTRATION_RATE_LIMIT", "3"))
    REGISTRATION_RATE_WINDOW_SECONDS: int = int(os.getenv("REGISTRATION_RATE_WINDOW_SECONDS", "3600"))
    RESET_RATE_LIMIT: int = int(os.getenv("RESET_RATE_LIMIT", "3"))
    RESET_RATE_WINDOW_SECONDS: int = int(os.getenv("RESET_RATE_WINDOW_SECONDS", "3600"))

    # Per-IP limit applied to every route by slowapi
    API_RATE_LIMIT: str = os.getenv("API_RATE_LIMIT", "100/minute")

    # Maintenance
    RATE_LIMIT_RETENTION_SECONDS: int = int(os.getenv("RATE_LIMIT_RETENTION_SECONDS", "86400"))
    SESSION_RETENTION_SECONDS: int = int(os.getenv("SESSION_RETENTION_SECONDS", "604800"))
    CLEANUP_INTERVAL_SECONDS: int = int(os.getenv("CLEANUP_INTERVAL_SECONDS", "3600"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    DEMO_MODE: bool = os.getenv("DEMO_MODE", "false").lower() == "true"

    def __init__(self) -> None:
        self._secret_generated = not self.JWT_SECRET_KEY
        if self._secret_generated:
            self.JWT_SECRET_KEY = secrets.token_urlsafe(32)

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self._secret_generated:
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if self.DEMO_MODE and self.APP_ENV == "production":
            errors.append("DEMO_MODE is enabled in production - reset tokens are returned in API responses")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
