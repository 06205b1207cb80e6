"""JWT Token Service."""

import binascii
import hmac
import json
from dataclasses import dataclass

from jose import jwk, jwt
from jose.utils import base64url_decode, base64url_encode

from app.clock import Clock, to_timestamp, utcnow
from app.config import get_settings
from app.errors import BadSignature, MalformedToken, TokenExpired
from app.models.account import Account


@dataclass(frozen=True)
class AccessClaims:
    """Decoded identity carried by an access token."""

    account_id: int
    email: str
    role: str
    issued_at: int
    expires_at: int


def _decode_segment(segment: str) -> dict:
    try:
        value = json.loads(base64url_decode(segment.encode("ascii")))
    except (UnicodeError, binascii.Error, ValueError) as exc:
        raise MalformedToken() from exc
    if not isinstance(value, dict):
        raise MalformedToken()
    return value


class JWTService:
    """Issues and verifies HS256 access tokens.

    Tokens are stateless: validity is decided by the signature and the ``exp``
    claim alone. Refreshing does not revoke the previous token.

    Claims carry whole epoch seconds. ``exp`` is ``iat`` plus the lifetime and
    expiry is checked against the clock truncated the same way, so a token is
    good for exactly ``lifetime_seconds`` counted from ``iat``. Since ``iat``
    drops the fractional second, that can end up to one second before the
    lifetime has elapsed since issue.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        lifetime_seconds: int | None = None,
        clock: Clock = utcnow,
    ) -> None:
        settings = get_settings()
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.lifetime_seconds = lifetime_seconds or settings.ACCESS_TOKEN_LIFETIME_SECONDS
        self.clock = clock

    def create_token(self, account_id: int, email: str, role: str) -> str:
        """Create a signed token for the given identity."""
        issued_at = to_timestamp(self.clock())
        payload = {
            "sub": str(account_id),
            "email": email,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self.lifetime_seconds,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def issue(self, account: Account) -> str:
        return self.create_token(account.id, account.email, account.role)

    def verify(self, token: str) -> AccessClaims:
        """Verify signature and expiry. Raises MalformedToken, BadSignature or TokenExpired."""
        segments = token.split(".") if token else []
        if len(segments) != 3:
            raise MalformedToken()
        header_segment, payload_segment, signature = segments

        header = _decode_segment(header_segment)
        if header.get("alg") != self.algorithm:
            raise BadSignature()

        signing_input = f"{header_segment}.{payload_segment}".encode("utf-8")
        key = jwk.construct(self.secret_key, algorithm=self.algorithm)
        expected = base64url_encode(key.sign(signing_input))
        if not hmac.compare_digest(expected, signature.encode("utf-8")):
            raise BadSignature()

        claims = _decode_segment(payload_segment)
        try:
            parsed = AccessClaims(
                account_id=int(claims["sub"]),
                email=claims["email"],
                role=claims["role"],
                issued_at=int(claims["iat"]),
                expires_at=int(claims["exp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedToken() from exc

        if to_timestamp(self.clock()) >= parsed.expires_at:
            raise TokenExpired()
        return parsed

    def refresh(self, token: str) -> str:
        """Issue a new token with the same identity as a still-valid one."""
        claims = self.verify(token)
        return self.create_token(claims.account_id, claims.email, claims.role)


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
