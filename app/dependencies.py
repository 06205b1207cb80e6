"""Authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.account import Account
from app.services.auth import get_auth_service
from app.services.jwt import AccessClaims, get_jwt_service


@dataclass
class CurrentUser:
    """Authenticated request context."""

    token: str
    claims: AccessClaims


def get_bearer_token(request: Request) -> str:
    """Extract the Bearer token from the Authorization header. Raises 401 if missing."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth_header[7:]


def get_current_user(token: str = Depends(get_bearer_token)) -> CurrentUser:
    """Verify the access token. Token errors propagate to the AuthError handler."""
    claims = get_jwt_service().verify(token)
    return CurrentUser(token=token, claims=claims)


def get_current_account(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Account:
    """Load the active account behind the access token."""
    return get_auth_service().require_active(db, user.claims.account_id)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
