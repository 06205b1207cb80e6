"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.dependencies import CurrentUser, client_ip, get_current_account, get_current_user
from app.errors import InvalidInput
from app.models.account import Account
from app.rate_limit import limiter
from app.schemas.auth import (
    AccountResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    ResetTokenStatusResponse,
    SessionResponse,
    SessionValidateRequest,
    VerifyResponse,
)
from app.services import rate_limiter as throttle
from app.services.audit import get_audit_service
from app.services.auth import get_auth_service, normalize_email
from app.services.jwt import get_jwt_service
from app.services.password_reset import get_password_reset_service
from app.services.session import DeviceInfo, get_session_service

logger = logging.getLogger("quiz_auth")

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If the email exists, a reset link has been sent"


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit("10/minute")
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)) -> RegisterResponse:
    """Register a new student or teacher account."""
    settings = get_settings()
    auth_service = get_auth_service()
    auth_service.validate_registration(body.email, body.password, body.name, body.role)
    throttle.get_rate_limiter().check(
        db,
        normalize_email(body.email),
        throttle.REGISTER,
        settings.REGISTRATION_RATE_LIMIT,
        settings.REGISTRATION_RATE_WINDOW_SECONDS,
    )
    account = auth_service.register(db, body.email, body.password, body.name, body.role, body.vr_enabled)
    return RegisterResponse(account_id=account.id, message="You can now log in with your credentials")


@router.post("/login", response_model=LoginResponse)
@limiter.limit("20/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate and receive an access token plus a session token."""
    settings = get_settings()
    throttle.get_rate_limiter().check(
        db,
        normalize_email(body.email),
        throttle.LOGIN,
        settings.LOGIN_RATE_LIMIT,
        settings.LOGIN_RATE_WINDOW_SECONDS,
    )
    account = get_auth_service().authenticate(db, body.email, body.password, ip_address=client_ip(request))

    jwt_service = get_jwt_service()
    token = jwt_service.issue(account)
    session = get_session_service().open(
        db,
        account.id,
        DeviceInfo(
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            device_type=body.device_info.device_type,
            browser_info=body.device_info.browser_info,
            vr_mode=body.vr_enabled,
        ),
    )

    return LoginResponse(
        token=token,
        session_id=session.id,
        session_token=session.session_token,
        expires_in=jwt_service.lifetime_seconds,
        user=AccountResponse.model_validate(account),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    body: LogoutRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """End the given session. The access token itself stays valid until it expires."""
    if body.session_token:
        get_session_service().close(db, body.session_token)
    get_audit_service().record(db, "logout", account_id=user.claims.account_id)
    return MessageResponse(message="Logged out successfully")


@router.get("/verify", response_model=VerifyResponse)
def verify_token(account: Account = Depends(get_current_account)) -> VerifyResponse:
    """Verify the Bearer token and return the account it identifies."""
    return VerifyResponse(valid=True, user=AccountResponse.model_validate(account))


@router.post("/refresh", response_model=RefreshResponse)
def refresh_token(user: CurrentUser = Depends(get_current_user)) -> RefreshResponse:
    """Issue a fresh token for a still-valid one."""
    jwt_service = get_jwt_service()
    return RefreshResponse(token=jwt_service.refresh(user.token), expires_in=jwt_service.lifetime_seconds)


@router.get("/profile", response_model=AccountResponse)
def get_profile(account: Account = Depends(get_current_account)) -> AccountResponse:
    """Return the caller's profile."""
    return AccountResponse.model_validate(account)


@router.put("/profile", response_model=AccountResponse)
def update_profile(
    body: ProfileUpdateRequest,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> AccountResponse:
    """Update name, VR preference or the profile blob."""
    updated = get_auth_service().update_profile(db, account, body.model_dump(exclude_none=True))
    return AccountResponse.model_validate(updated)


@router.post("/sessions/validate", response_model=SessionResponse)
def validate_session(
    body: SessionValidateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SessionResponse:
    """Check that a session is open, belongs to the caller and has not outlived its maximum duration."""
    record = get_session_service().validate(db, body.session_id, body.session_token, user.claims.account_id)
    return SessionResponse(
        session_id=record.id,
        account_id=record.account_id,
        started_at=record.started_at,
        vr_mode=record.vr_mode,
    )


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
@limiter.limit("10/minute")
def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)) -> ForgotPasswordResponse:
    """Request a password reset. The reset link is logged to the server console."""
    settings = get_settings()
    throttle.get_rate_limiter().check(
        db,
        normalize_email(body.email),
        throttle.PASSWORD_RESET,
        settings.RESET_RATE_LIMIT,
        settings.RESET_RATE_WINDOW_SECONDS,
    )
    ticket = get_password_reset_service().request_for_email(db, body.email)

    if ticket is None:
        return ForgotPasswordResponse(message=RESET_REQUESTED_MESSAGE)

    base_url = str(request.base_url).rstrip("/")
    logger.info("PASSWORD RESET: %s/reset-password?token=%s", base_url, ticket.token)
    if settings.DEMO_MODE:
        return ForgotPasswordResponse(message=RESET_REQUESTED_MESSAGE, reset_token=ticket.token)
    return ForgotPasswordResponse(message=RESET_REQUESTED_MESSAGE)


@router.get("/reset-password", response_model=ResetTokenStatusResponse)
@limiter.limit("10/minute")
def check_reset_token(
    request: Request,
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> ResetTokenStatusResponse:
    """Check a reset token before showing the new-password form. The token is not used up."""
    account = get_password_reset_service().validate(db, token)
    return ResetTokenStatusResponse(valid=True, email=account.email)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("10/minute")
def reset_password(request: Request, body: ResetPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Set a new password with a one-time reset token. All open sessions are closed."""
    if body.new_password != body.confirm_password:
        raise InvalidInput("Passwords do not match")
    get_password_reset_service().redeem(db, body.token, body.new_password)
    return MessageResponse(message="Password reset successfully. You can now log in with your new password.")
