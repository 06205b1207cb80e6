"""Pydantic schemas for authentication endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class DeviceInfoIn(BaseModel):
    device_type: str | None = Field(default=None, max_length=64)
    browser_info: str | None = Field(default=None, max_length=256)


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    role: str = "student"
    vr_enabled: bool = False


class LoginRequest(BaseModel):
    email: str
    password: str
    device_info: DeviceInfoIn = Field(default_factory=DeviceInfoIn)
    vr_enabled: bool = False


class LogoutRequest(BaseModel):
    session_token: str | None = None


class SessionValidateRequest(BaseModel):
    session_id: int
    session_token: str


class ProfileUpdateRequest(BaseModel):
    name: str | None = None
    vr_enabled: bool | None = None
    profile: dict[str, Any] | None = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str
    confirm_password: str


class AccountResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str
    vr_enabled: bool
    profile: dict[str, Any]
    created_at: datetime
    last_login_at: datetime | None

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    account_id: int
    message: str


class LoginResponse(BaseModel):
    token: str
    session_id: int
    session_token: str
    expires_in: int
    user: AccountResponse


class VerifyResponse(BaseModel):
    valid: bool
    user: AccountResponse


class RefreshResponse(BaseModel):
    token: str
    expires_in: int


class SessionResponse(BaseModel):
    session_id: int
    account_id: int
    started_at: datetime
    vr_mode: bool


class ForgotPasswordResponse(BaseModel):
    message: str
    reset_token: str | None = None


class ResetTokenStatusResponse(BaseModel):
    valid: bool
    email: str


class MessageResponse(BaseModel):
    message: str
