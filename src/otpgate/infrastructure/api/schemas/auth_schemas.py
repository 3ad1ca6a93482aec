"""Pydantic schemas for authentication endpoints."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field
from pydantic.networks import validate_email


def _check_email_address(value: str) -> str:
    """Validate email syntax but keep the address exactly as given.

    Accounts are keyed on the exact address, so the normalized form that
    email-validator computes is only used for the check.
    """
    _, normalized = validate_email(value)
    if normalized.casefold() != value.casefold():
        raise ValueError("value must be a bare email address")
    return value


EmailAddress = Annotated[str, AfterValidator(_check_email_address)]


class RegisterRequest(BaseModel):
    """Request body for account registration."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailAddress = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, description="Account password")


class LoginRequest(BaseModel):
    """Request body for the first login step."""

    email: EmailAddress = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, description="Account password")


class VerifyOtpRequest(BaseModel):
    """Request body for the second login step."""

    email: EmailAddress = Field(..., description="Account email address")
    code: str = Field(..., min_length=1, max_length=16, description="One-time passcode")


class ResendOtpRequest(BaseModel):
    """Request body for requesting a fresh passcode."""

    email: EmailAddress = Field(..., description="Account email address")


class RefreshRequest(BaseModel):
    """Request body for token rotation."""

    refresh_token: str = Field(..., min_length=1, description="Current refresh token")


class ChangePasswordRequest(BaseModel):
    """Request body for changing the caller's password."""

    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., min_length=1, description="New password")


class MessageResponse(BaseModel):
    """Acknowledgement for operations that do not issue tokens."""

    message: str = Field(..., description="Human-readable outcome")
    email: str | None = Field(None, description="Email the operation applied to")


class TokenResponse(BaseModel):
    """Response for a successful passcode verification or refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field("bearer", description="Authorization scheme")
    expires_in: int = Field(..., description="Access token expiration time in seconds")


class ProfileResponse(BaseModel):
    """Public account information."""

    id: str = Field(..., description="Account ID")
    email: str = Field(..., description="Account email address")
    name: str = Field(..., description="Display name")
    roles: list[str] = Field(..., description="Roles held by the account")
    created_at: datetime = Field(..., description="When the account was created")

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """Body returned for every domain error."""

    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
