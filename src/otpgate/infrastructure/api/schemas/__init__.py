"""Pydantic schemas for API request/response validation."""

from otpgate.infrastructure.api.schemas.account_schemas import (
    AccountListResponse,
    AssignRolesRequest,
    UpdateProfileRequest,
)
from otpgate.infrastructure.api.schemas.auth_schemas import (
    ChangePasswordRequest,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RefreshRequest,
    RegisterRequest,
    ResendOtpRequest,
    TokenResponse,
    VerifyOtpRequest,
)

__all__ = [
    "AccountListResponse",
    "AssignRolesRequest",
    "ChangePasswordRequest",
    "ErrorResponse",
    "LoginRequest",
    "MessageResponse",
    "ProfileResponse",
    "RefreshRequest",
    "RegisterRequest",
    "ResendOtpRequest",
    "TokenResponse",
    "UpdateProfileRequest",
    "VerifyOtpRequest",
]
