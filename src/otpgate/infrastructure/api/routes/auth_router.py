"""Authentication API routes.

Two-step login: ``/login`` checks the password and emails a passcode,
``/verify-otp`` exchanges the passcode for an access/refresh token pair.
Domain errors propagate to the app-level handler, which maps them to
status codes.
"""

from fastapi import APIRouter, status

from otpgate.domain.entities.auth_results import Acknowledgement, TokenPair
from otpgate.infrastructure.api.dependencies import AuthServiceDep, CurrentIdentity
from otpgate.infrastructure.api.schemas import (
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

router = APIRouter()


def _message(ack: Acknowledgement) -> MessageResponse:
    return MessageResponse(message=ack.message, email=ack.email)


def _tokens(pair: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        502: {"model": ErrorResponse, "description": "Passcode could not be delivered"},
    },
)
async def register(request: RegisterRequest, service: AuthServiceDep) -> MessageResponse:
    """Register a new account and email its first one-time passcode."""
    ack = await service.register(request.name, request.email, request.password)
    return _message(ack)


@router.post(
    "/login",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        502: {"model": ErrorResponse, "description": "Passcode could not be delivered"},
    },
)
async def login(request: LoginRequest, service: AuthServiceDep) -> MessageResponse:
    """Check email and password, then email a one-time passcode."""
    ack = await service.login(request.email, request.password)
    return _message(ack)


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No pending, expired or wrong passcode"},
        404: {"model": ErrorResponse, "description": "Account not found"},
    },
)
async def verify_otp(request: VerifyOtpRequest, service: AuthServiceDep) -> TokenResponse:
    """Exchange a one-time passcode for an access/refresh token pair."""
    pair = await service.verify_otp(request.email, request.code)
    return _tokens(pair)


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Account not found"},
        502: {"model": ErrorResponse, "description": "Passcode could not be delivered"},
    },
)
async def resend_otp(request: ResendOtpRequest, service: AuthServiceDep) -> MessageResponse:
    """Replace any pending passcode with a new one."""
    ack = await service.resend_otp(request.email)
    return _message(ack)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid refresh token"}},
)
async def refresh(request: RefreshRequest, service: AuthServiceDep) -> TokenResponse:
    """Rotate the refresh token and issue a new pair.

    The presented token stops working as soon as this call succeeds.
    """
    pair = await service.refresh_with_token(request.refresh_token)
    return _tokens(pair)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
async def logout(identity: CurrentIdentity, service: AuthServiceDep) -> MessageResponse:
    """Revoke the caller's refresh token."""
    ack = await service.logout(identity.subject)
    return _message(ack)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "New password equals the current one"},
        401: {"model": ErrorResponse, "description": "Wrong current password"},
    },
)
async def change_password(
    request: ChangePasswordRequest,
    identity: CurrentIdentity,
    service: AuthServiceDep,
) -> MessageResponse:
    """Change the caller's password."""
    ack = await service.change_password(
        identity.subject, request.current_password, request.new_password
    )
    return _message(ack)


@router.get(
    "/me",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
async def me(identity: CurrentIdentity, service: AuthServiceDep) -> ProfileResponse:
    """Return the caller's profile."""
    profile = await service.get_profile(identity.subject)
    return ProfileResponse.model_validate(profile)
