"""FastAPI dependencies for wiring the orchestrator and authenticating callers."""

from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Header, Request

from otpgate.core.config import Settings, get_settings
from otpgate.core.logging import get_logger
from otpgate.domain.entities.account import Role
from otpgate.domain.entities.identity import Identity
from otpgate.domain.exceptions import InvalidCredentialsError
from otpgate.domain.services import AuthService, OtpGenerator, require_roles
from otpgate.infrastructure.auth import JWTService, secret_hasher
from otpgate.infrastructure.persistence.database import get_db_manager
from otpgate.infrastructure.persistence.repositories import AccountRepository
from otpgate.infrastructure.services.notifier import EmailNotifier

logger = get_logger(__name__)


def build_auth_service(settings: Settings | None = None) -> AuthService:
    """Assemble the orchestrator from configured infrastructure.

    Args:
        settings: Optional settings instance. If not provided, will load from environment.
    """
    if settings is None:
        settings = get_settings()

    return AuthService(
        store=AccountRepository(get_db_manager().session_factory),
        hasher=secret_hasher,
        token_issuer=JWTService.from_settings(settings),
        notifier=EmailNotifier.from_settings(settings),
        otp_generator=OtpGenerator(ttl=timedelta(minutes=settings.otp_expire_minutes)),
    )


def get_auth_service(request: Request) -> AuthService:
    """Get the orchestrator from app state, building it on first use."""
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = build_auth_service()
        request.app.state.auth_service = service
    return service


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from a ``Bearer <token>`` header value.

    Raises:
        InvalidCredentialsError: If the header is missing or malformed.
    """
    if authorization is None:
        logger.info("Authentication failed: missing Authorization header")
        raise InvalidCredentialsError("Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.info("Authentication failed: invalid Authorization header format")
        raise InvalidCredentialsError()
    return parts[1]


async def get_current_identity(
    service: AuthServiceDep,
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """Resolve the caller from the Authorization header.

    Raises:
        InvalidCredentialsError: If the token is missing, invalid or expired.
    """
    return await service.authenticate(extract_bearer_token(authorization))


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


async def require_admin(identity: CurrentIdentity) -> Identity:
    """Ensure the caller holds the admin role.

    Raises:
        PermissionDeniedError: If the caller is not an admin.
    """
    return require_roles(identity, Role.ADMIN)


AdminIdentity = Annotated[Identity, Depends(require_admin)]
