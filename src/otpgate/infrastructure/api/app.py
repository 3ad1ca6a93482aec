"""FastAPI application factory and configuration.

The application is built by ``create_app`` rather than at import time, since
settings cannot load without a signing secret. Serve it with
``uvicorn --factory otpgate.infrastructure.api.app:create_app`` or
``otpgate serve``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from otpgate.core.config import get_settings
from otpgate.core.logging import (
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
    new_correlation_id,
)
from otpgate.domain.exceptions import (
    AccountNotFoundError,
    AuthError,
    ChallengeExpiredError,
    ConflictError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidProfileError,
    InvalidRefreshTokenError,
    InvalidRoleAssignmentError,
    NoActiveChallengeError,
    NotificationFailureError,
    PasswordReuseError,
    PermissionDeniedError,
)
from otpgate.infrastructure.persistence.database import close_database, init_database

logger = get_logger(__name__)

ERROR_STATUS_CODES: dict[type[AuthError], int] = {
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    NotificationFailureError: status.HTTP_502_BAD_GATEWAY,
    AccountNotFoundError: status.HTTP_404_NOT_FOUND,
    NoActiveChallengeError: status.HTTP_400_BAD_REQUEST,
    ChallengeExpiredError: status.HTTP_400_BAD_REQUEST,
    InvalidCodeError: status.HTTP_400_BAD_REQUEST,
    InvalidRefreshTokenError: status.HTTP_401_UNAUTHORIZED,
    PasswordReuseError: status.HTTP_400_BAD_REQUEST,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    InvalidRoleAssignmentError: status.HTTP_400_BAD_REQUEST,
    InvalidProfileError: status.HTTP_400_BAD_REQUEST,
}


def status_code_for(exc: AuthError) -> int:
    """Map a domain error to its HTTP status code."""
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control is yielded to the application during its lifetime.
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "Starting otpgate",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        email_provider=settings.email_provider,
    )

    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    yield

    logger.info("Shutting down otpgate")
    await close_database()
    logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Password + one-time-passcode login with rotating refresh tokens",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    register_health_check(app)
    register_routes(app)
    register_exception_handlers(app)
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    """Register health check endpoints.

    Args:
        app: FastAPI application instance.
    """

    @app.get("/health", tags=["health"])
    async def health_check():
        """Report liveness and database connectivity."""
        from otpgate.infrastructure.persistence.database import get_db_manager

        settings = get_settings()
        db_healthy = await get_db_manager().check_connection()
        content = {
            "status": "healthy" if db_healthy else "degraded",
            "service": settings.app_name,
            "version": settings.app_version,
            "database": "connected" if db_healthy else "disconnected",
        }
        if db_healthy:
            return content
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=content)


def register_routes(app: FastAPI) -> None:
    """Register API routes.

    Args:
        app: FastAPI application instance.
    """
    from otpgate.infrastructure.api.routes import accounts_router, auth_router

    settings = get_settings()

    app.include_router(auth_router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
    app.include_router(
        accounts_router, prefix=f"{settings.api_prefix}/accounts", tags=["accounts"]
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        """Render a domain error as ``{"error": code, "message": text}``."""
        status_code = status_code_for(exc)
        headers = None
        if status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.code, "message": exc.message},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred",
            },
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware.

    Args:
        app: FastAPI application instance.
    """

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log each request and propagate a correlation ID."""
        correlation_id = request.headers.get("X-Correlation-ID") or new_correlation_id()
        bind_correlation_id(correlation_id)

        logger.info("Request started", method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            clear_context()
