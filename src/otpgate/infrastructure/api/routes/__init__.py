"""API routes for otpgate."""

from otpgate.infrastructure.api.routes.accounts_router import router as accounts_router
from otpgate.infrastructure.api.routes.auth_router import router as auth_router

__all__ = ["accounts_router", "auth_router"]
