"""Authentication infrastructure components.

This module provides secret hashing and JWT token services.
"""

from otpgate.infrastructure.auth.jwt_service import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    JWTError,
    JWTService,
    TokenExpiredError,
)
from otpgate.infrastructure.auth.secret_hasher import (
    Argon2SecretHasher,
    secret_hasher,
)

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "Argon2SecretHasher",
    "InvalidTokenError",
    "JWTError",
    "JWTService",
    "REFRESH_TOKEN_TYPE",
    "TokenExpiredError",
    "secret_hasher",
]
