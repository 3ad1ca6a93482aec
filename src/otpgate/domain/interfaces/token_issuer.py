"""Abstract contract for signed token issuance."""

from abc import ABC, abstractmethod
from typing import Any

from otpgate.domain.entities.auth_results import TokenPair


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class JWTError(Exception):
    """Base exception for token-related errors."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class TokenIssuer(ABC):
    """Mints and checks signed access/refresh tokens."""

    @abstractmethod
    def issue(self, subject: str, email: str, name: str) -> TokenPair:
        """Mint an access token and a refresh token carrying the same claims."""

    @abstractmethod
    def verify(self, token: str, token_type: str | None = None) -> dict[str, Any]:
        """Check signature and expiry and return the claims.

        Args:
            token: The encoded token.
            token_type: If given, the ``type`` claim must equal it.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is malformed, forged or of the wrong type.
        """

    @abstractmethod
    def decode(self, token: str) -> dict[str, Any]:
        """Extract claims without verifying signature or expiry.

        Raises:
            InvalidTokenError: If the token cannot be parsed at all.
        """
