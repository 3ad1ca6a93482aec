"""JWT token service.

Mints and validates the access/refresh token pair. Both tokens are HS256
signed with one static secret injected at construction and carry the same
identity claims (``sub``, ``email``, ``name``); they differ in lifetime and
in their ``type`` claim.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from otpgate.domain.entities.auth_results import TokenPair
from otpgate.domain.interfaces.token_issuer import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    JWTError,  # noqa: F401
    TokenExpiredError,
    TokenIssuer,
)


class JWTService(TokenIssuer):
    """Service for creating and validating JWT tokens."""

    ALGORITHM = "HS256"
    ISSUER = "otpgate"

    def __init__(
        self,
        secret_key: str,
        access_token_ttl: timedelta = timedelta(minutes=15),
        refresh_token_ttl: timedelta = timedelta(days=7),
    ) -> None:
        """Initialize the JWT service.

        Args:
            secret_key: Secret key for signing tokens. Required; there is no
                built-in fallback.
            access_token_ttl: Lifetime of access tokens.
            refresh_token_ttl: Lifetime of refresh tokens.
        """
        if not secret_key:
            raise ValueError("A signing secret is required")
        self._secret_key = secret_key
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl

    @classmethod
    def from_settings(cls, settings: Any) -> "JWTService":
        """Build the service from application settings."""
        return cls(
            secret_key=settings.secret_key,
            access_token_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_token_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    def _encode(
        self,
        subject: str,
        email: str,
        name: str,
        token_type: str,
        expires_delta: timedelta,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "iss": self.ISSUER,
            "sub": subject,
            "iat": now,
            "exp": now + expires_delta,
            # Unique per token so two pairs minted in the same second differ.
            "jti": str(uuid.uuid4()),
            "email": email,
            "name": name,
            "type": token_type,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.ALGORITHM)

    def create_access_token(
        self,
        subject: str,
        email: str,
        name: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create an access token.

        Args:
            subject: The account ID.
            email: The account email.
            name: The account display name.
            expires_delta: Custom expiration time. Defaults to the access TTL.

        Returns:
            Encoded JWT access token.
        """
        return self._encode(
            subject, email, name, ACCESS_TOKEN_TYPE, expires_delta or self.access_token_ttl
        )

    def create_refresh_token(
        self,
        subject: str,
        email: str,
        name: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a refresh token.

        Args:
            subject: The account ID.
            email: The account email.
            name: The account display name.
            expires_delta: Custom expiration time. Defaults to the refresh TTL.

        Returns:
            Encoded JWT refresh token.
        """
        return self._encode(
            subject, email, name, REFRESH_TOKEN_TYPE, expires_delta or self.refresh_token_ttl
        )

    def issue(self, subject: str, email: str, name: str) -> TokenPair:
        """Mint a fresh access/refresh token pair."""
        return TokenPair(
            access_token=self.create_access_token(subject, email, name),
            refresh_token=self.create_refresh_token(subject, email, name),
            expires_in=self.get_expires_in(),
        )

    def verify(self, token: str, token_type: str | None = None) -> dict[str, Any]:
        """Decode and validate a JWT token.

        Args:
            token: The encoded JWT token.
            token_type: Required value of the ``type`` claim, if any.

        Returns:
            Decoded token payload.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or of the wrong type.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.ALGORITHM],
                issuer=self.ISSUER,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

        if token_type is not None and payload.get("type") != token_type:
            raise InvalidTokenError(f"Expected a {token_type} token")
        return payload

    def decode(self, token: str) -> dict[str, Any]:
        """Extract claims without verifying signature or expiry.

        Only used to find the subject of a refresh token before the
        verify-and-rotate step; never trust these claims on their own.

        Raises:
            InvalidTokenError: If the token cannot be parsed.
        """
        try:
            return jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Malformed token") from e

    def get_expires_in(self) -> int:
        """Get the access token lifetime in seconds."""
        return int(self.access_token_ttl.total_seconds())
