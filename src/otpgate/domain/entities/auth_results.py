"""Values returned by the authentication orchestrator."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh token issued together.

    Attributes:
        access_token: Short-lived signed token for access-controlled calls.
        refresh_token: Long-lived signed token exchanged for a new pair.
        expires_in: Access token lifetime in seconds.
        token_type: Authorization scheme the access token is used with.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"

    def __repr__(self) -> str:
        return f"TokenPair(access_token='***', refresh_token='***', expires_in={self.expires_in})"


@dataclass(frozen=True)
class Acknowledgement:
    """Acknowledgement for operations that do not issue tokens."""

    message: str
    email: str | None = None


@dataclass(frozen=True)
class AccountProfile:
    """Public view of an account; carries no credential material."""

    id: str
    email: str
    name: str
    roles: tuple[str, ...]
    created_at: datetime
