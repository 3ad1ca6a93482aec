"""Collaborator contracts the orchestrator is constructed with."""

from otpgate.domain.interfaces.credential_store import CredentialStore
from otpgate.domain.interfaces.notifier import Notifier
from otpgate.domain.interfaces.secret_hasher import SecretHasher
from otpgate.domain.interfaces.token_issuer import (
    InvalidTokenError,
    JWTError,
    TokenExpiredError,
    TokenIssuer,
)

__all__ = [
    "CredentialStore",
    "Notifier",
    "SecretHasher",
    "InvalidTokenError",
    "JWTError",
    "TokenExpiredError",
    "TokenIssuer",
]
