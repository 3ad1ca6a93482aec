"""Repositories for otpgate persistence."""

from otpgate.infrastructure.persistence.repositories.account_repository import (
    AccountRepository,
)

__all__ = ["AccountRepository"]
