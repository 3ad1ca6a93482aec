"""SQLAlchemy models for otpgate."""

from otpgate.infrastructure.persistence.models.account import AccountModel

__all__ = ["AccountModel"]
