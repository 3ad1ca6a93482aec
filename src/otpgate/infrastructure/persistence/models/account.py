"""SQLAlchemy model for the accounts table."""

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from otpgate.infrastructure.persistence.database import Base


class AccountModel(Base):
    """SQLAlchemy model for the accounts table.

    Attributes:
        id: Primary key (UUID string).
        email: Unique login email (case-sensitive).
        name: Display name.
        password_hash: Argon2 hash of the password.
        roles: JSON list of role names.
        otp_hash: Argon2 hash of the outstanding passcode.
        otp_expires_at: Expiry of the outstanding passcode.
        refresh_token_hash: Argon2 hash of the current refresh token.
        created_at: Timestamp when the account was created.
        updated_at: Timestamp when the account was last updated.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Account ID (UUID)",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Login email address",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name",
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Hashed password (argon2)",
    )
    roles: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=lambda: ["user"],
        comment="Role names held by the account",
    )
    otp_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Hashed outstanding one-time passcode",
    )
    otp_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Expiry of the outstanding one-time passcode",
    )
    refresh_token_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Hashed most recently issued refresh token",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "(otp_hash IS NULL AND otp_expires_at IS NULL)"
            " OR (otp_hash IS NOT NULL AND otp_expires_at IS NOT NULL)",
            name="ck_accounts_otp_pair",
        ),
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, email={self.email})>"
