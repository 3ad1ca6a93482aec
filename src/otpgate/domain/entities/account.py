"""Account entity: identity plus credential record.

An account owns its password hash, the outstanding one-time-passcode
challenge (if any), the hash of its single valid refresh token and its
role set. Plaintext secrets never live on this entity.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from otpgate.domain.entities.auth_results import AccountProfile


class Role(str, Enum):
    """Roles an account can hold."""

    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


DEFAULT_ROLES: frozenset[Role] = frozenset({Role.USER})


@dataclass
class Account:
    """Account entity.

    Attributes:
        id: Opaque unique identifier (UUID string), immutable.
        email: Login key, unique across accounts (case-sensitive).
        name: Display name.
        password_hash: Salted one-way hash of the current password.
        roles: Non-empty role set, defaults to {user}.
        otp_hash: Hash of the outstanding passcode, set together with otp_expires_at.
        otp_expires_at: Expiry of the outstanding passcode (UTC).
        refresh_token_hash: Hash of the most recently issued refresh token.
        created_at: When the account was registered.
        updated_at: When the record was last written.
    """

    id: str
    email: str
    name: str
    password_hash: str
    roles: frozenset[Role] = DEFAULT_ROLES
    otp_hash: str | None = None
    otp_expires_at: datetime | None = None
    refresh_token_hash: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        """Validate account invariants after initialization."""
        if not self.id:
            raise ValueError("Account ID is required")
        if not self.email:
            raise ValueError("Email is required")
        if not self.password_hash:
            raise ValueError("Password hash is required")
        self.roles = frozenset(Role(role) for role in self.roles)
        if not self.roles:
            raise ValueError("Account must hold at least one role")
        if (self.otp_hash is None) != (self.otp_expires_at is None):
            raise ValueError("otp_hash and otp_expires_at must be set or cleared together")

    @property
    def has_pending_challenge(self) -> bool:
        """Whether a passcode challenge is outstanding (expired or not)."""
        return self.otp_hash is not None and self.otp_expires_at is not None

    def challenge_expired(self, now: datetime) -> bool:
        """Check whether the outstanding challenge has passed its expiry.

        Args:
            now: Current instant (timezone-aware).

        Returns:
            True if a challenge exists and ``now`` is past its expiry.
        """
        return self.otp_expires_at is not None and now > self.otp_expires_at

    def has_role(self, *roles: Role) -> bool:
        """Check whether the account holds any of the given roles."""
        return any(role in self.roles for role in roles)

    def to_profile(self) -> AccountProfile:
        """Public view of the account without any hashes."""
        return AccountProfile(
            id=self.id,
            email=self.email,
            name=self.name,
            roles=tuple(sorted(role.value for role in self.roles)),
            created_at=self.created_at,
        )
