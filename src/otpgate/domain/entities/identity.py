"""Authenticated identity passed explicitly into privileged operations."""

from dataclasses import dataclass

from otpgate.domain.entities.account import Account, Role


@dataclass(frozen=True)
class Identity:
    """The caller on whose behalf an operation runs.

    Attributes:
        subject: Account ID the access token was issued for.
        email: Account email.
        name: Account display name.
        roles: Roles currently held by the account.
    """

    subject: str
    email: str
    name: str
    roles: frozenset[Role]

    @classmethod
    def from_account(cls, account: Account) -> "Identity":
        return cls(
            subject=account.id,
            email=account.email,
            name=account.name,
            roles=frozenset(account.roles),
        )

    def has_role(self, *roles: Role) -> bool:
        return any(role in self.roles for role in roles)
