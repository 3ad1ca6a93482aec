"""Abstract contract for the durable account record store."""

from abc import ABC, abstractmethod
from typing import Any

from otpgate.domain.entities.account import Account


class CredentialStore(ABC):
    """Store of account records reachable by id and by unique email.

    ``changes`` and ``expected`` mappings are keyed by ``Account`` attribute
    names. Implementations must apply only the given fields and leave all
    others untouched, and every write must be a single atomic operation.
    """

    @abstractmethod
    async def create(self, account: Account) -> str:
        """Persist a new account.

        Args:
            account: The account to store.

        Returns:
            The account ID.

        Raises:
            DuplicateEmailError: If the email is already taken.
        """

    @abstractmethod
    async def find_by_id(self, account_id: str) -> Account | None:
        """Get an account by ID, or None if it does not exist."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Account | None:
        """Get an account by email (exact match), or None."""

    @abstractmethod
    async def list_accounts(self, offset: int = 0, limit: int = 100) -> list[Account]:
        """List accounts, oldest first.

        Args:
            offset: Number of accounts to skip.
            limit: Maximum number of accounts to return.
        """

    @abstractmethod
    async def update_fields(self, account_id: str, changes: dict[str, Any]) -> Account | None:
        """Apply ``changes`` to an account.

        Returns:
            The updated account, or None if the account does not exist.
        """

    @abstractmethod
    async def update_fields_if(
        self,
        account_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Account | None:
        """Apply ``changes`` only if the stored values still equal ``expected``.

        This is a compare-and-set: the comparison and the write happen in one
        atomic statement, so of two concurrent callers expecting the same
        value at most one succeeds.

        Returns:
            The updated account, or None if the account does not exist or
            any expected value no longer matches.
        """
