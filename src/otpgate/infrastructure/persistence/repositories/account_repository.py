"""Account repository: SQLAlchemy implementation of ``CredentialStore``.

Each call runs in its own session and commits before returning, so every
write is a single atomic UPDATE/INSERT. Compare-and-set updates put the
expected values into the UPDATE's WHERE clause and report a miss through the
affected row count.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from otpgate.core.logging import get_logger
from otpgate.domain.entities.account import Account, Role
from otpgate.domain.exceptions import DuplicateEmailError
from otpgate.domain.interfaces.credential_store import CredentialStore
from otpgate.infrastructure.persistence.models import AccountModel

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "email",
        "name",
        "password_hash",
        "roles",
        "otp_hash",
        "otp_expires_at",
        "refresh_token_hash",
    }
)


def _as_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_column_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert entity attribute values to column values.

    Raises:
        ValueError: If a field is unknown or not updatable.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown or immutable account fields: {sorted(unknown)}")

    values: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "roles":
            value = sorted(Role(role).value for role in value)
        elif key == "otp_expires_at":
            value = _as_utc(value)
        values[key] = value
    return values


class AccountRepository(CredentialStore):
    """Repository for account database operations."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository.

        Args:
            session_factory: Factory producing SQLAlchemy async sessions.
        """
        self._session_factory = session_factory

    @staticmethod
    def to_entity(model: AccountModel) -> Account:
        """Map a row to the domain entity."""
        return Account(
            id=model.id,
            email=model.email,
            name=model.name,
            password_hash=model.password_hash,
            roles=frozenset(Role(role) for role in model.roles),
            otp_hash=model.otp_hash,
            otp_expires_at=_as_utc(model.otp_expires_at),
            refresh_token_hash=model.refresh_token_hash,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )

    @staticmethod
    def to_model(account: Account) -> AccountModel:
        """Map the domain entity to a new row."""
        return AccountModel(
            id=account.id,
            email=account.email,
            name=account.name,
            password_hash=account.password_hash,
            roles=sorted(role.value for role in account.roles),
            otp_hash=account.otp_hash,
            otp_expires_at=_as_utc(account.otp_expires_at),
            refresh_token_hash=account.refresh_token_hash,
            created_at=_as_utc(account.created_at),
            updated_at=_as_utc(account.updated_at),
        )

    async def create(self, account: Account) -> str:
        """Create a new account.

        Args:
            account: Account entity to store.

        Returns:
            The account ID.

        Raises:
            DuplicateEmailError: If the email is already registered.
        """
        async with self._session_factory() as session:
            session.add(self.to_model(account))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if await self._email_exists(session, account.email):
                    raise DuplicateEmailError(account.email) from e
                raise
        return account.id

    async def find_by_id(self, account_id: str) -> Account | None:
        """Get an account by ID.

        Args:
            account_id: Account ID (UUID string).

        Returns:
            Account if found, None otherwise.
        """
        async with self._session_factory() as session:
            model = await session.get(AccountModel, account_id)
            return self.to_entity(model) if model is not None else None

    async def find_by_email(self, email: str) -> Account | None:
        """Get an account by exact email.

        Args:
            email: Email address.

        Returns:
            Account if found, None otherwise.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(AccountModel).where(AccountModel.email == email)
            )
            model = result.scalar_one_or_none()
            return self.to_entity(model) if model is not None else None

    async def list_accounts(self, offset: int = 0, limit: int = 100) -> list[Account]:
        """List accounts ordered by creation time.

        Args:
            offset: Number of accounts to skip.
            limit: Maximum number of accounts to return.

        Returns:
            Accounts in registration order (ties broken by ID).
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(AccountModel)
                .order_by(AccountModel.created_at, AccountModel.id)
                .offset(offset)
                .limit(limit)
            )
            return [self.to_entity(model) for model in result.scalars().all()]

    async def update_fields(self, account_id: str, changes: dict[str, Any]) -> Account | None:
        """Apply a partial update.

        Args:
            account_id: Account ID.
            changes: Entity attribute names mapped to new values.

        Returns:
            Updated account, or None if not found.
        """
        return await self.update_fields_if(account_id, {}, changes)

    async def update_fields_if(
        self,
        account_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Account | None:
        """Apply a partial update guarded by the current values of ``expected``.

        Args:
            account_id: Account ID.
            expected: Entity attribute names mapped to the values they must
                still hold. ``None`` matches NULL.
            changes: Entity attribute names mapped to new values.

        Returns:
            Updated account, or None if not found or a guard did not match.
        """
        if not changes:
            raise ValueError("At least one field must be changed")
        values = _to_column_values(changes)
        conditions = [
            getattr(AccountModel, key) == value
            for key, value in _to_column_values(expected).items()
        ]

        async with self._session_factory() as session:
            result = await session.execute(
                update(AccountModel)
                .where(AccountModel.id == account_id, *conditions)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                logger.debug(
                    "Account update matched no rows",
                    account_id=account_id,
                    guarded_fields=sorted(expected),
                )
                return None

            model = await session.get(AccountModel, account_id)
            await session.commit()
            return self.to_entity(model)

    @staticmethod
    async def _email_exists(session: AsyncSession, email: str) -> bool:
        result = await session.execute(
            select(AccountModel.id).where(AccountModel.email == email).limit(1)
        )
        return result.scalar_one_or_none() is not None
