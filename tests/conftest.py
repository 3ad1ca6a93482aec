"""Pytest configuration for all tests."""

import os

# Settings refuse to load without a signing secret; set it before any
# otpgate module reads the environment.
os.environ.setdefault("OTPGATE_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("OTPGATE_ENVIRONMENT", "testing")
os.environ.setdefault("OTPGATE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OTPGATE_EMAIL_PROVIDER", "console")
os.environ.setdefault("OTPGATE_LOG_FORMAT", "console")

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from argon2 import PasswordHasher
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from otpgate.domain.interfaces.notifier import Notifier
from otpgate.domain.services import AuthService, OtpGenerator
from otpgate.infrastructure.auth import Argon2SecretHasher, JWTService
from otpgate.infrastructure.persistence.database import Base
from otpgate.infrastructure.persistence.repositories import AccountRepository

TEST_SECRET_KEY = "unit-test-signing-secret-0123456789abcdef"


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    """Notifier double that remembers what it was asked to send."""

    def __init__(self) -> None:
        self.otp_codes: dict[str, list[str]] = {}
        self.password_changed: list[str] = []
        self.fail_otp = False
        self.fail_password_changed = False

    async def send_otp(self, email: str, name: str, code: str) -> bool:
        if self.fail_otp:
            return False
        self.otp_codes.setdefault(email, []).append(code)
        return True

    async def send_password_changed(self, email: str, name: str) -> bool:
        if self.fail_password_changed:
            raise ConnectionError("mail relay unavailable")
        self.password_changed.append(email)
        return True

    def last_code(self, email: str) -> str:
        return self.otp_codes[email][-1]


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """In-memory SQLite database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def repository(session_factory) -> AccountRepository:
    return AccountRepository(session_factory)


@pytest.fixture
def hasher() -> Argon2SecretHasher:
    """Argon2 with minimal cost parameters so tests stay fast."""
    return Argon2SecretHasher(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def signing_secret() -> str:
    return TEST_SECRET_KEY


@pytest.fixture
def jwt_service(signing_secret) -> JWTService:
    return JWTService(secret_key=signing_secret)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_service(repository, hasher, jwt_service, notifier, clock) -> AuthService:
    return AuthService(
        store=repository,
        hasher=hasher,
        token_issuer=jwt_service,
        notifier=notifier,
        otp_generator=OtpGenerator(),
        clock=clock,
    )


@pytest_asyncio.fixture
async def file_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """File-backed SQLite with one connection per session.

    Needed for concurrency tests: with ``StaticPool`` every session shares a
    single connection, so one session's rollback would undo another's write.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'otpgate.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def concurrent_auth_service(file_session_factory, hasher, jwt_service, notifier, clock) -> AuthService:
    return AuthService(
        store=AccountRepository(file_session_factory),
        hasher=hasher,
        token_issuer=jwt_service,
        notifier=notifier,
        clock=clock,
    )
