"""Unit tests for AuthService.

Runs the orchestrator against the real SQLAlchemy repository on in-memory
SQLite, a fast Argon2 hasher and a recording notifier.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import jwt
import pytest

from otpgate.domain.entities import Identity, Role
from otpgate.domain.exceptions import (
    AccountNotFoundError,
    ChallengeExpiredError,
    ConflictError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidProfileError,
    InvalidRefreshTokenError,
    InvalidRoleAssignmentError,
    NoActiveChallengeError,
    NotificationFailureError,
    PasswordReuseError,
    PermissionDeniedError,
)
from otpgate.domain.services import AuthService

EMAIL = "alice@example.com"
PASSWORD = "correct horse battery staple"


async def register(service: AuthService, email: str = EMAIL, name: str = "Alice") -> None:
    await service.register(name, email, PASSWORD)


async def login_fully(service: AuthService, notifier, email: str = EMAIL):
    """Register, verify the registration code and return (account_id, tokens)."""
    await register(service, email)
    tokens = await service.verify_otp(email, notifier.last_code(email))
    account = await service.store.find_by_email(email)
    return account.id, tokens


class TestRegister:
    @pytest.mark.asyncio
    async def test_creates_account_with_pending_challenge(self, auth_service, repository, notifier, clock):
        ack = await auth_service.register("Alice", EMAIL, PASSWORD)

        assert ack.email == EMAIL
        account = await repository.find_by_email(EMAIL)
        assert account is not None
        assert account.roles == frozenset({Role.USER})
        assert account.refresh_token_hash is None
        assert account.otp_expires_at == clock.now + timedelta(minutes=5)
        assert len(notifier.otp_codes[EMAIL]) == 1

    @pytest.mark.asyncio
    async def test_secrets_are_hashed_at_rest(self, auth_service, repository, notifier, hasher):
        await register(auth_service)
        account = await repository.find_by_email(EMAIL)
        code = notifier.last_code(EMAIL)

        assert account.password_hash != PASSWORD
        assert account.otp_hash != code
        assert hasher.verify(PASSWORD, account.password_hash)
        assert hasher.verify(code, account.otp_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, auth_service, repository):
        await register(auth_service)
        before = await repository.find_by_email(EMAIL)

        with pytest.raises(ConflictError):
            await auth_service.register("Other", EMAIL, "another password")

        assert await repository.find_by_email(EMAIL) == before

    @pytest.mark.asyncio
    async def test_email_is_case_sensitive(self, auth_service, repository):
        await register(auth_service)
        await register(auth_service, email="Alice@example.com")
        assert await repository.find_by_email("Alice@example.com") is not None

    @pytest.mark.asyncio
    async def test_concurrent_registrations_create_one_account(self, concurrent_auth_service):
        service = concurrent_auth_service
        results = await asyncio.gather(
            service.register("A", EMAIL, PASSWORD),
            service.register("B", EMAIL, PASSWORD),
            return_exceptions=True,
        )
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(conflicts) == 1

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_account(self, auth_service, repository, notifier):
        notifier.fail_otp = True

        with pytest.raises(NotificationFailureError):
            await register(auth_service)

        account = await repository.find_by_email(EMAIL)
        assert account is not None
        assert account.has_pending_challenge

    @pytest.mark.asyncio
    async def test_notifier_exception_is_notification_failure(self, auth_service):
        auth_service.notifier = AsyncMock()
        auth_service.notifier.send_otp.side_effect = ConnectionError("smtp down")

        with pytest.raises(NotificationFailureError):
            await register(auth_service)


class TestLogin:
    @pytest.mark.asyncio
    async def test_sends_new_code(self, auth_service, notifier):
        await register(auth_service)
        ack = await auth_service.login(EMAIL, PASSWORD)

        assert ack.email == EMAIL
        assert len(notifier.otp_codes[EMAIL]) == 2

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_fail_alike(self, auth_service):
        await register(auth_service)

        with pytest.raises(InvalidCredentialsError) as unknown:
            await auth_service.login("nobody@example.com", PASSWORD)
        with pytest.raises(InvalidCredentialsError) as wrong:
            await auth_service.login(EMAIL, "wrong password")

        assert unknown.value.message == wrong.value.message

    @pytest.mark.asyncio
    async def test_unknown_email_still_verifies_a_hash(self, auth_service):
        calls = []
        original = auth_service.hasher.verify

        def spy(secret, digest):
            calls.append(digest)
            return original(secret, digest)

        auth_service.hasher.verify = spy
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("nobody@example.com", PASSWORD)
        assert calls == [auth_service._dummy_hash]

    @pytest.mark.asyncio
    async def test_login_replaces_previous_challenge(self, auth_service, notifier):
        await register(auth_service)
        first = notifier.last_code(EMAIL)
        await auth_service.login(EMAIL, PASSWORD)
        second = notifier.last_code(EMAIL)

        if first != second:
            with pytest.raises(InvalidCodeError):
                await auth_service.verify_otp(EMAIL, first)
        tokens = await auth_service.verify_otp(EMAIL, second)
        assert tokens.access_token

    @pytest.mark.asyncio
    async def test_sets_fresh_expiry(self, auth_service, repository, clock):
        await register(auth_service)
        clock.advance(minutes=2)

        await auth_service.login(EMAIL, PASSWORD)

        account = await repository.find_by_email(EMAIL)
        assert account.otp_expires_at == clock.now + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_login_keeps_existing_refresh_token(self, auth_service, notifier, repository):
        account_id, tokens = await login_fully(auth_service, notifier)
        await auth_service.login(EMAIL, PASSWORD)

        refreshed = await auth_service.refresh(account_id, tokens.refresh_token)
        assert refreshed.refresh_token != tokens.refresh_token

    @pytest.mark.asyncio
    async def test_notification_failure(self, auth_service, notifier):
        await register(auth_service)
        notifier.fail_otp = True
        with pytest.raises(NotificationFailureError):
            await auth_service.login(EMAIL, PASSWORD)


class TestVerifyOtp:
    @pytest.mark.asyncio
    async def test_issues_tokens_and_clears_challenge(self, auth_service, notifier, repository, jwt_service, hasher):
        await register(auth_service)
        tokens = await auth_service.verify_otp(EMAIL, notifier.last_code(EMAIL))

        account = await repository.find_by_email(EMAIL)
        assert not account.has_pending_challenge
        assert hasher.verify(tokens.refresh_token, account.refresh_token_hash)
        assert tokens.expires_in == 15 * 60
        assert tokens.token_type == "bearer"

        claims = jwt_service.verify(tokens.access_token, "access")
        assert claims["sub"] == account.id
        assert claims["email"] == EMAIL
        assert claims["name"] == "Alice"

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, auth_service, notifier):
        await register(auth_service)
        code = notifier.last_code(EMAIL)
        await auth_service.verify_otp(EMAIL, code)

        with pytest.raises(NoActiveChallengeError):
            await auth_service.verify_otp(EMAIL, code)

    @pytest.mark.asyncio
    async def test_unknown_account(self, auth_service):
        with pytest.raises(AccountNotFoundError):
            await auth_service.verify_otp("nobody@example.com", "123456")

    @pytest.mark.asyncio
    async def test_wrong_code(self, auth_service, notifier):
        await register(auth_service)
        code = notifier.last_code(EMAIL)
        wrong = "100000" if code != "100000" else "100001"

        with pytest.raises(InvalidCodeError):
            await auth_service.verify_otp(EMAIL, wrong)
        # A wrong guess does not consume the challenge
        assert await auth_service.verify_otp(EMAIL, code)

    @pytest.mark.asyncio
    async def test_valid_until_expiry_instant(self, auth_service, notifier, clock):
        await register(auth_service)
        clock.advance(minutes=5)
        assert await auth_service.verify_otp(EMAIL, notifier.last_code(EMAIL))

    @pytest.mark.asyncio
    async def test_expired_challenge(self, auth_service, notifier, clock):
        await register(auth_service)
        clock.advance(minutes=5, seconds=1)

        with pytest.raises(ChallengeExpiredError):
            await auth_service.verify_otp(EMAIL, notifier.last_code(EMAIL))

    @pytest.mark.asyncio
    async def test_expiry_checked_before_code(self, auth_service, clock):
        await register(auth_service)
        clock.advance(minutes=6)

        with pytest.raises(ChallengeExpiredError):
            await auth_service.verify_otp(EMAIL, "not-the-code")

    @pytest.mark.asyncio
    async def test_resend_after_expiry_recovers(self, auth_service, notifier, clock):
        await register(auth_service)
        clock.advance(minutes=10)
        await auth_service.resend_otp(EMAIL)

        assert await auth_service.verify_otp(EMAIL, notifier.last_code(EMAIL))

    @pytest.mark.asyncio
    async def test_concurrent_verifications_have_one_winner(self, concurrent_auth_service, notifier):
        service = concurrent_auth_service
        await register(service)
        code = notifier.last_code(EMAIL)

        results = await asyncio.gather(
            service.verify_otp(EMAIL, code),
            service.verify_otp(EMAIL, code),
            return_exceptions=True,
        )
        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(e, (NoActiveChallengeError, InvalidCodeError)) for e in losers)

    @pytest.mark.asyncio
    async def test_superseded_challenge_reports_invalid_code(self, auth_service, notifier, repository, hasher):
        await register(auth_service)
        code = notifier.last_code(EMAIL)
        account = await repository.find_by_email(EMAIL)

        # Simulate a resend landing between the hash check and the write
        original_update = repository.update_fields_if

        async def racing_update(account_id, expected, changes):
            await original_update(
                account_id,
                {},
                {"otp_hash": hasher.hash("999999"), "otp_expires_at": account.otp_expires_at},
            )
            return await original_update(account_id, expected, changes)

        repository.update_fields_if = racing_update
        with pytest.raises(InvalidCodeError):
            await auth_service.verify_otp(EMAIL, code)


class TestResendOtp:
    @pytest.mark.asyncio
    async def test_unknown_account(self, auth_service):
        with pytest.raises(AccountNotFoundError):
            await auth_service.resend_otp("nobody@example.com")

    @pytest.mark.asyncio
    async def test_resets_expiry(self, auth_service, repository, clock):
        await register(auth_service)
        clock.advance(minutes=3)
        await auth_service.resend_otp(EMAIL)

        account = await repository.find_by_email(EMAIL)
        assert account.otp_expires_at == clock.now + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_works_without_pending_challenge(self, auth_service, notifier, repository):
        await login_fully(auth_service, notifier)
        await auth_service.resend_otp(EMAIL)

        account = await repository.find_by_email(EMAIL)
        assert account.has_pending_challenge

    @pytest.mark.asyncio
    async def test_stale_code_after_resend(self, auth_service, notifier):
        await register(auth_service)
        stale = notifier.last_code(EMAIL)
        await auth_service.resend_otp(EMAIL)
        fresh = notifier.last_code(EMAIL)

        if stale != fresh:
            with pytest.raises(InvalidCodeError):
                await auth_service.verify_otp(EMAIL, stale)
        assert await auth_service.verify_otp(EMAIL, fresh)


class TestRefresh:
    @pytest.mark.asyncio
    async def test_rotates_tokens(self, auth_service, notifier, repository, hasher):
        account_id, tokens = await login_fully(auth_service, notifier)
        rotated = await auth_service.refresh(account_id, tokens.refresh_token)

        assert rotated.refresh_token != tokens.refresh_token
        account = await repository.find_by_id(account_id)
        assert hasher.verify(rotated.refresh_token, account.refresh_token_hash)
        assert not hasher.verify(tokens.refresh_token, account.refresh_token_hash)

    @pytest.mark.asyncio
    async def test_rotated_pair_carries_account_claims(self, auth_service, notifier, jwt_service):
        account_id, tokens = await login_fully(auth_service, notifier)
        rotated = await auth_service.refresh(account_id, tokens.refresh_token)

        access = jwt_service.verify(rotated.access_token, "access")
        refresh = jwt_service.verify(rotated.refresh_token, "refresh")
        for claims in (access, refresh):
            assert claims["sub"] == account_id
            assert claims["email"] == EMAIL
            assert claims["name"] == "Alice"
        assert rotated.expires_in == 15 * 60

    @pytest.mark.asyncio
    async def test_old_token_rejected_after_rotation(self, auth_service, notifier):
        account_id, tokens = await login_fully(auth_service, notifier)
        await auth_service.refresh(account_id, tokens.refresh_token)

        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh(account_id, tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_chain_of_rotations(self, auth_service, notifier):
        account_id, tokens = await login_fully(auth_service, notifier)
        for _ in range(3):
            tokens = await auth_service.refresh(account_id, tokens.refresh_token)
        assert tokens.access_token

    @pytest.mark.asyncio
    async def test_concurrent_refresh_has_one_winner(self, concurrent_auth_service, notifier):
        service = concurrent_auth_service
        account_id, tokens = await login_fully(service, notifier)

        results = await asyncio.gather(
            service.refresh(account_id, tokens.refresh_token),
            service.refresh(account_id, tokens.refresh_token),
            return_exceptions=True,
        )
        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert any(isinstance(r, InvalidRefreshTokenError) for r in results)

    @pytest.mark.asyncio
    async def test_unknown_account(self, auth_service):
        with pytest.raises(AccountNotFoundError):
            await auth_service.refresh("missing-id", "token")

    @pytest.mark.asyncio
    async def test_no_stored_token(self, auth_service, repository, jwt_service):
        await register(auth_service)
        account = await repository.find_by_email(EMAIL)
        token = jwt_service.create_refresh_token(account.id, EMAIL, "Alice")

        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh(account.id, token)

    @pytest.mark.asyncio
    async def test_access_token_rejected(self, auth_service, notifier):
        account_id, tokens = await login_fully(auth_service, notifier)
        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh(account_id, tokens.access_token)

    @pytest.mark.asyncio
    async def test_forged_token_rejected(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        forged = jwt.encode(
            {"sub": account_id, "type": "refresh", "iss": "otpgate", "iat": 0, "exp": 9999999999},
            "a-different-secret-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh(account_id, forged)

    @pytest.mark.asyncio
    async def test_expired_token_rejected(self, auth_service, notifier, jwt_service, repository, hasher):
        account_id, _ = await login_fully(auth_service, notifier)
        expired = jwt_service.create_refresh_token(
            account_id, EMAIL, "Alice", expires_delta=timedelta(seconds=-10)
        )
        await repository.update_fields(account_id, {"refresh_token_hash": hasher.hash(expired)})

        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh(account_id, expired)

    @pytest.mark.asyncio
    async def test_token_for_other_account_rejected(self, auth_service, notifier):
        alice_id, _ = await login_fully(auth_service, notifier)
        _, bob_tokens = await login_fully(auth_service, notifier, email="bob@example.com")

        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh(alice_id, bob_tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_refresh_with_token(self, auth_service, notifier):
        _, tokens = await login_fully(auth_service, notifier)
        rotated = await auth_service.refresh_with_token(tokens.refresh_token)
        assert rotated.refresh_token != tokens.refresh_token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["garbage", ""])
    async def test_refresh_with_malformed_token(self, auth_service, token):
        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh_with_token(token)

    @pytest.mark.asyncio
    async def test_refresh_with_token_for_unknown_account(self, auth_service, jwt_service):
        token = jwt_service.create_refresh_token("missing-id", EMAIL, "Alice")
        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh_with_token(token)


class TestLogout:
    @pytest.mark.asyncio
    async def test_revokes_refresh_token(self, auth_service, notifier, repository):
        account_id, tokens = await login_fully(auth_service, notifier)
        await auth_service.logout(account_id)

        account = await repository.find_by_id(account_id)
        assert account.refresh_token_hash is None
        with pytest.raises(InvalidRefreshTokenError):
            await auth_service.refresh(account_id, tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_is_idempotent(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        await auth_service.logout(account_id)
        ack = await auth_service.logout(account_id)
        assert ack.message

    @pytest.mark.asyncio
    async def test_unknown_account(self, auth_service):
        with pytest.raises(AccountNotFoundError):
            await auth_service.logout("missing-id")

    @pytest.mark.asyncio
    async def test_relogin_after_logout(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        await auth_service.logout(account_id)
        await auth_service.login(EMAIL, PASSWORD)
        tokens = await auth_service.verify_otp(EMAIL, notifier.last_code(EMAIL))

        assert await auth_service.refresh(account_id, tokens.refresh_token)


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_changes_password(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        await auth_service.change_password(account_id, PASSWORD, "a brand new password")

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(EMAIL, PASSWORD)
        await auth_service.login(EMAIL, "a brand new password")
        assert notifier.password_changed == [EMAIL]

    @pytest.mark.asyncio
    async def test_leaves_tokens_and_challenge_alone(self, auth_service, notifier, repository):
        account_id, tokens = await login_fully(auth_service, notifier)
        await auth_service.resend_otp(EMAIL)
        before = await repository.find_by_id(account_id)

        await auth_service.change_password(account_id, PASSWORD, "a brand new password")

        after = await repository.find_by_id(account_id)
        assert after.otp_hash == before.otp_hash
        assert after.refresh_token_hash == before.refresh_token_hash
        assert await auth_service.refresh(account_id, tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        with pytest.raises(InvalidCredentialsError):
            await auth_service.change_password(account_id, "wrong", "a brand new password")

    @pytest.mark.asyncio
    async def test_reuse_rejected(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        with pytest.raises(PasswordReuseError):
            await auth_service.change_password(account_id, PASSWORD, PASSWORD)

    @pytest.mark.asyncio
    async def test_unknown_account(self, auth_service):
        with pytest.raises(AccountNotFoundError):
            await auth_service.change_password("missing-id", PASSWORD, "new")

    @pytest.mark.asyncio
    async def test_notice_failure_does_not_fail_change(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        notifier.fail_password_changed = True

        ack = await auth_service.change_password(account_id, PASSWORD, "a brand new password")

        assert ack.message
        await auth_service.login(EMAIL, "a brand new password")


class TestProfileAndRoles:
    @pytest.mark.asyncio
    async def test_get_profile(self, auth_service, notifier):
        account_id, _ = await login_fully(auth_service, notifier)
        profile = await auth_service.get_profile(account_id)

        assert profile.id == account_id
        assert profile.email == EMAIL
        assert profile.roles == ("user",)

    @pytest.mark.asyncio
    async def test_get_profile_unknown(self, auth_service):
        with pytest.raises(AccountNotFoundError):
            await auth_service.get_profile("missing-id")

    @pytest.mark.asyncio
    async def test_authenticate(self, auth_service, notifier):
        account_id, tokens = await login_fully(auth_service, notifier)
        identity = await auth_service.authenticate(tokens.access_token)

        assert identity.subject == account_id
        assert identity.roles == frozenset({Role.USER})

    @pytest.mark.asyncio
    async def test_authenticate_rejects_refresh_token(self, auth_service, notifier):
        _, tokens = await login_fully(auth_service, notifier)
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate(tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_authenticate_unknown_account(self, auth_service, jwt_service):
        token = jwt_service.create_access_token("missing-id", EMAIL, "Alice")
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate(token)

    @pytest.mark.asyncio
    async def test_admin_assigns_roles(self, auth_service, notifier, repository):
        admin_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(admin_id, {"roles": {Role.ADMIN}})
        target_id, _ = await login_fully(auth_service, notifier, email="bob@example.com")
        admin = Identity.from_account(await repository.find_by_id(admin_id))

        profile = await auth_service.assign_roles(admin, target_id, ["moderator", "user"])

        assert profile.roles == ("moderator", "user")
        target = await repository.find_by_id(target_id)
        assert target.roles == frozenset({Role.MODERATOR, Role.USER})

    @pytest.mark.asyncio
    async def test_non_admin_denied(self, auth_service, notifier, repository):
        actor_id, _ = await login_fully(auth_service, notifier)
        target_id, _ = await login_fully(auth_service, notifier, email="bob@example.com")
        actor = Identity.from_account(await repository.find_by_id(actor_id))

        with pytest.raises(PermissionDeniedError):
            await auth_service.assign_roles(actor, target_id, ["admin"])

    @pytest.mark.asyncio
    async def test_stale_admin_identity_denied(self, auth_service, notifier, repository):
        actor_id, _ = await login_fully(auth_service, notifier)
        stale = Identity(subject=actor_id, email=EMAIL, name="Alice", roles=frozenset({Role.ADMIN}))

        with pytest.raises(PermissionDeniedError):
            await auth_service.assign_roles(stale, actor_id, ["admin"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("roles", [[], ["root"]])
    async def test_invalid_role_sets(self, auth_service, notifier, repository, roles):
        admin_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(admin_id, {"roles": {Role.ADMIN}})
        admin = Identity.from_account(await repository.find_by_id(admin_id))

        with pytest.raises(InvalidRoleAssignmentError):
            await auth_service.assign_roles(admin, admin_id, roles)

    @pytest.mark.asyncio
    async def test_missing_target(self, auth_service, notifier, repository):
        admin_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(admin_id, {"roles": {Role.ADMIN}})
        admin = Identity.from_account(await repository.find_by_id(admin_id))

        with pytest.raises(AccountNotFoundError):
            await auth_service.assign_roles(admin, "missing-id", ["user"])


async def identity_for(repository, account_id: str) -> Identity:
    return Identity.from_account(await repository.find_by_id(account_id))


class TestAccountManagement:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [Role.ADMIN, Role.MODERATOR])
    async def test_staff_list_accounts_oldest_first(self, auth_service, notifier, repository, clock, role):
        staff_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(staff_id, {"roles": {role}})
        clock.advance(seconds=1)
        bob_id, _ = await login_fully(auth_service, notifier, email="bob@example.com")

        profiles = await auth_service.list_accounts(await identity_for(repository, staff_id))

        assert [profile.id for profile in profiles] == [staff_id, bob_id]
        assert profiles[1].email == "bob@example.com"

    @pytest.mark.asyncio
    async def test_list_accounts_pages(self, auth_service, notifier, repository, clock):
        admin_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(admin_id, {"roles": {Role.ADMIN}})
        clock.advance(seconds=1)
        bob_id, _ = await login_fully(auth_service, notifier, email="bob@example.com")
        admin = await identity_for(repository, admin_id)

        page = await auth_service.list_accounts(admin, offset=1, limit=1)

        assert [profile.id for profile in page] == [bob_id]

    @pytest.mark.asyncio
    async def test_plain_user_cannot_list(self, auth_service, notifier, repository):
        account_id, _ = await login_fully(auth_service, notifier)

        with pytest.raises(PermissionDeniedError):
            await auth_service.list_accounts(await identity_for(repository, account_id))

    @pytest.mark.asyncio
    async def test_any_caller_can_look_up_an_account(self, auth_service, notifier, repository):
        alice_id, _ = await login_fully(auth_service, notifier)
        bob_id, _ = await login_fully(auth_service, notifier, email="bob@example.com")

        profile = await auth_service.get_account(await identity_for(repository, alice_id), bob_id)

        assert profile.id == bob_id
        assert profile.email == "bob@example.com"

    @pytest.mark.asyncio
    async def test_look_up_unknown_account(self, auth_service, notifier, repository):
        alice_id, _ = await login_fully(auth_service, notifier)

        with pytest.raises(AccountNotFoundError):
            await auth_service.get_account(await identity_for(repository, alice_id), "missing-id")

    @pytest.mark.asyncio
    async def test_owner_renames_self(self, auth_service, notifier, repository):
        account_id, tokens = await login_fully(auth_service, notifier)
        owner = await identity_for(repository, account_id)

        profile = await auth_service.update_profile(owner, account_id, "  Alice Liddell ")

        assert profile.name == "Alice Liddell"
        account = await repository.find_by_id(account_id)
        assert account.name == "Alice Liddell"
        assert account.refresh_token_hash is not None

        rotated = await auth_service.refresh(account_id, tokens.refresh_token)
        identity = await auth_service.authenticate(rotated.access_token)
        assert identity.name == "Alice Liddell"

    @pytest.mark.asyncio
    async def test_admin_renames_other(self, auth_service, notifier, repository):
        admin_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(admin_id, {"roles": {Role.ADMIN}})
        bob_id, _ = await login_fully(auth_service, notifier, email="bob@example.com")

        profile = await auth_service.update_profile(
            await identity_for(repository, admin_id), bob_id, "Robert"
        )

        assert profile.name == "Robert"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [Role.USER, Role.MODERATOR])
    async def test_non_owner_non_admin_cannot_rename(self, auth_service, notifier, repository, role):
        actor_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(actor_id, {"roles": {role}})
        bob_id, _ = await login_fully(auth_service, notifier, email="bob@example.com")

        with pytest.raises(PermissionDeniedError):
            await auth_service.update_profile(
                await identity_for(repository, actor_id), bob_id, "Mallory"
            )

        assert (await repository.find_by_id(bob_id)).name == "Alice"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "x" * 256])
    async def test_invalid_names_rejected(self, auth_service, notifier, repository, name):
        account_id, _ = await login_fully(auth_service, notifier)

        with pytest.raises(InvalidProfileError):
            await auth_service.update_profile(
                await identity_for(repository, account_id), account_id, name
            )

    @pytest.mark.asyncio
    async def test_admin_renames_missing_account(self, auth_service, notifier, repository):
        admin_id, _ = await login_fully(auth_service, notifier)
        await repository.update_fields(admin_id, {"roles": {Role.ADMIN}})

        with pytest.raises(AccountNotFoundError):
            await auth_service.update_profile(
                await identity_for(repository, admin_id), "missing-id", "Ghost"
            )
