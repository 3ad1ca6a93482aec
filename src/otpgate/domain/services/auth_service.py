"""Authentication orchestrator.

Drives the per-account credential state machine:

    NoChallenge --register/login/resend--> OtpPending --verify--> Authenticated
    Authenticated --logout--> NoChallenge

A pending challenge that passes its expiry is treated as gone the next time
someone tries to verify it; there is no background sweep. Every state change
is one store write, and the writes that consume a challenge or rotate a
refresh token are compare-and-set so concurrent callers cannot both win.
"""

import secrets
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from otpgate.core.logging import get_logger
from otpgate.domain.entities.account import DEFAULT_ROLES, Account, Role
from otpgate.domain.entities.auth_results import AccountProfile, Acknowledgement, TokenPair
from otpgate.domain.entities.identity import Identity
from otpgate.domain.entities.otp_challenge import OtpChallenge
from otpgate.domain.exceptions import (
    AccountNotFoundError,
    ChallengeExpiredError,
    ConflictError,
    DuplicateEmailError,
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
from otpgate.domain.interfaces.credential_store import CredentialStore
from otpgate.domain.interfaces.notifier import Notifier
from otpgate.domain.interfaces.secret_hasher import SecretHasher
from otpgate.domain.interfaces.token_issuer import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    JWTError,
    TokenIssuer,
)
from otpgate.domain.services.otp_generator import OtpGenerator

logger = get_logger(__name__)

MAX_NAME_LENGTH = 255


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_roles(roles: Iterable[str | Role]) -> frozenset[Role]:
    """Validate a requested role set.

    Raises:
        InvalidRoleAssignmentError: If the set is empty or names an unknown role.
    """
    try:
        parsed = frozenset(Role(role) for role in roles)
    except ValueError as e:
        raise InvalidRoleAssignmentError() from e
    if not parsed:
        raise InvalidRoleAssignmentError()
    return parsed


def require_roles(identity: Identity, *roles: Role) -> Identity:
    """Ensure the identity holds at least one of ``roles``.

    Returns:
        The identity, for chaining.

    Raises:
        PermissionDeniedError: If none of the roles is held.
    """
    if not identity.has_role(*roles):
        logger.info(
            "Role check failed",
            account_id=identity.subject,
            required=[role.value for role in roles],
        )
        raise PermissionDeniedError()
    return identity


class AuthService:
    """Orchestrates registration, two-step login, token rotation and password changes.

    All collaborators are passed in explicitly so that any of them can be
    replaced by a test double.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: SecretHasher,
        token_issuer: TokenIssuer,
        notifier: Notifier,
        otp_generator: OtpGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Durable account record store.
            hasher: Salted one-way hasher for passwords, codes and refresh tokens.
            token_issuer: Signs and verifies access/refresh tokens.
            notifier: Out-of-band delivery of passcodes and notices.
            otp_generator: Passcode generator. Defaults to 5-minute codes.
            clock: Returns the current aware UTC instant.
        """
        self.store = store
        self.hasher = hasher
        self.token_issuer = token_issuer
        self.notifier = notifier
        self.otp_generator = otp_generator or OtpGenerator()
        self._clock = clock or _utcnow
        # Checked against when an email is unknown so that a failed login
        # costs the same as a wrong password.
        self._dummy_hash = hasher.hash(secrets.token_urlsafe(16))

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    async def register(self, name: str, email: str, password: str) -> Acknowledgement:
        """Create an account and send its first passcode.

        If delivery fails the account is kept; the caller is expected to
        use ``resend_otp``.

        Raises:
            ConflictError: If the email is already registered.
            NotificationFailureError: If the passcode could not be delivered.
        """
        if await self.store.find_by_email(email) is not None:
            logger.info("Registration failed: email exists", email=email)
            raise ConflictError()

        challenge = self.otp_generator.generate(self._clock())
        account = Account(
            id=str(uuid.uuid4()),
            email=email,
            name=name,
            password_hash=self.hasher.hash(password),
            roles=DEFAULT_ROLES,
            otp_hash=self.hasher.hash(challenge.code),
            otp_expires_at=challenge.expires_at,
            created_at=challenge.issued_at,
            updated_at=challenge.issued_at,
        )

        try:
            await self.store.create(account)
        except DuplicateEmailError as e:
            logger.info("Registration failed: concurrent registration", email=email)
            raise ConflictError() from e

        logger.info("Account registered", account_id=account.id, email=email)
        await self._deliver_otp(account, challenge)

        return Acknowledgement(
            message="Registration successful. A one-time passcode was sent to your email.",
            email=account.email,
        )

    async def login(self, email: str, password: str) -> Acknowledgement:
        """First login step: check the password and send a passcode.

        Unknown email and wrong password fail identically, and both pay for
        one hash verification.

        Raises:
            InvalidCredentialsError: If the email/password pair is wrong.
            NotificationFailureError: If the passcode could not be delivered.
        """
        account = await self.store.find_by_email(email)
        if account is None:
            self.hasher.verify(password, self._dummy_hash)
            logger.info("Login failed: invalid credentials", email=email)
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, account.password_hash):
            logger.info("Login failed: invalid credentials", email=email)
            raise InvalidCredentialsError()

        await self._issue_challenge(account)
        return Acknowledgement(
            message="A one-time passcode was sent to your email.",
            email=account.email,
        )

    async def resend_otp(self, email: str) -> Acknowledgement:
        """Replace any pending challenge with a fresh one and send it.

        Raises:
            AccountNotFoundError: If no account has this email.
            NotificationFailureError: If the passcode could not be delivered.
        """
        account = await self.store.find_by_email(email)
        if account is None:
            logger.info("Resend failed: account not found", email=email)
            raise AccountNotFoundError()

        await self._issue_challenge(account)
        return Acknowledgement(
            message="A new one-time passcode was sent to your email.",
            email=account.email,
        )

    async def verify_otp(self, email: str, code: str) -> TokenPair:
        """Second login step: consume the passcode and issue tokens.

        The challenge is cleared and the refresh-token hash stored in one
        compare-and-set write keyed on the challenge being verified, so a
        code can be redeemed at most once.

        Raises:
            AccountNotFoundError: If no account has this email.
            NoActiveChallengeError: If no challenge is pending.
            ChallengeExpiredError: If the pending challenge has expired.
            InvalidCodeError: If the code does not match the pending challenge.
        """
        account = await self.store.find_by_email(email)
        if account is None:
            logger.info("OTP verification failed: account not found", email=email)
            raise AccountNotFoundError()

        if not account.has_pending_challenge:
            logger.info("OTP verification failed: no active challenge", account_id=account.id)
            raise NoActiveChallengeError()

        if account.challenge_expired(self._clock()):
            logger.info("OTP verification failed: challenge expired", account_id=account.id)
            raise ChallengeExpiredError()

        if not self.hasher.verify(code, account.otp_hash):
            logger.info("OTP verification failed: invalid code", account_id=account.id)
            raise InvalidCodeError()

        tokens = self.token_issuer.issue(account.id, account.email, account.name)
        updated = await self.store.update_fields_if(
            account.id,
            expected={"otp_hash": account.otp_hash},
            changes={
                "refresh_token_hash": self.hasher.hash(tokens.refresh_token),
                "otp_hash": None,
                "otp_expires_at": None,
            },
        )
        if updated is None:
            await self._raise_lost_challenge(account.id)

        logger.info("OTP verified, tokens issued", account_id=account.id)
        return tokens

    # ------------------------------------------------------------------
    # Token lifecycle
    # ------------------------------------------------------------------

    async def refresh(self, account_id: str, refresh_token: str) -> TokenPair:
        """Exchange the current refresh token for a new pair (rotation).

        Raises:
            AccountNotFoundError: If the account does not exist.
            InvalidRefreshTokenError: If no refresh token is stored, or the
                presented one is forged, expired, not a refresh token, or not
                the most recently issued one.
        """
        account = await self.store.find_by_id(account_id)
        if account is None:
            logger.info("Refresh failed: account not found", account_id=account_id)
            raise AccountNotFoundError()

        if account.refresh_token_hash is None:
            logger.info("Refresh failed: no refresh token stored", account_id=account_id)
            raise InvalidRefreshTokenError()

        try:
            claims = self.token_issuer.verify(refresh_token, token_type=REFRESH_TOKEN_TYPE)
        except JWTError as e:
            logger.info("Refresh failed: token rejected", account_id=account_id, error=str(e))
            raise InvalidRefreshTokenError() from e

        if claims.get("sub") != account.id or not self.hasher.verify(
            refresh_token, account.refresh_token_hash
        ):
            logger.info("Refresh failed: token does not match stored hash", account_id=account_id)
            raise InvalidRefreshTokenError()

        tokens = self.token_issuer.issue(account.id, account.email, account.name)
        updated = await self.store.update_fields_if(
            account.id,
            expected={"refresh_token_hash": account.refresh_token_hash},
            changes={"refresh_token_hash": self.hasher.hash(tokens.refresh_token)},
        )
        if updated is None:
            logger.info("Refresh failed: token rotated concurrently", account_id=account_id)
            raise InvalidRefreshTokenError()

        logger.info("Refresh token rotated", account_id=account_id)
        return tokens

    async def refresh_with_token(self, refresh_token: str) -> TokenPair:
        """Rotate using only the token: read its subject, then ``refresh``.

        Raises:
            InvalidRefreshTokenError: If the token is unparseable, has no
                subject, names an unknown account, or fails ``refresh``.
        """
        try:
            subject = self.token_issuer.decode(refresh_token).get("sub")
        except JWTError as e:
            raise InvalidRefreshTokenError() from e
        if not subject:
            raise InvalidRefreshTokenError()

        try:
            return await self.refresh(subject, refresh_token)
        except AccountNotFoundError as e:
            raise InvalidRefreshTokenError() from e

    async def logout(self, account_id: str) -> Acknowledgement:
        """Forget the stored refresh token. Idempotent.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        updated = await self.store.update_fields(account_id, {"refresh_token_hash": None})
        if updated is None:
            raise AccountNotFoundError()

        logger.info("Logged out", account_id=account_id)
        return Acknowledgement(message="Logged out successfully.")

    async def authenticate(self, access_token: str) -> Identity:
        """Resolve the identity behind an access token.

        Raises:
            InvalidCredentialsError: If the token is bad, expired, not an
                access token, or its account no longer exists.
        """
        try:
            claims = self.token_issuer.verify(access_token, token_type=ACCESS_TOKEN_TYPE)
        except JWTError as e:
            logger.info("Authentication failed: token rejected", error=str(e))
            raise InvalidCredentialsError() from e

        account = await self.store.find_by_id(claims["sub"])
        if account is None:
            logger.info("Authentication failed: account gone", account_id=claims["sub"])
            raise InvalidCredentialsError()
        return Identity.from_account(account)

    # ------------------------------------------------------------------
    # Account management
    # ------------------------------------------------------------------

    async def change_password(
        self,
        account_id: str,
        current_password: str,
        new_password: str,
    ) -> Acknowledgement:
        """Replace the password of an authenticated account.

        Challenge and refresh-token state are left alone. The notice to the
        account holder is best effort: a delivery failure is logged and the
        change still succeeds.

        Raises:
            AccountNotFoundError: If the account does not exist.
            InvalidCredentialsError: If ``current_password`` is wrong.
            PasswordReuseError: If ``new_password`` matches the current hash.
        """
        account = await self.store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError()

        if not self.hasher.verify(current_password, account.password_hash):
            logger.info("Password change failed: wrong current password", account_id=account_id)
            raise InvalidCredentialsError()

        if self.hasher.verify(new_password, account.password_hash):
            logger.info("Password change failed: password reuse", account_id=account_id)
            raise PasswordReuseError()

        updated = await self.store.update_fields_if(
            account.id,
            expected={"password_hash": account.password_hash},
            changes={"password_hash": self.hasher.hash(new_password)},
        )
        if updated is None:
            # Password changed (or account removed) since it was verified above.
            raise InvalidCredentialsError()

        logger.info("Password changed", account_id=account_id)

        try:
            delivered = await self.notifier.send_password_changed(account.email, account.name)
        except Exception as e:
            logger.warning("Password change notice failed", account_id=account_id, error=str(e))
        else:
            if not delivered:
                logger.warning("Password change notice not delivered", account_id=account_id)

        return Acknowledgement(message="Password changed successfully.")

    async def get_profile(self, account_id: str) -> AccountProfile:
        """Return the public view of an account.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        account = await self.store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError()
        return account.to_profile()

    async def assign_roles(
        self,
        actor: Identity,
        account_id: str,
        roles: Iterable[str | Role],
    ) -> AccountProfile:
        """Replace an account's role set. Requires the actor to be an admin.

        The actor's roles are re-read from the store rather than trusted
        from the identity.

        Raises:
            PermissionDeniedError: If the actor is not a current admin.
            InvalidRoleAssignmentError: If ``roles`` is empty or unknown.
            AccountNotFoundError: If the target account does not exist.
        """
        actor_account = await self.store.find_by_id(actor.subject)
        if actor_account is None or not actor_account.has_role(Role.ADMIN):
            logger.info("Role assignment denied", actor_id=actor.subject, target_id=account_id)
            raise PermissionDeniedError()

        new_roles = parse_roles(roles)
        updated = await self.store.update_fields(account_id, {"roles": new_roles})
        if updated is None:
            raise AccountNotFoundError()

        logger.info(
            "Roles assigned",
            actor_id=actor.subject,
            target_id=account_id,
            roles=sorted(role.value for role in new_roles),
        )
        return updated.to_profile()

    async def list_accounts(
        self,
        actor: Identity,
        offset: int = 0,
        limit: int = 100,
    ) -> list[AccountProfile]:
        """List account profiles, oldest first. Admins and moderators only.

        Raises:
            PermissionDeniedError: If the actor is neither admin nor moderator.
        """
        require_roles(actor, Role.ADMIN, Role.MODERATOR)
        accounts = await self.store.list_accounts(offset=offset, limit=limit)
        return [account.to_profile() for account in accounts]

    async def get_account(self, actor: Identity, account_id: str) -> AccountProfile:
        """Look up another account's public profile. Any authenticated caller.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        account = await self.store.find_by_id(account_id)
        if account is None:
            logger.info("Account lookup failed", actor_id=actor.subject, target_id=account_id)
            raise AccountNotFoundError()
        return account.to_profile()

    async def update_profile(
        self,
        actor: Identity,
        account_id: str,
        name: str,
    ) -> AccountProfile:
        """Change an account's display name. The owner or an admin only.

        Raises:
            PermissionDeniedError: If the actor is neither the owner nor an admin.
            InvalidProfileError: If the name is blank or longer than 255 characters.
            AccountNotFoundError: If the account does not exist.
        """
        if actor.subject != account_id:
            require_roles(actor, Role.ADMIN)

        name = name.strip()
        if not name or len(name) > MAX_NAME_LENGTH:
            raise InvalidProfileError()

        updated = await self.store.update_fields(account_id, {"name": name})
        if updated is None:
            raise AccountNotFoundError()

        logger.info("Profile updated", actor_id=actor.subject, target_id=account_id)
        return updated.to_profile()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _issue_challenge(self, account: Account) -> None:
        """Overwrite the pending challenge with a fresh one and deliver it."""
        challenge = self.otp_generator.generate(self._clock())
        updated = await self.store.update_fields(
            account.id,
            {
                "otp_hash": self.hasher.hash(challenge.code),
                "otp_expires_at": challenge.expires_at,
            },
        )
        if updated is None:
            raise AccountNotFoundError()

        logger.info(
            "OTP challenge issued",
            account_id=account.id,
            expires_at=challenge.expires_at.isoformat(),
        )
        await self._deliver_otp(updated, challenge)

    async def _deliver_otp(self, account: Account, challenge: OtpChallenge) -> None:
        try:
            delivered = await self.notifier.send_otp(account.email, account.name, challenge.code)
        except Exception as e:
            logger.error("OTP delivery failed", account_id=account.id, error=str(e))
            raise NotificationFailureError() from e

        if not delivered:
            logger.error("OTP delivery failed", account_id=account.id)
            raise NotificationFailureError()

    async def _raise_lost_challenge(self, account_id: str) -> None:
        """Report why a challenge compare-and-set missed."""
        current = await self.store.find_by_id(account_id)
        if current is None:
            raise AccountNotFoundError()
        if not current.has_pending_challenge:
            logger.info("OTP verification failed: challenge already consumed", account_id=account_id)
            raise NoActiveChallengeError()
        # A resend replaced the challenge between the check and the write.
        logger.info("OTP verification failed: challenge superseded", account_id=account_id)
        raise InvalidCodeError()
