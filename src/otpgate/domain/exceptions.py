"""Domain error taxonomy for the credential-issuance flow.

Every failure the orchestrator reports to its caller is an ``AuthError``
subclass with a stable machine-readable ``code``. Anything that is not an
``AuthError`` (database driver errors, programming errors) is an internal
failure and propagates unchanged.
"""


class AuthError(Exception):
    """Base class for all authentication domain errors."""

    code = "auth_error"
    default_message = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConflictError(AuthError):
    """Raised when registering an email that already has an account."""

    code = "conflict"
    default_message = "An account with this email already exists"


class InvalidCredentialsError(AuthError):
    """Raised for any bad email/password pair or unusable access token.

    The same message is used for an unknown email and a wrong password so
    callers cannot enumerate accounts.
    """

    code = "invalid_credentials"
    default_message = "Invalid credentials"


class NotificationFailureError(AuthError):
    """Raised when a one-time passcode could not be delivered."""

    code = "notification_failure"
    default_message = "Could not deliver the one-time passcode, please request a new one"


class AccountNotFoundError(AuthError):
    """Raised when an operation targets an account that does not exist."""

    code = "account_not_found"
    default_message = "Account not found"


class NoActiveChallengeError(AuthError):
    """Raised when verifying a code while no challenge is outstanding."""

    code = "no_active_challenge"
    default_message = "No one-time passcode is pending for this account"


class ChallengeExpiredError(AuthError):
    """Raised when the outstanding challenge is past its expiry."""

    code = "challenge_expired"
    default_message = "The one-time passcode has expired, please log in again"


class InvalidCodeError(AuthError):
    """Raised when the presented code does not match the outstanding challenge."""

    code = "invalid_code"
    default_message = "The one-time passcode is incorrect"


class InvalidRefreshTokenError(AuthError):
    """Raised when a refresh token is unknown, rotated out, expired or forged."""

    code = "invalid_refresh_token"
    default_message = "Invalid refresh token"


class PasswordReuseError(AuthError):
    """Raised when the new password equals the current one."""

    code = "password_reuse"
    default_message = "The new password must differ from the current password"


class PermissionDeniedError(AuthError):
    """Raised when an identity lacks the role an operation requires."""

    code = "permission_denied"
    default_message = "Insufficient permissions"


class InvalidRoleAssignmentError(AuthError):
    """Raised when a role set is empty or names an unknown role."""

    code = "invalid_role_assignment"
    default_message = "Roles must be a non-empty subset of user, admin, moderator"


class InvalidProfileError(AuthError):
    """Raised when a profile update carries an unusable display name."""

    code = "invalid_profile"
    default_message = "Display name must be between 1 and 255 characters"


class DuplicateEmailError(Exception):
    """Raised by a credential store when the unique email constraint is violated.

    Not part of the public taxonomy; the orchestrator translates it to
    ``ConflictError``.
    """

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Email '{email}' already exists")
