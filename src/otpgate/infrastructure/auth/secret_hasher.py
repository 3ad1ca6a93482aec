"""Secret hashing using Argon2.

Provides salted hashing and constant-time verification for every secret the
service keeps at rest: passwords, one-time passcodes and refresh tokens. The
salt is embedded in the encoded Argon2id digest.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from otpgate.domain.interfaces.secret_hasher import SecretHasher


class Argon2SecretHasher(SecretHasher):
    """Argon2id implementation of ``SecretHasher``."""

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        """Initialize the hasher.

        Args:
            hasher: Configured argon2 ``PasswordHasher``. Defaults to the
                library's recommended parameters.
        """
        self._hasher = hasher or PasswordHasher()

    def hash(self, secret: str) -> str:
        """Hash a secret using Argon2id.

        Example:
            >>> digest = Argon2SecretHasher().hash("SecureP@ss123!")
            >>> digest.startswith("$argon2id$")
            True
        """
        return self._hasher.hash(secret)

    def verify(self, secret: str, digest: str) -> bool:
        """Verify a secret against a digest.

        Argon2 recomputes the full hash and compares in constant time.
        A malformed digest verifies as False.
        """
        try:
            return self._hasher.verify(digest, secret)
        except (VerificationError, InvalidHashError):
            return False


secret_hasher = Argon2SecretHasher()
