"""Abstract contract for one-way secret hashing."""

from abc import ABC, abstractmethod


class SecretHasher(ABC):
    """Salted one-way hash with constant-time verification.

    Used uniformly for passwords, passcodes and refresh tokens.
    """

    @abstractmethod
    def hash(self, secret: str) -> str:
        """Hash a secret. Output differs between calls on the same input."""

    @abstractmethod
    def verify(self, secret: str, digest: str) -> bool:
        """Check a secret against a digest without leaking match length via timing."""
