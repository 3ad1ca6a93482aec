"""Abstract contract for out-of-band notifications."""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Delivers passcodes and security notices to an account holder.

    Implementations report delivery as a boolean and do not retry; retries
    belong to the caller.
    """

    @abstractmethod
    async def send_otp(self, email: str, name: str, code: str) -> bool:
        """Deliver a one-time passcode.

        Returns:
            True if the message was handed off successfully, False otherwise.
        """

    @abstractmethod
    async def send_password_changed(self, email: str, name: str) -> bool:
        """Notify the account holder that their password was changed.

        Returns:
            True if the message was handed off successfully, False otherwise.
        """
