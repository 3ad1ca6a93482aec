"""One-time passcode generator.

Codes are drawn uniformly from [100000, 999999] with the operating system's
CSPRNG, so they are always six digits and never lose a leading zero.
"""

import secrets
from datetime import datetime, timedelta, timezone

from otpgate.domain.entities.otp_challenge import OtpChallenge

OTP_MIN = 100_000
OTP_MAX = 999_999
DEFAULT_OTP_TTL = timedelta(minutes=5)


class OtpGenerator:
    """Generates passcode challenges with a fixed lifetime."""

    def __init__(self, ttl: timedelta = DEFAULT_OTP_TTL) -> None:
        """Initialize the generator.

        Args:
            ttl: How long a generated code stays valid (default 5 minutes).
        """
        if ttl <= timedelta(0):
            raise ValueError("OTP lifetime must be positive")
        self.ttl = ttl

    @staticmethod
    def generate_code() -> str:
        """Draw a six-digit code from the CSPRNG."""
        return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))

    def generate(self, now: datetime | None = None) -> OtpChallenge:
        """Generate a new challenge.

        Args:
            now: Issuance instant. Defaults to the current UTC time.

        Returns:
            The challenge; ``expires_at`` is exactly ``ttl`` after ``issued_at``.
        """
        issued_at = now or datetime.now(timezone.utc)
        return OtpChallenge(
            code=self.generate_code(),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )
