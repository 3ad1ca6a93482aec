"""One-time passcode challenge.

A challenge is the plaintext code that is delivered out-of-band together
with the instant after which it stops being accepted.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class OtpChallenge:
    """A freshly generated one-time passcode.

    Attributes:
        code: Six ASCII digits, never persisted in this form.
        issued_at: Instant the code was generated (UTC).
        expires_at: Instant after which the code is rejected.
    """

    code: str
    issued_at: datetime
    expires_at: datetime

    def __repr__(self) -> str:
        return f"OtpChallenge(code='******', issued_at={self.issued_at!r}, expires_at={self.expires_at!r})"
