"""Domain entities for otpgate.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from otpgate.domain.entities.account import DEFAULT_ROLES, Account, Role
from otpgate.domain.entities.auth_results import AccountProfile, Acknowledgement, TokenPair
from otpgate.domain.entities.identity import Identity
from otpgate.domain.entities.otp_challenge import OtpChallenge

__all__ = [
    "Account",
    "AccountProfile",
    "Acknowledgement",
    "DEFAULT_ROLES",
    "Identity",
    "OtpChallenge",
    "Role",
    "TokenPair",
]
