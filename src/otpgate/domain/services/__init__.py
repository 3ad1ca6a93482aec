"""Domain services."""

from otpgate.domain.services.auth_service import AuthService, parse_roles, require_roles
from otpgate.domain.services.otp_generator import DEFAULT_OTP_TTL, OtpGenerator

__all__ = [
    "AuthService",
    "DEFAULT_OTP_TTL",
    "OtpGenerator",
    "parse_roles",
    "require_roles",
]
