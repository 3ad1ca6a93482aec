"""otpgate - password login gated by a one-time passcode.

Issues short-lived access tokens and rotating refresh tokens once the
emailed passcode is verified.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
