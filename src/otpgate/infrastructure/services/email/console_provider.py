"""Console email provider for development.

Writes the rendered message to the log instead of delivering it.
"""

from otpgate.core.logging import get_logger
from otpgate.infrastructure.services.email.email_provider import EmailProvider

logger = get_logger(__name__)


class ConsoleEmailProvider(EmailProvider):
    """Email provider that logs messages to the console."""

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str,
        reply_to: str | None = None,
    ) -> bool:
        logger.info(
            f"[EMAIL] Sending email\n"
            f"From: {from_name} <{from_email}>\n"
            f"To: {to}\n"
            f"Subject: {subject}\n"
            f"Body:\n{text_body}\n"
            f"{'=' * 80}"
        )
        return True
