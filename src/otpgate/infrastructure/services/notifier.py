"""Email-backed implementation of the ``Notifier`` contract.

Renders the built-in templates and hands the message to an email provider.
Provider exceptions are logged and reported as a failed delivery; nothing is
retried here.
"""

from datetime import datetime, timezone
from typing import Any

from otpgate.core.logging import get_logger
from otpgate.domain.interfaces.notifier import Notifier
from otpgate.infrastructure.services.email.console_provider import ConsoleEmailProvider
from otpgate.infrastructure.services.email.email_provider import EmailProvider
from otpgate.infrastructure.services.email.smtp_provider import SMTPProvider, SMTPSettings
from otpgate.infrastructure.services.email.template_renderer import TemplateRenderer
from otpgate.infrastructure.services.email.templates import (
    OTP_TEMPLATE,
    PASSWORD_CHANGED_TEMPLATE,
    EmailTemplate,
)

logger = get_logger(__name__)


class EmailNotifier(Notifier):
    """Delivers passcodes and security notices by email."""

    def __init__(
        self,
        provider: EmailProvider,
        from_email: str,
        from_name: str,
        app_name: str = "otpgate",
        otp_expire_minutes: int = 5,
    ) -> None:
        """Initialize the notifier.

        Args:
            provider: Email provider used for delivery.
            from_email: Sender address.
            from_name: Sender display name.
            app_name: Product name used in message bodies.
            otp_expire_minutes: Lifetime quoted in passcode emails.
        """
        self.provider = provider
        self.from_email = from_email
        self.from_name = from_name
        self.app_name = app_name
        self.otp_expire_minutes = otp_expire_minutes
        self._renderer = TemplateRenderer()

    @classmethod
    def from_settings(cls, settings: Any) -> "EmailNotifier":
        """Build a notifier with the provider selected in settings."""
        return cls(
            provider=build_email_provider(settings),
            from_email=settings.email_from_address,
            from_name=settings.email_from_name,
            app_name=settings.app_name,
            otp_expire_minutes=settings.otp_expire_minutes,
        )

    async def send_otp(self, email: str, name: str, code: str) -> bool:
        return await self._send(
            email,
            OTP_TEMPLATE,
            {
                "name": name,
                "code": code,
                "expires_in_minutes": str(self.otp_expire_minutes),
            },
            kind="otp",
        )

    async def send_password_changed(self, email: str, name: str) -> bool:
        changed_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        return await self._send(
            email,
            PASSWORD_CHANGED_TEMPLATE,
            {"name": name, "changed_at": changed_at},
            kind="password_changed",
        )

    async def _send(
        self,
        to: str,
        template: EmailTemplate,
        variables: dict[str, str],
        kind: str,
    ) -> bool:
        variables = {"app_name": self.app_name, **variables}
        try:
            message = self._renderer.render_message(template, variables)
            sent = await self.provider.send_email(
                to=to,
                subject=message.subject,
                html_body=message.html_body,
                text_body=message.text_body,
                from_email=self.from_email,
                from_name=self.from_name,
            )
        except Exception as e:
            logger.error("Email delivery failed", kind=kind, to=to, error=str(e))
            return False

        if not sent:
            logger.error("Email provider reported failure", kind=kind, to=to)
            return False

        logger.info("Email delivered", kind=kind, to=to)
        return True


def build_email_provider(settings: Any) -> EmailProvider:
    """Select the email provider configured in settings."""
    if settings.email_provider == "smtp":
        return SMTPProvider(SMTPSettings.from_settings(settings))
    return ConsoleEmailProvider()
