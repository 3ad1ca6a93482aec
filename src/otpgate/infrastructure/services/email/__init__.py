"""Email delivery providers and rendering."""

from otpgate.infrastructure.services.email.console_provider import ConsoleEmailProvider
from otpgate.infrastructure.services.email.email_provider import EmailProvider
from otpgate.infrastructure.services.email.smtp_provider import SMTPProvider, SMTPSettings
from otpgate.infrastructure.services.email.template_renderer import RenderedMessage, TemplateRenderer

__all__ = [
    "ConsoleEmailProvider",
    "EmailProvider",
    "RenderedMessage",
    "SMTPProvider",
    "SMTPSettings",
    "TemplateRenderer",
]
