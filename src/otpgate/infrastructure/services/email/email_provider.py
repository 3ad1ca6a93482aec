"""Transport contract for outbound email.

``EmailNotifier`` renders messages and hands them to one of these; the
provider only moves bytes. Console and SMTP implementations ship with
otpgate.
"""

from abc import ABC, abstractmethod


class EmailProvider(ABC):
    """Delivers an already rendered message."""

    @abstractmethod
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
        """Deliver one message to one recipient.

        Both bodies are sent as alternatives of the same message.

        Returns:
            True once the transport accepted the message, False if it
            declined without raising.

        Raises:
            Exception: Transport errors are not caught here; the notifier
                decides what a failed delivery means.
        """
