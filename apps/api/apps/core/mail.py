"""
Outbound mail channel.

One channel wraps one Django email connection. Callers build it explicitly
(e.g. once per reminder sweep) and pass it to whatever needs to send mail.
"""
from typing import Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.utils.html import strip_tags

from apps.core.observability import get_sanitized_logger

logger = get_sanitized_logger(__name__)


class MailChannel:
    """
    Fire-and-forget HTML mail sender over the configured EMAIL_BACKEND.

    `send()` returns True when the backend accepted the message and False when
    it raised; it never propagates delivery errors to the caller.
    """

    def __init__(self, connection=None, from_email: Optional[str] = None):
        self.connection = connection or get_connection(fail_silently=False)
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    @classmethod
    def from_settings(cls):
        return cls()

    def send(self, recipient: str, subject: str, body_html: str) -> bool:
        message = EmailMultiAlternatives(
            subject=subject,
            body=strip_tags(body_html),
            from_email=self.from_email,
            to=[recipient],
            connection=self.connection,
        )
        message.attach_alternative(body_html, 'text/html')

        try:
            sent = message.send()
        except Exception as e:
            logger.error(
                'Mail delivery failed',
                extra={
                    'event': 'mail_send_failed',
                    'subject': subject,
                    'error': str(e),
                }
            )
            return False

        logger.info(
            'Mail handed to backend',
            extra={'event': 'mail_sent', 'subject': subject, 'sent': sent}
        )
        return sent > 0
