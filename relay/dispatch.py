"""Mail dispatch service: the entry point for sending email.

Validates and normalizes a caller's message, hands it to the configured
transport, and turns whatever the transport raises into one of the relay's
error types.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import TYPE_CHECKING

import aiosmtplib

from .errors import AuthError, ConnectivityError, UnclassifiedError, ValidationError
from .types import DeliveryReceipt, EmailMessage

if TYPE_CHECKING:
    from .email.base import MailTransport

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_LINE_BREAK_RE = re.compile(r"[\r\n]")

# SMTP reply codes that mean the server refused our credentials
_AUTH_REPLY_CODES = {530, 534, 535}

MISSING_FIELDS_MESSAGE = "Missing required fields: to, subject, and (html or text)"
HEADER_LINE_BREAK_MESSAGE = "Fields to, subject and from must not contain line breaks"
AUTH_FAILED_MESSAGE = "Authentication failed. Check SMTP credentials."
CONNECTION_FAILED_MESSAGE = "Connection to SMTP server failed."
SEND_FAILED_MESSAGE = "Failed to send email"


class MailDispatchService:
    """Sends caller-supplied email through a transport.

    Usage::

        from relay import MailDispatchService, MockTransport, EmailMessage

        service = MailDispatchService(MockTransport(), default_from="Otazumi <noreply@otazumi.page>")
        receipt = await service.send(EmailMessage(to="a@b.com", subject="Hi", text="hi"))
        print(receipt.message_id)
    """

    def __init__(self, transport: MailTransport, *, default_from: str) -> None:
        self.transport = transport
        self.default_from = default_from

    async def send(self, message: EmailMessage) -> DeliveryReceipt:
        """Validate, normalize and send ``message``.

        Raises:
            ValidationError: required fields are missing or a header field spans
                lines; nothing is sent.
            AuthError: the mail server rejected the configured credentials.
            ConnectivityError: the mail server could not be reached.
            UnclassifiedError: any other delivery failure.
        """
        validate_message(message)
        normalized = self.normalize(message)

        logger.info("Sending email to %s (subject=%r)", normalized.to, normalized.subject)
        try:
            receipt = await self.transport.send(normalized)
        except Exception as exc:
            raise classify_delivery_error(exc) from exc

        logger.info("Email sent successfully: %s", receipt.message_id)
        return receipt

    def normalize(self, message: EmailMessage) -> EmailMessage:
        """Fill in ``from_``, ``html`` and ``text`` where the caller left them out."""
        html = message.html or message.text
        text = message.text or strip_tags(message.html or "")
        return dataclasses.replace(
            message,
            html=html,
            text=text,
            from_=message.from_ or self.default_from,
        )


def validate_message(message: EmailMessage) -> None:
    if not message.to or not message.subject or not (message.html or message.text):
        raise ValidationError(MISSING_FIELDS_MESSAGE)
    # to, subject and from become MIME headers
    for value in (message.to, message.subject, message.from_):
        if value and _LINE_BREAK_RE.search(value):
            raise ValidationError(HEADER_LINE_BREAK_MESSAGE)


def strip_tags(html: str) -> str:
    """Remove every ``<...>`` tag, leaving the text between them untouched."""
    return _TAG_RE.sub("", html)


def classify_delivery_error(exc: Exception) -> AuthError | ConnectivityError | UnclassifiedError:
    """Map a transport failure onto the relay's error taxonomy."""
    if _is_auth_failure(exc):
        logger.error("SMTP authentication failed: %s", exc)
        return AuthError(AUTH_FAILED_MESSAGE, details=str(exc))

    # aiosmtplib's connect/disconnect/timeout errors are ConnectionError or TimeoutError subclasses
    if isinstance(exc, OSError):
        logger.error("Connection to SMTP server failed: %s", exc)
        return ConnectivityError(CONNECTION_FAILED_MESSAGE, details=str(exc))

    logger.error("Error sending email", exc_info=exc)
    return UnclassifiedError(SEND_FAILED_MESSAGE, details=str(exc))


def _is_auth_failure(exc: Exception) -> bool:
    if isinstance(exc, aiosmtplib.SMTPAuthenticationError):
        return True
    if isinstance(exc, aiosmtplib.SMTPResponseException):
        return exc.code in _AUTH_REPLY_CODES
    return False
