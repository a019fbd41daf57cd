"""SMTP mail transport."""

from __future__ import annotations

import logging
from email.message import EmailMessage as MIMEMessage
from email.utils import make_msgid, parseaddr

import aiosmtplib

from relay.types import DeliveryReceipt, EmailMessage, SMTPConnectionParams

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0


class SMTPTransport:
    """Sends email through an SMTP server with aiosmtplib.

    Every send opens its own session, so one instance can be shared by any
    number of concurrent requests.
    """

    def __init__(self, params: SMTPConnectionParams, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        if not params.host:
            raise ValueError("SMTP host is required")
        self._params = params
        self._timeout = timeout

    @property
    def params(self) -> SMTPConnectionParams:
        return self._params

    def __repr__(self) -> str:
        p = self._params
        return f"SMTPTransport(host={p.host!r}, port={p.port}, user={p.username!r}, use_tls={p.use_tls})"

    async def verify(self) -> bool:
        """Connect and authenticate without sending anything."""
        p = self._params
        client = aiosmtplib.SMTP(
            hostname=p.host,
            port=p.port,
            use_tls=p.use_tls,
            start_tls=p.start_tls,
            timeout=self._timeout,
        )
        try:
            async with client:
                if p.username:
                    await client.login(p.username, p.password)
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP verification against %s:%s failed: %s", p.host, p.port, exc)
            return False
        logger.info("SMTP server %s:%s is ready to send emails", p.host, p.port)
        return True

    async def send(self, message: EmailMessage) -> DeliveryReceipt:
        """Send an email. aiosmtplib errors propagate to the caller."""
        p = self._params
        mime = build_mime_message(message)
        await aiosmtplib.send(
            mime,
            hostname=p.host,
            port=p.port,
            username=p.username or None,
            password=p.password or None,
            use_tls=p.use_tls,
            start_tls=p.start_tls,
            timeout=self._timeout,
        )
        message_id = str(mime["Message-ID"])
        logger.info("Email sent via %s to %s, message_id=%s", p.host, message.to, message_id)
        return DeliveryReceipt(message_id=message_id)


def build_mime_message(message: EmailMessage) -> MIMEMessage:
    """Render a normalized message as multipart/alternative MIME."""
    mime = MIMEMessage()
    mime["From"] = message.from_ or ""
    mime["To"] = message.to
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid(domain=_domain_of(message.from_))
    mime.set_content(message.text or "")
    if message.html:
        mime.add_alternative(message.html, subtype="html")
    return mime


def _domain_of(address: str | None) -> str | None:
    _, addr = parseaddr(address or "")
    if "@" not in addr:
        return None
    return addr.rsplit("@", 1)[1] or None
