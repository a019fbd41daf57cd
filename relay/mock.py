"""Mock mail transport for testing.

Records every message it is asked to send and either returns a receipt or
raises a configured error. Useful for unit testing the dispatch service and
the HTTP layer without touching a real SMTP server.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from .types import DeliveryReceipt, EmailMessage


@dataclass
class SentMessage:
    """Record of a message handed to the MockTransport."""

    message: EmailMessage
    receipt: DeliveryReceipt | None


class MockTransport:
    """Test transport that records messages and returns configurable results.

    Usage::

        transport = MockTransport()
        receipt = await transport.send(EmailMessage(to="a@b.com", subject="Hi", text="hi"))
        assert len(transport.sent) == 1

    Fix the message id::

        transport = MockTransport(message_id="X")

    Or make every send fail::

        transport = MockTransport(error=ConnectionError("refused"))
    """

    def __init__(
        self,
        *,
        message_id: str | None = None,
        error: Exception | None = None,
        verify_result: bool = True,
    ) -> None:
        self.message_id = message_id
        self.error = error
        self.verify_result = verify_result
        self.sent: list[SentMessage] = []
        self.verify_calls = 0

    @property
    def send_calls(self) -> int:
        return len(self.sent)

    async def verify(self) -> bool:
        self.verify_calls += 1
        return self.verify_result

    async def send(self, message: EmailMessage) -> DeliveryReceipt:
        if self.error is not None:
            self.sent.append(SentMessage(message=message, receipt=None))
            raise self.error

        receipt = DeliveryReceipt(message_id=self.message_id or f"<mock_{uuid.uuid4().hex[:12]}@relay.local>")
        self.sent.append(SentMessage(message=message, receipt=receipt))
        return receipt

    def reset(self) -> None:
        """Clear all recorded messages."""
        self.sent.clear()
        self.verify_calls = 0
