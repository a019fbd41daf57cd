"""Base protocol for mail transports."""

from __future__ import annotations

from typing import Protocol

from relay.types import DeliveryReceipt, EmailMessage


class MailTransport(Protocol):
    """Interface that every delivery backend must implement.

    ``send`` receives an already-normalized message (``from_``, ``html`` and
    ``text`` filled in) and raises on failure; classification of the raised
    error is the dispatch service's job.
    """

    async def verify(self) -> bool:
        """Check that the backend is reachable and accepts our credentials."""
        ...

    async def send(self, message: EmailMessage) -> DeliveryReceipt:
        """Deliver one message and return its receipt."""
        ...
