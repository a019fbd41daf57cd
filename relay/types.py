"""Core types for the relay service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class EmailProviderKind(str, Enum):
    """Mail delivery backends selectable through ``EMAIL_PROVIDER``."""

    GMAIL = "gmail"
    CUSTOM = "custom"
    SENDGRID = "sendgrid"


# ── Provider configuration ────────────────────────────────────────────

GMAIL_SMTP_HOST = "smtp.gmail.com"
GMAIL_SMTP_PORT = 465
SENDGRID_SMTP_HOST = "smtp.sendgrid.net"
SENDGRID_SMTP_PORT = 587
SENDGRID_SMTP_USER = "apikey"


@dataclass(frozen=True, slots=True)
class GmailConfig:
    """Gmail account authenticated with an app password."""

    user: str
    app_password: str


@dataclass(frozen=True, slots=True)
class CustomSMTPConfig:
    """Any SMTP relay (Hostinger, Namecheap, self-hosted...)."""

    host: str
    user: str
    password: str
    port: int = 587
    secure: bool = False  # True for implicit TLS (465), False for STARTTLS


@dataclass(frozen=True, slots=True)
class SendGridConfig:
    """SendGrid through its SMTP relay."""

    api_key: str


ProviderConfig = Union[GmailConfig, CustomSMTPConfig, SendGridConfig]


@dataclass(frozen=True, slots=True)
class SMTPConnectionParams:
    """Resolved connection parameters for an SMTP transport."""

    host: str
    port: int
    username: str
    password: str
    use_tls: bool = False
    start_tls: bool | None = None  # None lets the client upgrade when offered


# ── Email ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class EmailMessage:
    """An outbound transactional email as received from a caller."""

    to: str
    subject: str
    html: str | None = None
    text: str | None = None
    from_: str | None = None


@dataclass(frozen=True, slots=True)
class DeliveryReceipt:
    """Result of an accepted send."""

    message_id: str


# ── OAuth ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class OAuthExchangeRequest:
    """An authorization code to trade for an access token."""

    code: str
    redirect_uri: str
    code_verifier: str | None = None


@dataclass(frozen=True, slots=True)
class OAuthClientCredentials:
    """Server-held client credentials for one identity provider."""

    client_id: str
    client_secret: str


# ── Admission ─────────────────────────────────────────────────────────


@dataclass(slots=True)
class RateWindow:
    """Request count for one client within the current fixed window."""

    window_start: float
    count: int = 0


@dataclass(frozen=True, slots=True)
class RateDecision:
    """Outcome of an admission check."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the current window closes
    retry_after: int | None = None

    @classmethod
    def allow(cls, *, limit: int, remaining: int, reset_after: int) -> RateDecision:
        return cls(allowed=True, limit=limit, remaining=remaining, reset_after=reset_after)

    @classmethod
    def deny(cls, *, limit: int, retry_after: int) -> RateDecision:
        return cls(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_after=retry_after,
            retry_after=retry_after,
        )


# ── Origin ────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class OriginDecision:
    """Whether an origin satisfies the CORS contract and which headers to emit."""

    allow: bool
    headers: dict[str, str] = field(default_factory=dict)
