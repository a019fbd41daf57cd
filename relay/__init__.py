"""
otazumi-relay: transactional email and OAuth code-exchange relay.

A small HTTP backend that does two jobs for a browser frontend: it sends
transactional email through one configured mail provider, and it trades
OAuth authorization codes for tokens with AniList and MyAnimeList so the
client secrets never leave the server.

Running the server::

    EMAIL_PROVIDER=gmail SMTP_USER=me@gmail.com SMTP_APP_PASSWORD=... python -m relay

Using the pieces directly to send an email::

    from relay import EmailMessage, MailDispatchService, build_transport, GmailConfig

    transport = build_transport(GmailConfig(user="me@gmail.com", app_password="..."))
    service = MailDispatchService(transport, default_from="Otazumi <me@gmail.com>")
    receipt = await service.send(EmailMessage(to="user@example.com", subject="Hi", html="<p>Hello</p>"))
    print(receipt.message_id)

Exchange an authorization code::

    import httpx
    from relay import ANILIST, OAuthClientCredentials, OAuthExchangeProxy, OAuthExchangeRequest

    async with httpx.AsyncClient(timeout=15) as client:
        proxy = OAuthExchangeProxy(ANILIST, OAuthClientCredentials("id", "secret"), client)
        token = await proxy.exchange(OAuthExchangeRequest(code="...", redirect_uri="https://..."))

For testing::

    from relay import MockTransport, create_app, Settings

    app = create_app(Settings(), transport=MockTransport(message_id="X"))

Module overview
---------------
- ``types``      — Core dataclasses: provider configs, EmailMessage, receipts, decisions
- ``errors``     — Error taxonomy mapped onto HTTP statuses
- ``config``     — Settings read from the environment / ``.env``
- ``origin``     — OriginGuard: allow-list and CORS headers
- ``admission``  — AdmissionLimiter: per-client fixed-window rate limiting
- ``email/``     — Provider selection and the aiosmtplib SMTP transport
- ``dispatch``   — MailDispatchService: validation, defaults, failure classification
- ``oauth/``     — OAuthExchangeProxy and the AniList / MyAnimeList definitions
- ``mock``       — MockTransport for tests
- ``middleware`` — ASGI request body size limit
- ``app``        — FastAPI application factory

What this service does NOT do:
- Store sent messages or their outcomes
- Retry, queue or template email
- Authenticate callers (origins are allow-listed, nothing more)
- Inspect or store OAuth tokens
"""

__version__ = "1.1.0"

from .admission import AdmissionLimiter
from .app import RelayContext, create_app
from .config import Settings
from .dispatch import MailDispatchService
from .email import MailTransport, SMTPTransport, build_transport, provider_config_from_settings
from .errors import (
    AuthError,
    ConnectivityError,
    ExchangeError,
    FatalConfigError,
    RateLimitError,
    RelayError,
    UnclassifiedError,
    ValidationError,
)
from .mock import MockTransport
from .oauth import ANILIST, MYANIMELIST, OAuthExchangeProxy, OAuthProviderSpec
from .origin import OriginGuard
from .types import (
    CustomSMTPConfig,
    DeliveryReceipt,
    EmailMessage,
    EmailProviderKind,
    GmailConfig,
    OAuthClientCredentials,
    OAuthExchangeRequest,
    OriginDecision,
    ProviderConfig,
    RateDecision,
    SendGridConfig,
)

__all__ = [
    "__version__",
    # Application
    "create_app",
    "RelayContext",
    "Settings",
    # Admission
    "AdmissionLimiter",
    "OriginGuard",
    # Email
    "MailDispatchService",
    "MailTransport",
    "SMTPTransport",
    "MockTransport",
    "build_transport",
    "provider_config_from_settings",
    # OAuth
    "ANILIST",
    "MYANIMELIST",
    "OAuthExchangeProxy",
    "OAuthProviderSpec",
    # Types
    "CustomSMTPConfig",
    "DeliveryReceipt",
    "EmailMessage",
    "EmailProviderKind",
    "GmailConfig",
    "OAuthClientCredentials",
    "OAuthExchangeRequest",
    "OriginDecision",
    "ProviderConfig",
    "RateDecision",
    "SendGridConfig",
    # Errors
    "AuthError",
    "ConnectivityError",
    "ExchangeError",
    "FatalConfigError",
    "RateLimitError",
    "RelayError",
    "UnclassifiedError",
    "ValidationError",
]
