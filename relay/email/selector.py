"""Delivery backend selection.

Maps the configured provider onto SMTP connection parameters and builds the
single transport the process uses for its lifetime.
"""

from __future__ import annotations

import logging
from typing import assert_never

from relay.config import Settings
from relay.errors import FatalConfigError
from relay.types import (
    GMAIL_SMTP_HOST,
    GMAIL_SMTP_PORT,
    SENDGRID_SMTP_HOST,
    SENDGRID_SMTP_PORT,
    SENDGRID_SMTP_USER,
    CustomSMTPConfig,
    EmailProviderKind,
    GmailConfig,
    ProviderConfig,
    SendGridConfig,
    SMTPConnectionParams,
)

from .smtp import DEFAULT_TIMEOUT_SECONDS, SMTPTransport

logger = logging.getLogger(__name__)


def provider_config_from_settings(settings: Settings) -> ProviderConfig:
    """Pick the provider variant named by ``EMAIL_PROVIDER``.

    Raises:
        FatalConfigError: the provider name is not one of gmail, custom, sendgrid.
    """
    try:
        kind = EmailProviderKind(settings.email_provider)
    except ValueError:
        raise FatalConfigError(
            f"Invalid EMAIL_PROVIDER {settings.email_provider!r}. Use: gmail, custom, or sendgrid"
        ) from None

    if kind is EmailProviderKind.GMAIL:
        return GmailConfig(user=settings.smtp_user, app_password=settings.smtp_app_password)
    if kind is EmailProviderKind.CUSTOM:
        return CustomSMTPConfig(
            host=settings.smtp_host,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            user=settings.smtp_user,
            password=settings.smtp_password,
        )
    if kind is EmailProviderKind.SENDGRID:
        return SendGridConfig(api_key=settings.sendgrid_api_key)
    assert_never(kind)


def connection_params(config: ProviderConfig) -> SMTPConnectionParams:
    """Resolve a provider config into concrete SMTP connection parameters."""
    match config:
        case GmailConfig(user=user, app_password=app_password):
            return SMTPConnectionParams(
                host=GMAIL_SMTP_HOST,
                port=GMAIL_SMTP_PORT,
                username=user,
                password=app_password,
                use_tls=True,
                start_tls=False,
            )
        case CustomSMTPConfig(host=host, port=port, secure=secure, user=user, password=password):
            if not host:
                raise FatalConfigError("SMTP_HOST is required when EMAIL_PROVIDER=custom")
            return SMTPConnectionParams(
                host=host,
                port=port,
                username=user,
                password=password,
                use_tls=secure,
                start_tls=False if secure else None,
            )
        case SendGridConfig(api_key=api_key):
            return SMTPConnectionParams(
                host=SENDGRID_SMTP_HOST,
                port=SENDGRID_SMTP_PORT,
                username=SENDGRID_SMTP_USER,
                password=api_key,
            )
        case _:
            assert_never(config)


def build_transport(config: ProviderConfig, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> SMTPTransport:
    """Create the transport for ``config``.

    Verification is left to the caller so startup never blocks on the network.
    """
    params = connection_params(config)
    logger.info("Setting up email transport with provider %s (%s:%s)", type(config).__name__, params.host, params.port)
    return SMTPTransport(params, timeout=timeout)


def build_transport_from_settings(settings: Settings) -> SMTPTransport:
    return build_transport(provider_config_from_settings(settings), timeout=settings.smtp_timeout)
