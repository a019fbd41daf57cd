"""Mail delivery backends."""

from .base import MailTransport
from .selector import build_transport, build_transport_from_settings, connection_params, provider_config_from_settings
from .smtp import SMTPTransport, build_mime_message

__all__ = [
    "MailTransport",
    "SMTPTransport",
    "build_mime_message",
    "build_transport",
    "build_transport_from_settings",
    "connection_params",
    "provider_config_from_settings",
]
