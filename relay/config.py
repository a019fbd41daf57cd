"""Process configuration read from the environment (and an optional ``.env``)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from .errors import FatalConfigError

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:4173",
    "https://otazumi.netlify.app",
    "https://otazumi.page",
    "https://www.otazumi.page",
)

_NON_PRODUCTION_ENVS = {"development", "dev", "test"}


@dataclass(frozen=True, slots=True)
class Settings:
    """Everything the relay reads from its environment.

    Key names match the environment variables the service has always used so
    existing deployments keep working unchanged.
    """

    email_provider: str = "gmail"
    smtp_user: str = ""
    smtp_app_password: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_password: str = ""
    sendgrid_api_key: str = ""
    from_name: str = "Otazumi"
    from_email: str = ""
    allowed_origins: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    anilist_client_id: str = ""
    anilist_client_secret: str = ""
    mal_client_id: str = ""
    mal_client_secret: str = ""
    port: int = 3001
    node_env: str = "production"
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max: int = 10
    oauth_rate_limit_max: int = 20
    smtp_timeout: float = 20.0
    oauth_timeout: float = 15.0
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.node_env.lower() not in _NON_PRODUCTION_ENVS

    @property
    def sender_address(self) -> str:
        """Envelope sender; falls back to the SMTP login."""
        return self.from_email or self.smtp_user

    @property
    def default_from(self) -> str:
        return f"{self.from_name} <{self.sender_address}>"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``environ`` (defaults to ``os.environ`` after loading ``.env``)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        def get(key: str, default: str = "") -> str:
            return environ.get(key, default).strip()

        origins_raw = get("ALLOWED_ORIGINS")
        origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip()) if origins_raw else DEFAULT_ALLOWED_ORIGINS

        return cls(
            email_provider=(get("EMAIL_PROVIDER") or "gmail").lower(),
            smtp_user=get("SMTP_USER"),
            smtp_app_password=get("SMTP_APP_PASSWORD"),
            smtp_host=get("SMTP_HOST"),
            smtp_port=_parse_int(environ, "SMTP_PORT", 587),
            smtp_secure=get("SMTP_SECURE").lower() == "true",
            smtp_password=get("SMTP_PASSWORD"),
            sendgrid_api_key=get("SENDGRID_API_KEY"),
            from_name=get("FROM_NAME") or "Otazumi",
            from_email=get("FROM_EMAIL"),
            allowed_origins=origins,
            anilist_client_id=get("ANILIST_CLIENT_ID"),
            anilist_client_secret=get("ANILIST_CLIENT_SECRET"),
            mal_client_id=get("MAL_CLIENT_ID"),
            mal_client_secret=get("MAL_CLIENT_SECRET"),
            port=_parse_int(environ, "PORT", 3001),
            node_env=get("NODE_ENV") or "production",
            rate_limit_window_seconds=_parse_int(environ, "RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
            rate_limit_max=_parse_int(environ, "RATE_LIMIT_MAX", 10),
            oauth_rate_limit_max=_parse_int(environ, "OAUTH_RATE_LIMIT_MAX", 20),
            smtp_timeout=_parse_float(environ, "SMTP_TIMEOUT", 20.0),
            oauth_timeout=_parse_float(environ, "OAUTH_TIMEOUT", 15.0),
            log_level=(get("LOG_LEVEL") or "INFO").upper(),
        )


def _parse_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise FatalConfigError(f"{key} must be an integer, got {raw!r}") from None


def _parse_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise FatalConfigError(f"{key} must be a number, got {raw!r}") from None
