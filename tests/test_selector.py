"""Tests for delivery backend selection."""

import pytest

from relay import CustomSMTPConfig, FatalConfigError, GmailConfig, SendGridConfig, Settings, SMTPTransport
from relay.email import build_transport, build_transport_from_settings, connection_params, provider_config_from_settings


class TestProviderConfigFromSettings:
    def test_gmail(self):
        config = provider_config_from_settings(
            Settings(email_provider="gmail", smtp_user="me@gmail.com", smtp_app_password="app-pw")
        )
        assert config == GmailConfig(user="me@gmail.com", app_password="app-pw")

    def test_custom(self):
        config = provider_config_from_settings(
            Settings(
                email_provider="custom",
                smtp_host="smtp.hostinger.com",
                smtp_port=465,
                smtp_secure=True,
                smtp_user="hi@site.io",
                smtp_password="pw",
            )
        )
        assert config == CustomSMTPConfig(host="smtp.hostinger.com", port=465, secure=True, user="hi@site.io", password="pw")

    def test_sendgrid(self):
        config = provider_config_from_settings(Settings(email_provider="sendgrid", sendgrid_api_key="SG.key"))
        assert config == SendGridConfig(api_key="SG.key")

    def test_unknown_provider_is_fatal(self):
        with pytest.raises(FatalConfigError, match="Use: gmail, custom, or sendgrid"):
            provider_config_from_settings(Settings(email_provider="mailgun"))


class TestConnectionParams:
    def test_gmail_uses_implicit_tls(self):
        params = connection_params(GmailConfig(user="me@gmail.com", app_password="app-pw"))

        assert params.host == "smtp.gmail.com"
        assert params.port == 465
        assert params.use_tls is True
        assert params.username == "me@gmail.com"
        assert params.password == "app-pw"

    def test_sendgrid_uses_fixed_relay_and_user(self):
        params = connection_params(SendGridConfig(api_key="SG.key"))

        assert params.host == "smtp.sendgrid.net"
        assert params.port == 587
        assert params.username == "apikey"
        assert params.password == "SG.key"
        assert params.use_tls is False

    def test_custom_secure(self):
        params = connection_params(CustomSMTPConfig(host="mail.x.io", port=465, secure=True, user="u", password="p"))

        assert params.use_tls is True
        assert params.start_tls is False

    def test_custom_starttls(self):
        params = connection_params(CustomSMTPConfig(host="mail.x.io", user="u", password="p"))

        assert params.port == 587
        assert params.use_tls is False
        assert params.start_tls is None

    def test_custom_without_host_is_fatal(self):
        with pytest.raises(FatalConfigError, match="SMTP_HOST"):
            connection_params(CustomSMTPConfig(host="", user="u", password="p"))

    def test_unknown_config_type_is_unreachable(self):
        with pytest.raises(AssertionError):
            connection_params(object())  # type: ignore[arg-type]


class TestBuildTransport:
    def test_returns_smtp_transport(self):
        transport = build_transport(SendGridConfig(api_key="SG.key"), timeout=5.0)

        assert isinstance(transport, SMTPTransport)
        assert transport.params.host == "smtp.sendgrid.net"

    def test_repr_hides_password(self):
        transport = build_transport(GmailConfig(user="me@gmail.com", app_password="super-secret"))
        assert "super-secret" not in repr(transport)

    def test_from_settings(self):
        transport = build_transport_from_settings(Settings(email_provider="gmail", smtp_user="me@gmail.com"))
        assert transport.params.host == "smtp.gmail.com"

    def test_from_settings_unknown_provider(self):
        with pytest.raises(FatalConfigError):
            build_transport_from_settings(Settings(email_provider="carrier-pigeon"))
