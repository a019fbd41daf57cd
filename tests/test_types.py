"""Tests for core types and the error taxonomy."""

import pytest

from relay import (
    AuthError,
    ConnectivityError,
    EmailProviderKind,
    ExchangeError,
    FatalConfigError,
    RateDecision,
    RateLimitError,
    RelayError,
    UnclassifiedError,
    ValidationError,
)


class TestRateDecision:
    def test_allow_factory(self):
        decision = RateDecision.allow(limit=10, remaining=4, reset_after=30)
        assert decision.allowed
        assert decision.retry_after is None
        assert decision.remaining == 4

    def test_deny_factory(self):
        decision = RateDecision.deny(limit=10, retry_after=12)
        assert not decision.allowed
        assert decision.remaining == 0
        assert decision.retry_after == 12
        assert decision.reset_after == 12


class TestEmailProviderKind:
    def test_values_match_environment_names(self):
        assert {k.value for k in EmailProviderKind} == {"gmail", "custom", "sendgrid"}

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            EmailProviderKind("mailgun")


class TestErrors:
    @pytest.mark.parametrize(
        ("cls", "status"),
        [
            (ValidationError, 400),
            (AuthError, 401),
            (ConnectivityError, 503),
            (UnclassifiedError, 500),
            (FatalConfigError, 500),
        ],
    )
    def test_default_status_codes(self, cls, status):
        error = cls("message")
        assert isinstance(error, RelayError)
        assert error.status_code == status
        assert error.message == "message"
        assert error.details is None

    def test_exchange_error_carries_provider_status(self):
        error = ExchangeError("Failed to exchange authorization code", status_code=418)
        assert error.status_code == 418
        assert ExchangeError("x").status_code == 502

    def test_status_override_is_per_instance(self):
        ExchangeError("x", status_code=401)
        assert ExchangeError.status_code == 502

    def test_only_unclassified_and_exchange_expose_details(self):
        exposing = {
            cls
            for cls in (ValidationError, AuthError, ConnectivityError, ExchangeError, UnclassifiedError, FatalConfigError)
            if cls.expose_details
        }
        assert exposing == {ExchangeError, UnclassifiedError}

    def test_rate_limit_error(self):
        error = RateLimitError("slow down", retry_after=5, limit=10)
        assert error.status_code == 429
        assert error.retry_after == 5
        assert error.limit == 10
