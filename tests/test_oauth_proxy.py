"""Tests for the OAuth exchange proxy."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from relay import ANILIST, MYANIMELIST, ExchangeError, OAuthClientCredentials, OAuthExchangeProxy, OAuthExchangeRequest, ValidationError


def _proxy(spec, handler) -> tuple[OAuthExchangeProxy, list[httpx.Request]]:
    calls: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return OAuthExchangeProxy(spec, OAuthClientCredentials("client-id", "client-secret"), client), calls


def _ok(payload=None):
    body = payload if payload is not None else {"access_token": "tok", "token_type": "Bearer"}
    return lambda request: httpx.Response(200, json=body)


class TestAniList:
    async def test_sends_json_with_server_secrets(self):
        proxy, calls = _proxy(ANILIST, _ok())

        result = await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert result == {"access_token": "tok", "token_type": "Bearer"}
        assert len(calls) == 1
        request = calls[0]
        assert str(request.url) == "https://anilist.co/api/v2/oauth/token"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"
        assert json.loads(request.content) == {
            "grant_type": "authorization_code",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "redirect_uri": "https://app/cb",
            "code": "abc",
        }

    async def test_code_verifier_not_required(self):
        proxy, calls = _proxy(ANILIST, _ok())
        await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))
        assert "code_verifier" not in json.loads(calls[0].content)

    @pytest.mark.parametrize(
        "request_",
        [
            OAuthExchangeRequest(code="", redirect_uri="https://app/cb"),
            OAuthExchangeRequest(code="abc", redirect_uri=""),
        ],
    )
    async def test_missing_fields(self, request_):
        proxy, calls = _proxy(ANILIST, _ok())

        with pytest.raises(ValidationError, match="Missing required fields: code and redirectUri"):
            await proxy.exchange(request_)

        assert calls == []


class TestMyAnimeList:
    async def test_sends_form_encoded_body_with_verifier(self):
        proxy, calls = _proxy(MYANIMELIST, _ok())

        await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb", code_verifier="v" * 43))

        request = calls[0]
        assert str(request.url) == "https://myanimelist.net/v1/oauth2/token"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        assert form == {
            "client_id": "client-id",
            "client_secret": "client-secret",
            "grant_type": "authorization_code",
            "code": "abc",
            "redirect_uri": "https://app/cb",
            "code_verifier": "v" * 43,
        }

    async def test_missing_code_verifier_makes_no_call(self):
        proxy, calls = _proxy(MYANIMELIST, _ok())

        with pytest.raises(ValidationError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert exc_info.value.message == "Missing required fields: code, codeVerifier, and redirectUri"
        assert exc_info.value.status_code == 400
        assert calls == []


class TestProviderFailures:
    async def test_non_success_status_is_propagated(self):
        proxy, _ = _proxy(ANILIST, lambda r: httpx.Response(400, json={"error": "invalid_grant", "hint": "code abc"}))

        with pytest.raises(ExchangeError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Failed to exchange authorization code"
        assert exc_info.value.details is None

    async def test_provider_server_error_is_propagated(self):
        proxy, _ = _proxy(MYANIMELIST, lambda r: httpx.Response(503, text="maintenance"))

        with pytest.raises(ExchangeError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb", code_verifier="v"))

        assert exc_info.value.status_code == 503

    @pytest.mark.parametrize("status", [301, 302, 304])
    async def test_redirect_status_becomes_bad_gateway(self, status):
        proxy, _ = _proxy(ANILIST, lambda r: httpx.Response(status, headers={"Location": "https://anilist.co/login"}))

        with pytest.raises(ExchangeError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Failed to exchange authorization code"

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        proxy, _ = _proxy(ANILIST, handler)

        with pytest.raises(ExchangeError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert exc_info.value.status_code == 504

    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        proxy, _ = _proxy(ANILIST, handler)

        with pytest.raises(ExchangeError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert exc_info.value.status_code == 503

    async def test_non_json_success_body(self):
        proxy, _ = _proxy(ANILIST, lambda r: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ExchangeError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert exc_info.value.status_code == 502

    async def test_non_object_json_body(self):
        proxy, _ = _proxy(ANILIST, lambda r: httpx.Response(200, json=["token"]))

        with pytest.raises(ExchangeError) as exc_info:
            await proxy.exchange(OAuthExchangeRequest(code="abc", redirect_uri="https://app/cb"))

        assert exc_info.value.status_code == 502
