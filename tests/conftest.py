"""Shared test fixtures for the relay."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from relay import MailDispatchService, MockTransport, Settings, create_app

KNOWN_ORIGIN = "https://known.example"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        email_provider="gmail",
        smtp_user="sender@gmail.com",
        smtp_app_password="app-password",
        from_name="Otazumi",
        from_email="noreply@otazumi.page",
        allowed_origins=(KNOWN_ORIGIN, "http://localhost:5173"),
        anilist_client_id="anilist-id",
        anilist_client_secret="anilist-secret",
        mal_client_id="mal-id",
        mal_client_secret="mal-secret",
        node_env="production",
    )


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport(message_id="X")


@pytest.fixture
def dispatch(mock_transport: MockTransport) -> MailDispatchService:
    return MailDispatchService(mock_transport, default_from="Otazumi <noreply@otazumi.page>")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider_calls() -> list[httpx.Request]:
    return []


@pytest.fixture
def provider_responses() -> dict[str, httpx.Response]:
    """Canned identity-provider responses keyed by host; tests overwrite entries as needed."""
    return {
        "anilist.co": httpx.Response(200, json={"access_token": "anilist-token", "token_type": "Bearer", "expires_in": 31536000}),
        "myanimelist.net": httpx.Response(200, json={"access_token": "mal-token", "refresh_token": "mal-refresh", "token_type": "Bearer"}),
    }


@pytest.fixture
def http_client(provider_calls: list[httpx.Request], provider_responses: dict[str, httpx.Response]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        provider_calls.append(request)
        return provider_responses[request.url.host]

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_client(
    settings: Settings,
    mock_transport: MockTransport,
    http_client: httpx.AsyncClient,
    clock: FakeClock,
) -> Callable[..., TestClient]:
    def factory(**overrides: object) -> TestClient:
        kwargs: dict[str, object] = {
            "transport": mock_transport,
            "http_client": http_client,
            "clock": clock,
        }
        app_settings = overrides.pop("settings", settings)
        kwargs.update(overrides)
        return TestClient(create_app(app_settings, **kwargs))

    return factory


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
