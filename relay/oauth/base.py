"""Identity provider definitions for the OAuth exchange proxy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from relay.types import OAuthClientCredentials, OAuthExchangeRequest


class BodyEncoding(str, Enum):
    """How a token endpoint expects its request body."""

    JSON = "json"
    FORM = "form"


@dataclass(frozen=True, slots=True)
class OAuthProviderSpec:
    """Everything that differs between two identity providers' token exchanges."""

    name: str
    token_url: str
    encoding: BodyEncoding
    requires_code_verifier: bool = False

    @property
    def missing_fields_message(self) -> str:
        if self.requires_code_verifier:
            return "Missing required fields: code, codeVerifier, and redirectUri"
        return "Missing required fields: code and redirectUri"

    def build_payload(self, request: OAuthExchangeRequest, credentials: OAuthClientCredentials) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "grant_type": "authorization_code",
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "redirect_uri": request.redirect_uri,
            "code": request.code,
        }
        if self.requires_code_verifier:
            payload["code_verifier"] = request.code_verifier
        return payload

    def request_kwargs(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient.post`` in this provider's encoding."""
        if self.encoding is BodyEncoding.JSON:
            return {"json": payload, "headers": {"Content-Type": "application/json", "Accept": "application/json"}}
        return {"data": payload, "headers": {"Content-Type": "application/x-www-form-urlencoded"}}


ANILIST = OAuthProviderSpec(
    name="AniList",
    token_url="https://anilist.co/api/v2/oauth/token",
    encoding=BodyEncoding.JSON,
)

MYANIMELIST = OAuthProviderSpec(
    name="MyAnimeList",
    token_url="https://myanimelist.net/v1/oauth2/token",
    encoding=BodyEncoding.FORM,
    requires_code_verifier=True,
)
