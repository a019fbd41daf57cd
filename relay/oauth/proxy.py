"""OAuth authorization-code exchange proxy."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from relay.errors import ExchangeError, ValidationError
from relay.types import OAuthClientCredentials, OAuthExchangeRequest

from .base import OAuthProviderSpec

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
EXCHANGE_FAILED_MESSAGE = "Failed to exchange authorization code"
PROVIDER_UNREACHABLE_MESSAGE = "Could not reach the identity provider"
INVALID_PROVIDER_RESPONSE_MESSAGE = "Identity provider returned an invalid response"


class OAuthExchangeProxy:
    """Trades an authorization code for tokens on the caller's behalf.

    The client secret stays on the server; the provider's token payload is
    returned unmodified. The provider's error bodies are logged, never relayed.
    """

    def __init__(
        self,
        spec: OAuthProviderSpec,
        credentials: OAuthClientCredentials,
        client: httpx.AsyncClient,
    ) -> None:
        self.spec = spec
        self._credentials = credentials
        self._client = client

    async def exchange(self, request: OAuthExchangeRequest) -> dict[str, Any]:
        """Exchange ``request.code`` for the provider's token payload.

        Raises:
            ValidationError: a required field is missing; no request is made.
            ExchangeError: the provider refused or could not be reached.
        """
        self.validate(request)
        payload = self.spec.build_payload(request, self._credentials)

        logger.info("Exchanging %s authorization code for token", self.spec.name)
        try:
            response = await self._client.post(self.spec.token_url, **self.spec.request_kwargs(payload))
        except httpx.TimeoutException as exc:
            logger.error("%s token exchange timed out: %s", self.spec.name, exc)
            raise ExchangeError(PROVIDER_UNREACHABLE_MESSAGE, status_code=504, details=str(exc)) from exc
        except httpx.TransportError as exc:
            logger.error("%s token exchange could not connect: %s", self.spec.name, exc)
            raise ExchangeError(PROVIDER_UNREACHABLE_MESSAGE, status_code=503, details=str(exc)) from exc

        if not response.is_success:
            logger.error(
                "%s token exchange failed. Status: %s, Body: %s",
                self.spec.name,
                response.status_code,
                response.text,
            )
            # only 4xx and 5xx statuses are relayed
            status = response.status_code if response.status_code >= 400 else 502
            raise ExchangeError(EXCHANGE_FAILED_MESSAGE, status_code=status)

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("%s returned a non-JSON token response", self.spec.name)
            raise ExchangeError(INVALID_PROVIDER_RESPONSE_MESSAGE, status_code=502) from exc
        if not isinstance(data, dict):
            logger.error("%s returned a token response that is not an object", self.spec.name)
            raise ExchangeError(INVALID_PROVIDER_RESPONSE_MESSAGE, status_code=502)

        logger.info("%s token exchange successful", self.spec.name)
        return data

    def validate(self, request: OAuthExchangeRequest) -> None:
        if not request.code or not request.redirect_uri:
            raise ValidationError(self.spec.missing_fields_message)
        if self.spec.requires_code_verifier and not request.code_verifier:
            raise ValidationError(self.spec.missing_fields_message)
