"""Request bodies accepted by the HTTP surface."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .types import EmailMessage, OAuthExchangeRequest


class SendEmailBody(BaseModel):
    """Body of ``POST /api/send-email``. Presence rules are enforced by the dispatch service."""

    model_config = ConfigDict(populate_by_name=True)

    to: str | None = None
    subject: str | None = None
    html: str | None = None
    text: str | None = None
    from_: str | None = Field(default=None, alias="from")

    def to_message(self) -> EmailMessage:
        return EmailMessage(
            to=self.to or "",
            subject=self.subject or "",
            html=self.html or None,
            text=self.text or None,
            from_=self.from_ or None,
        )


class OAuthTokenBody(BaseModel):
    """Body of the ``/api/oauth/*/token`` endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    code: str | None = None
    redirect_uri: str | None = Field(default=None, alias="redirectUri")
    code_verifier: str | None = Field(default=None, alias="codeVerifier")

    def to_request(self) -> OAuthExchangeRequest:
        return OAuthExchangeRequest(
            code=self.code or "",
            redirect_uri=self.redirect_uri or "",
            code_verifier=self.code_verifier or None,
        )
