"""HTTP surface of the relay.

``create_app`` wires a :class:`RelayContext` (transport, limiters, origin
guard, OAuth proxies) into a FastAPI application. Nothing here is a module
global, so tests build as many isolated apps as they like.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .admission import AdmissionLimiter
from .config import Settings
from .dispatch import MailDispatchService
from .email import MailTransport, build_transport_from_settings
from .errors import RateLimitError, RelayError, UnclassifiedError
from .middleware import BodySizeLimitMiddleware
from .oauth import ANILIST, MYANIMELIST, OAuthExchangeProxy
from .origin import OriginGuard
from .schemas import OAuthTokenBody, SendEmailBody
from .types import OAuthClientCredentials, RateDecision

logger = logging.getLogger(__name__)

SERVICE_NAME = "Otazumi Email Server"

EMAIL_RATE_LIMIT_MESSAGE = "Too many emails sent from this IP, please try again later."
OAUTH_RATE_LIMIT_MESSAGE = "Too many token exchanges from this IP, please try again later."
OAUTH_INTERNAL_ERROR_MESSAGE = "Internal server error during OAuth token exchange"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@dataclass
class RelayContext:
    """Process-wide state shared by every request handler."""

    settings: Settings
    transport: MailTransport
    dispatch: MailDispatchService
    origin_guard: OriginGuard
    email_limiter: AdmissionLimiter
    oauth_limiter: AdmissionLimiter
    oauth_proxies: dict[str, OAuthExchangeProxy]
    http_client: httpx.AsyncClient
    owns_http_client: bool = False
    verify_task: asyncio.Task[bool] | None = field(default=None, repr=False)


def build_context(
    settings: Settings,
    *,
    transport: MailTransport | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] | None = None,
) -> RelayContext:
    """Assemble the shared state. Raises ``FatalConfigError`` for an unusable provider."""
    if transport is None:
        transport = build_transport_from_settings(settings)

    owns_http_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.oauth_timeout)

    limiter_kwargs: dict[str, Any] = {"window_seconds": settings.rate_limit_window_seconds}
    if clock is not None:
        limiter_kwargs["clock"] = clock

    return RelayContext(
        settings=settings,
        transport=transport,
        dispatch=MailDispatchService(transport, default_from=settings.default_from),
        origin_guard=OriginGuard(settings.allowed_origins),
        email_limiter=AdmissionLimiter(max_requests=settings.rate_limit_max, **limiter_kwargs),
        oauth_limiter=AdmissionLimiter(max_requests=settings.oauth_rate_limit_max, **limiter_kwargs),
        oauth_proxies={
            "anilist": OAuthExchangeProxy(
                ANILIST,
                OAuthClientCredentials(settings.anilist_client_id, settings.anilist_client_secret),
                http_client,
            ),
            "mal": OAuthExchangeProxy(
                MYANIMELIST,
                OAuthClientCredentials(settings.mal_client_id, settings.mal_client_secret),
                http_client,
            ),
        },
        http_client=http_client,
        owns_http_client=owns_http_client,
    )


def get_context(request: Request) -> RelayContext:
    return request.app.state.relay


def client_identity(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit_headers(decision: RateDecision) -> dict[str, str]:
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(decision.reset_after),
    }
    if decision.retry_after is not None:
        headers["Retry-After"] = str(decision.retry_after)
    return headers


def _admission(limiter_name: str, message: str) -> Callable[..., Any]:
    async def admit(request: Request, response: Response) -> RateDecision:
        limiter: AdmissionLimiter = getattr(get_context(request), limiter_name)
        decision = limiter.admit(client_identity(request))
        if not decision.allowed:
            raise RateLimitError(message, retry_after=decision.retry_after or 1, limit=decision.limit)
        request.state.rate_decision = decision
        response.headers.update(rate_limit_headers(decision))
        return decision

    return admit


def _admitted_headers(request: Request) -> dict[str, str]:
    decision: RateDecision | None = getattr(request.state, "rate_decision", None)
    return rate_limit_headers(decision) if decision is not None else {}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _error_body(ctx: RelayContext, exc: RelayError) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": exc.message}
    if exc.details and exc.expose_details and not ctx.settings.is_production:
        body["details"] = exc.details
    return body


async def _verify_transport(transport: MailTransport) -> bool:
    try:
        ok = await transport.verify()
    except Exception:
        logger.exception("SMTP configuration check raised unexpectedly")
        return False
    if not ok:
        logger.warning("SMTP configuration error. Check EMAIL_PROVIDER and SMTP credentials; sends will still be attempted")
    return ok


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the configuration and kick off a non-blocking transport check."""
    ctx: RelayContext = app.state.relay
    settings = ctx.settings
    logger.info("%s starting on port %s", SERVICE_NAME, settings.port)
    logger.info("Provider: %s", settings.email_provider)
    logger.info("From: %s", settings.sender_address or "(unset)")
    logger.info("Allowed origins: %s", ", ".join(ctx.origin_guard.allowed_origins))

    ctx.verify_task = asyncio.create_task(_verify_transport(ctx.transport))
    try:
        yield
    finally:
        if ctx.verify_task is not None and not ctx.verify_task.done():
            ctx.verify_task.cancel()
        if ctx.owns_http_client:
            await ctx.http_client.aclose()
        logger.info("%s stopped", SERVICE_NAME)


def create_app(
    settings: Settings | None = None,
    *,
    transport: MailTransport | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        settings: Configuration; read from the environment when omitted.
        transport: Mail transport to use instead of the one ``settings`` selects.
        http_client: Client for OAuth provider calls. Closed on shutdown only
            when the app created it.
        clock: Monotonic time source for the admission limiters.

    Raises:
        FatalConfigError: ``EMAIL_PROVIDER`` names no known provider.
    """
    if settings is None:
        settings = Settings.from_env()

    app = FastAPI(
        title="Otazumi Email & OAuth Server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.relay = build_context(settings, transport=transport, http_client=http_client, clock=clock)

    _register_error_handlers(app)
    _register_middleware(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        if isinstance(exc, RateLimitError):
            headers = rate_limit_headers(RateDecision.deny(limit=exc.limit, retry_after=exc.retry_after))
        else:
            headers = _admitted_headers(request)
        return JSONResponse(status_code=exc.status_code, content=_error_body(get_context(request), exc), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected malformed body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request body"},
            headers=_admitted_headers(request),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=exc.headers,
        )


def _register_middleware(app: FastAPI) -> None:
    # Registration order is innermost first.
    app.add_middleware(BodySizeLimitMiddleware)

    @app.middleware("http")
    async def security_headers(request: Request, call_next: Callable[..., Any]) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.middleware("http")
    async def cors_and_fallback(request: Request, call_next: Callable[..., Any]) -> Response:
        ctx = get_context(request)
        decision = ctx.origin_guard.evaluate(request.headers.get("origin"))

        if request.method == "OPTIONS":
            logger.debug("Handling preflight for %s from %s", request.url.path, request.headers.get("origin"))
            response: Response = Response(status_code=204)
        else:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("Server error on %s %s", request.method, request.url.path)
                response = JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

        response.headers.update(decision.headers)
        return response


def _register_routes(app: FastAPI) -> None:
    admit_email = _admission("email_limiter", EMAIL_RATE_LIMIT_MESSAGE)
    admit_oauth = _admission("oauth_limiter", OAUTH_RATE_LIMIT_MESSAGE)

    @app.get("/")
    async def root(request: Request) -> dict[str, Any]:
        ctx = get_context(request)
        return {
            "service": "Otazumi Email & OAuth Server",
            "version": __version__,
            "status": "running",
            "endpoints": {
                "GET /": "API documentation (this page)",
                "GET /health": "Health check endpoint",
                "POST /api/send-email": "Send email endpoint",
                "POST /api/oauth/anilist/token": "Exchange AniList OAuth code for token",
                "POST /api/oauth/mal/token": "Exchange MyAnimeList OAuth code for token",
            },
            "email": {
                "method": "POST",
                "url": "/api/send-email",
                "body": {
                    "to": "recipient@example.com",
                    "subject": "Email subject",
                    "html": "<h1>HTML content</h1>",
                    "text": "Plain text content (optional)",
                },
            },
            "oauth": {
                "anilist": {
                    "method": "POST",
                    "url": "/api/oauth/anilist/token",
                    "body": {
                        "code": "authorization_code_from_anilist",
                        "redirectUri": "https://yourdomain.com/auth/anilist/callback",
                    },
                },
                "myanimelist": {
                    "method": "POST",
                    "url": "/api/oauth/mal/token",
                    "body": {
                        "code": "authorization_code_from_mal",
                        "codeVerifier": "pkce_code_verifier",
                        "redirectUri": "https://yourdomain.com/auth/mal/callback",
                    },
                },
            },
            "provider": ctx.settings.email_provider,
            "timestamp": _timestamp(),
        }

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "service": SERVICE_NAME, "timestamp": _timestamp()}

    @app.post("/api/send-email", dependencies=[Depends(admit_email)])
    async def send_email(request: Request, body: SendEmailBody | None = None) -> dict[str, Any]:
        ctx = get_context(request)
        receipt = await ctx.dispatch.send((body or SendEmailBody()).to_message())
        return {"success": True, "messageId": receipt.message_id, "message": "Email sent successfully"}

    async def exchange(request: Request, provider: str, body: OAuthTokenBody | None) -> dict[str, Any]:
        proxy = get_context(request).oauth_proxies[provider]
        try:
            token = await proxy.exchange((body or OAuthTokenBody()).to_request())
        except RelayError:
            raise
        except Exception as exc:
            logger.exception("%s OAuth error", proxy.spec.name)
            raise UnclassifiedError(OAUTH_INTERNAL_ERROR_MESSAGE) from exc
        return {"success": True, **token}

    @app.post("/api/oauth/anilist/token", dependencies=[Depends(admit_oauth)])
    async def anilist_token(request: Request, body: OAuthTokenBody | None = None) -> dict[str, Any]:
        return await exchange(request, "anilist", body)

    @app.post("/api/oauth/mal/token", dependencies=[Depends(admit_oauth)])
    async def mal_token(request: Request, body: OAuthTokenBody | None = None) -> dict[str, Any]:
        return await exchange(request, "mal", body)
