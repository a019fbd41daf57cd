"""Origin allow-listing and CORS header selection."""

from __future__ import annotations

from collections.abc import Iterable

from .types import OriginDecision

ALLOWED_METHODS = "GET, POST, OPTIONS"
ALLOWED_HEADERS = "X-Requested-With, Content-Type, Authorization, Accept, Origin"
PREFLIGHT_MAX_AGE = "86400"


class OriginGuard:
    """Decides which CORS headers a response carries.

    Requests without an ``Origin`` header (curl, mobile apps, server-to-server)
    are always allowed and get a wildcard. Known browser origins are echoed
    back with credentials enabled. Unknown origins get no allow-origin header
    at all, so the browser blocks the response; the request itself is still
    served since this is not an authentication check.
    """

    def __init__(self, allowed_origins: Iterable[str]) -> None:
        self._allowed = tuple(dict.fromkeys(allowed_origins))
        self._allowed_set = frozenset(self._allowed)

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        return self._allowed

    def is_allowed(self, origin: str | None) -> bool:
        return origin is None or origin in self._allowed_set

    def evaluate(self, origin: str | None) -> OriginDecision:
        headers = {
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
        }
        if origin is None:
            headers["Access-Control-Allow-Origin"] = "*"
            return OriginDecision(allow=True, headers=headers)

        headers["Vary"] = "Origin"
        if origin in self._allowed_set:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Allow-Credentials"] = "true"
            return OriginDecision(allow=True, headers=headers)

        return OriginDecision(allow=False, headers=headers)
