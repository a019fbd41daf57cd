"""Per-client fixed-window admission control."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from threading import Lock

from .types import RateDecision, RateWindow

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_MAX_REQUESTS = 10


class AdmissionLimiter:
    """Counts requests per client identity within a fixed window.

    Usage::

        limiter = AdmissionLimiter(max_requests=10, window_seconds=900)
        decision = limiter.admit("203.0.113.7")
        if not decision.allowed:
            print(f"retry in {decision.retry_after}s")

    A window opens on a client's first request and closes ``window_seconds``
    later; the first request at or after that instant opens a fresh one.
    Windows live in memory only and vanish on restart.
    """

    def __init__(
        self,
        *,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}
        self._lock = Lock()
        self._last_sweep: float | None = None

    def __len__(self) -> int:
        return len(self._windows)

    def admit(self, client_identity: str, now: float | None = None) -> RateDecision:
        """Record one request for ``client_identity`` and decide whether it may proceed."""
        if now is None:
            now = self._clock()

        with self._lock:
            self._sweep(now)
            window = self._windows.get(client_identity)
            if window is None or now - window.window_start >= self.window_seconds:
                window = RateWindow(window_start=now)
                self._windows[client_identity] = window

            window.count += 1
            reset_after = self._seconds_until_reset(window, now)
            if window.count > self.max_requests:
                logger.warning(
                    "Admission denied for %s (%d requests in window)",
                    client_identity,
                    window.count,
                )
                return RateDecision.deny(limit=self.max_requests, retry_after=reset_after)

            return RateDecision.allow(
                limit=self.max_requests,
                remaining=self.max_requests - window.count,
                reset_after=reset_after,
            )

    def reset(self) -> None:
        """Forget every window."""
        with self._lock:
            self._windows.clear()
            self._last_sweep = None

    def _seconds_until_reset(self, window: RateWindow, now: float) -> int:
        return max(1, math.ceil(window.window_start + self.window_seconds - now))

    def _sweep(self, now: float) -> None:
        """Drop expired windows, at most once per window duration. Caller holds the lock."""
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expired = [key for key, w in self._windows.items() if now - w.window_start >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("Aged out %d admission windows", len(expired))
