"""ASGI middleware that enforces the request body size limit.

A declared ``Content-Length`` over the limit is refused before the app runs.
Bodies without one (chunked uploads) are counted as they stream in; once the
running total passes the limit the read fails with a 413 ``HTTPException``,
which FastAPI lets through its body parsing untouched.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024
BODY_TOO_LARGE_MESSAGE = "Request body too large"


class BodySizeLimitMiddleware:
    def __init__(self, app: ASGIApp, max_body_bytes: int = DEFAULT_MAX_BODY_BYTES) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        declared = _content_length(scope)
        if declared is not None and declared > self.max_body_bytes:
            logger.info("Refused %s byte body on %s", declared, scope.get("path"))
            response = JSONResponse(status_code=413, content={"success": False, "error": BODY_TOO_LARGE_MESSAGE})
            await response(scope, receive, send)
            return

        received = 0

        async def receive_wrapper() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    logger.info("Streamed body on %s passed %s bytes", scope.get("path"), self.max_body_bytes)
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE_MESSAGE)
            return message

        await self.app(scope, receive_wrapper, send)


def _content_length(scope: Scope) -> int | None:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            text = value.decode("latin-1")
            return int(text) if text.isdigit() else None
    return None
