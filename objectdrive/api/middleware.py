"""
API Middleware: Cross-Cutting Concerns

Provides:
- RequestContextMiddleware: request id, caller and timing on every log line
- CorsMiddleware: browser cross-origin headers
"""

from __future__ import annotations

import time
from typing import Optional
from uuid import uuid4

from objectdrive.api.router import Handler, Request, Response
from objectdrive.observability.logging import StructuredLogger

USER_EMAIL_HEADER = "x-user-email"
REQUEST_ID_HEADER = "x-request-id"


class RequestContextMiddleware:
    """
    Binds request-scoped log fields for the duration of a request.

    The request id is taken from X-Request-ID when the client sends
    one and echoed back on the response.
    """

    __slots__ = ("_logger",)

    def __init__(self, logger: Optional[StructuredLogger] = None) -> None:
        self._logger = logger or StructuredLogger("objectdrive.api")

    async def __call__(
        self,
        request: Request,
        handler: Handler,
    ) -> Response:
        request_id = request.header(REQUEST_ID_HEADER) or uuid4().hex[:16]
        start_time = time.perf_counter()

        with self._logger.context(
            request_id=request_id,
            caller=request.header(USER_EMAIL_HEADER),
        ):
            response = await handler(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            log = self._logger.info
            if response.status >= 500:
                log = self._logger.error
            elif response.status >= 400:
                log = self._logger.warning
            log(
                "Request handled",
                method=request.method,
                path=request.path,
                status=response.status,
                duration_ms=round(duration_ms, 2),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class CorsMiddleware:
    """
    CORS middleware for cross-origin requests.
    """

    __slots__ = ("_origins", "_methods", "_headers")

    def __init__(
        self,
        allowed_origins: tuple[str, ...] = ("*",),
        allowed_methods: tuple[str, ...] = ("GET", "POST", "DELETE", "OPTIONS"),
        allowed_headers: tuple[str, ...] = ("Content-Type", "X-User-Email", "X-Request-ID"),
    ) -> None:
        self._origins = allowed_origins
        self._methods = allowed_methods
        self._headers = allowed_headers

    async def __call__(
        self,
        request: Request,
        handler: Handler,
    ) -> Response:
        origin = request.header("origin", "*")

        if "*" not in self._origins and origin not in self._origins:
            return Response.error("Origin not allowed", status=403)

        # Preflight
        if request.method == "OPTIONS":
            return Response(status=204, headers=self._cors_headers(origin))

        response = await handler(request)
        for key, value in self._cors_headers(origin).items():
            response.headers[key] = value
        return response

    def _cors_headers(self, origin: str) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": origin if "*" not in self._origins else "*",
            "Access-Control-Allow-Methods": ", ".join(self._methods),
            "Access-Control-Allow-Headers": ", ".join(self._headers),
            "Access-Control-Expose-Headers": "Content-Disposition, X-Request-ID",
            "Access-Control-Max-Age": "86400",
        }
