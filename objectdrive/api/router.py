"""
HTTP Router: Request Routing and Handler Dispatch

Framework-neutral routing for the drive API.
Supports:
- Path parameter extraction ({name} for one segment, {*name} for the rest)
- Query string parsing
- Streaming response bodies
- Method-based dispatch with middleware
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence
from urllib.parse import parse_qs, unquote, urlparse

logger = logging.getLogger(__name__)


@dataclass
class Request:
    """HTTP request representation."""
    method: str
    path: str
    query_params: dict[str, list[str]] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    path_params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_raw(
        cls,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: bytes = b"",
    ) -> Request:
        """Parse request from raw HTTP data."""
        parsed = urlparse(url)
        query_params = parse_qs(parsed.query)

        return cls(
            method=method.upper(),
            path=parsed.path,
            query_params=query_params,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            body=body,
        )

    def json(self) -> Any:
        """Parse body as JSON; None for an empty body."""
        if not self.body:
            return None
        return json.loads(self.body)

    def query(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get first query parameter value."""
        values = self.query_params.get(key, [])
        return values[0] if values else default

    def query_bool(self, key: str, default: bool = False) -> bool:
        value = self.query(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes")

    def header(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get header value (case-insensitive)."""
        return self.headers.get(key.lower(), default)


@dataclass
class Response:
    """
    HTTP response representation.

    Either body or stream is set; a stream is consumed once by the
    server adapter.
    """
    status: int = 200
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    stream: Optional[AsyncIterator[bytes]] = None

    @classmethod
    def json(
        cls,
        data: Any,
        status: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> Response:
        """Create JSON response."""
        body = json.dumps(data, default=str).encode()
        h = headers or {}
        h["content-type"] = "application/json"
        return cls(status=status, body=body, headers=h)

    @classmethod
    def streaming(
        cls,
        stream: AsyncIterator[bytes],
        content_type: str,
        headers: Optional[dict[str, str]] = None,
    ) -> Response:
        h = headers or {}
        h["content-type"] = content_type
        return cls(status=200, headers=h, stream=stream)

    @classmethod
    def error(cls, message: str, status: int = 400) -> Response:
        """Create error response in the API envelope."""
        return cls.json({"success": False, "message": message}, status=status)

    @classmethod
    def not_found(cls) -> Response:
        return cls.error("Not found", status=404)

    @classmethod
    def method_not_allowed(cls) -> Response:
        return cls.error("Method not allowed", status=405)

    def json_body(self) -> Any:
        """Decoded JSON body, for tests and adapters."""
        return json.loads(self.body) if self.body else None

    async def read_stream(self) -> bytes:
        """Drain a streaming body into memory."""
        if self.stream is None:
            return self.body
        parts = [chunk async for chunk in self.stream]
        return b"".join(parts)


# Handler function signature
Handler = Callable[[Request], Awaitable[Response]]

# Middleware function signature
Middleware = Callable[[Request, Handler], Awaitable[Response]]

_PARAM = re.compile(r"\{(\*?)(\w+)\}")


async def _preflight(request: Request) -> Response:
    return Response(status=204)


@dataclass
class Route:
    """Route definition."""
    method: str
    pattern: re.Pattern
    handler: Handler
    param_names: list[str]

    @classmethod
    def create(cls, method: str, path: str, handler: Handler) -> Route:
        """
        Create route from path pattern.

        {name} matches one segment; {*name} matches the remainder of
        the path, slashes included, and may be empty.
        """
        param_names: list[str] = []

        def replace_param(match: re.Match) -> str:
            param_names.append(match.group(2))
            body = ".*" if match.group(1) else "[^/]+"
            return f"(?P<{match.group(2)}>{body})"

        pattern_str = _PARAM.sub(replace_param, path)
        pattern_str = f"^{pattern_str}$"

        return cls(
            method=method.upper(),
            pattern=re.compile(pattern_str),
            handler=handler,
            param_names=param_names,
        )

    def match(self, method: str, path: str) -> Optional[dict[str, str]]:
        """Match request against route."""
        if method.upper() != self.method:
            return None

        match = self.pattern.match(path)
        if not match:
            return None

        return {name: unquote(value) for name, value in match.groupdict().items()}


class DriveRouter:
    """
    HTTP request router.

    Usage:
        router = DriveRouter(prefix="/api/s3")

        @router.route("/share/{*key}", ["GET"])
        async def get_sharing(request: Request) -> Response:
            key = request.path_params["key"]
            ...

        response = await router.dispatch(request)

    Routes are matched in registration order, so a literal route must
    be registered before a catch-all that would also match it.
    """

    __slots__ = ("_routes", "_middleware", "_prefix")

    def __init__(self, prefix: str = "") -> None:
        self._routes: list[Route] = []
        self._middleware: list[Middleware] = []
        self._prefix = prefix

    def route(
        self,
        path: str,
        methods: Sequence[str] = ("GET",),
    ) -> Callable[[Handler], Handler]:
        """Register route decorator."""
        def decorator(handler: Handler) -> Handler:
            full_path = self._prefix + path
            for method in methods:
                self._routes.append(Route.create(method, full_path, handler))
            return handler
        return decorator

    def add(self, method: str, path: str, handler: Handler) -> None:
        """Register a bound handler without the decorator form."""
        self.route(path, [method])(handler)

    def use(self, middleware: Middleware) -> None:
        self._middleware.append(middleware)

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    async def dispatch(self, request: Request) -> Response:
        """Route request to handler."""
        handler: Optional[Handler] = None

        for route in self._routes:
            params = route.match(request.method, request.path)
            if params is not None:
                request.path_params = params
                handler = route.handler
                break

        if handler is None:
            known = any(route.pattern.match(request.path) for route in self._routes)
            if not known:
                return Response.not_found()
            if request.method != "OPTIONS":
                return Response.method_not_allowed()
            handler = _preflight

        final_handler = handler
        for mw in reversed(self._middleware):
            final_handler = self._wrap_middleware(mw, final_handler)

        try:
            return await final_handler(request)
        except Exception:
            logger.exception(
                "Unhandled error in handler",
                extra={"method": request.method, "path": request.path},
            )
            return Response.error("Internal server error", status=500)

    def _wrap_middleware(
        self,
        middleware: Middleware,
        handler: Handler,
    ) -> Handler:
        async def wrapped(request: Request) -> Response:
            return await middleware(request, handler)
        return wrapped
