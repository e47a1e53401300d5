"""CORS, per-client rate limiting, and response security headers."""

import time
from collections import defaultdict, deque
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from election_api.core.config import Settings

_FALLBACK_PROXY_HEADERS = ("CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP")


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Best-effort client address for rate limiting.

    The first non-empty trusted proxy header wins; for ``X-Forwarded-For``
    the leftmost address is the client.  Without any header the socket peer
    is used.
    """
    for header in trusted_headers if trusted_headers is not None else _FALLBACK_PROXY_HEADERS:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        return value.split(",")[0].strip() if header.lower() == "x-forwarded-for" else value
    return request.client.host if request.client else "unknown"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow only the explicitly configured origins (list and/or regex)."""
    options: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["GET", "POST"],
        "allow_headers": ["Authorization", "Content-Type"],
    }
    if settings.cors_origin_list:
        options["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        options["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **options)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Harden every response; ballot and result payloads must never be cached by intermediaries."""

    _HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Cache-Control": "no-store",
    }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in self._HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding-window request limit per client address."""

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        trusted_proxy_headers: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.trusted_proxy_headers = trusted_proxy_headers
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = get_client_ip(request, self.trusted_proxy_headers)
        now = time.monotonic()
        hits = self._hits[client_ip]
        while hits and hits[0] <= now - 60.0:
            hits.popleft()

        if len(hits) >= self.requests_per_minute:
            return Response(
                content='{"detail":"Rate limit exceeded","code":"rate_limited"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": "60"},
            )

        hits.append(now)
        return await call_next(request)
