# ============================================================================
# HTTP TRANSPORT CLIENT
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Plugin - HTTP request executor
# PURPOSE: One httpx request per exec() with a per-call deadline
# CREATED: 09 MAR 2026
# ============================================================================
"""
HTTP Transport Client

The client handed out by HttpHealthCheckStrategy.create_client().

exec(HttpRequest) -> HttpResponse
- One request per call; HTTP is stateless so nothing is pooled
- Deadline = request.timeout or the strategy config timeout (ms)
- Exceeding the deadline aborts only that request
- Response headers are returned with lower-cased names
- Timeouts and network errors propagate (asyncio.TimeoutError,
  httpx.HTTPError); 4xx/5xx are ordinary responses
"""

import asyncio
import logging
from typing import Dict, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from core.config import HttpDefaults
from health.core import SessionGuard, TransportClient

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "HEAD"]


class HttpRequest(BaseModel):
    """Request passed to HttpTransportClient.exec()."""
    url: str
    method: HttpMethod = "GET"
    headers: Optional[Dict[str, str]] = None
    body: Optional[str] = None
    timeout: Optional[int] = Field(default=None, description="Deadline in milliseconds")


class HttpResponse(BaseModel):
    """Response returned by HttpTransportClient.exec()."""
    status_code: int
    status_text: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str = ""
    content_type: Optional[str] = None


class HttpTransportClient(TransportClient[HttpRequest, HttpResponse]):
    """
    Executes HTTP requests for one configured check.

    Args:
        timeout_ms: Default deadline from the validated strategy config
        guard: Session flag; exec() fails once the session is closed
        defaults: Process-wide HTTP defaults (user agent, redirects, TLS)
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        timeout_ms: int,
        guard: SessionGuard,
        defaults: Optional[HttpDefaults] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_ms = timeout_ms
        self._guard = guard
        self._defaults = defaults or HttpDefaults()
        self._transport = transport

    async def exec(self, request: HttpRequest) -> HttpResponse:
        self._guard.ensure_open()

        timeout_ms = request.timeout if request.timeout is not None else self.timeout_ms
        timeout_s = timeout_ms / 1000.0

        headers = httpx.Headers({"User-Agent": self._defaults.user_agent})
        headers.update(request.headers or {})

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=self._defaults.follow_redirects,
            verify=self._defaults.verify_tls,
        ) as client:
            response = await asyncio.wait_for(
                client.request(
                    request.method,
                    request.url,
                    headers=headers,
                    content=request.body,
                ),
                timeout=timeout_s,
            )

        response_headers = {k.lower(): v for k, v in response.headers.items()}
        logger.debug(
            f"{request.method} {request.url} -> {response.status_code} "
            f"({len(response.content)} bytes)"
        )

        return HttpResponse(
            status_code=response.status_code,
            status_text=response.reason_phrase,
            headers=response_headers,
            body=response.text,
            content_type=response_headers.get("content-type"),
        )


__all__ = [
    "HttpMethod",
    "HttpRequest",
    "HttpResponse",
    "HttpTransportClient",
]
