# ============================================================================
# HTTP REQUEST COLLECTOR
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Plugin - HTTP request probe
# PURPOSE: Make one HTTP request per run and report status/latency
# CREATED: 10 MAR 2026
# ============================================================================
"""
HTTP Request Collector

Runs one request against the HTTP strategy's client and reports:
    statusCode, statusText, responseTimeMs, body, bodyLength, success

success = status in [200, 400). A 4xx/5xx is NOT an exception: the
result carries success=False and error="HTTP {code}: {text}". Only
transport failures (DNS, connect, timeout) propagate.

Several request collectors may be attached to one check (one per
endpoint); aggregates are kept per collector instance by the caller.
"""

import logging
import time
from typing import Annotated, Any, Dict, List, Mapping, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from core.aggregated_result import VersionedAggregated, aggregated_average, aggregated_rate
from core.aggregation import merge_average, merge_rate
from core.config import DEFAULT_TIMEOUT_MS, MIN_TIMEOUT_MS
from core.versioning import Versioned
from health.core import (
    CollectorResult,
    CollectorStrategy,
    HealthCheckRunForAggregation,
    aggregate_state,
    metadata_value,
)
from health.http.transport import HttpMethod, HttpRequest, HttpTransportClient

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    # Validate as http(s) URL but keep the caller's exact string
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError(f"not a valid http(s) URL: {value!r}")
    return value


# ============================================================================
# SCHEMAS
# ============================================================================

class HttpHeader(BaseModel):
    """One request header."""
    name: str
    value: str


class RequestConfig(BaseModel):
    """Request collector config (v1)."""
    url: Annotated[str, AfterValidator(_check_url)] = Field(description="Full URL to request")
    method: HttpMethod = "GET"
    headers: Optional[List[HttpHeader]] = None
    body: Optional[str] = None
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, ge=MIN_TIMEOUT_MS, description="Timeout in milliseconds")


class RequestResult(BaseModel):
    """Per-run request result (v1)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status_code: int
    status_text: str
    response_time_ms: int
    body: str = ""
    body_length: int = 0
    success: bool


def flatten_headers(headers: Optional[List[HttpHeader]]) -> Dict[str, str]:
    """Header list -> dict; later duplicates win."""
    flat: Dict[str, str] = {}
    for header in headers or []:
        flat[header.name] = header.value
    return flat


# ============================================================================
# COLLECTOR
# ============================================================================

class RequestCollector(CollectorStrategy[HttpTransportClient, RequestConfig, RequestResult]):
    """
    Built-in HTTP request collector.
    """

    id = "request"
    display_name = "HTTP Request"
    description = "Make an HTTP request and check the response"

    supported_plugins = ("http",)
    allow_multiple = True

    # Status codes counted as success (3xx included)
    success_status_range = range(200, 400)

    config = Versioned(version=1, schema=RequestConfig)
    result = Versioned(version=1, schema=RequestResult)
    aggregated_result = VersionedAggregated(
        version=1,
        fields={
            "avgResponseTimeMs": aggregated_average("Avg Response Time", unit="ms"),
            "successRate": aggregated_rate("Success Rate"),
        },
        model_name="RequestAggregatedResult",
    )

    async def execute(
        self,
        config: Any,
        client: HttpTransportClient,
        plugin_id: str = "http",
    ) -> CollectorResult[RequestResult]:
        if not isinstance(config, RequestConfig):
            config = self.config.validate(config)

        start_time = time.monotonic()

        response = await client.exec(HttpRequest(
            url=config.url,
            method=config.method,
            headers=flatten_headers(config.headers),
            body=config.body,
            timeout=config.timeout,
        ))

        response_time_ms = int((time.monotonic() - start_time) * 1000)
        success = response.status_code in self.success_status_range
        body = response.body or ""

        result = RequestResult(
            status_code=response.status_code,
            status_text=response.status_text,
            response_time_ms=response_time_ms,
            body=body,
            body_length=len(body),
            success=success,
        )

        if success:
            return CollectorResult(result=result)

        logger.debug(f"{config.method} {config.url} unhealthy: {response.status_code}")
        return CollectorResult(
            result=result,
            error=f"HTTP {response.status_code}: {response.status_text}",
        )

    def merge_result(
        self,
        existing: Optional[Mapping[str, Any]],
        new_run: HealthCheckRunForAggregation[RequestResult],
    ) -> Dict[str, Any]:
        return {
            "avgResponseTimeMs": merge_average(
                aggregate_state(existing, "avgResponseTimeMs"),
                metadata_value(new_run, "response_time_ms", "responseTimeMs"),
            ),
            "successRate": merge_rate(
                aggregate_state(existing, "successRate"),
                metadata_value(new_run, "success"),
            ),
        }


__all__ = [
    "HttpHeader",
    "RequestConfig",
    "RequestResult",
    "flatten_headers",
    "RequestCollector",
]
