# ============================================================================
# HTTP HEALTH CHECK STRATEGY
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Plugin - HTTP strategy
# PURPOSE: Hand out HTTP transport clients; aggregate transport errors
# CREATED: 09 MAR 2026
# ============================================================================
"""
HTTP Health Check Strategy

Connection-level settings only. What to request (url, method, headers,
body) lives in the request collector since config v3.

Config history:
    v1: {url, method, headers, body, ...}
    v2: + timeout (30000 ms)
    v3: url/method/headers/body removed (moved to RequestCollector)
"""

import logging
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import BaseModel, Field

from core.aggregated_result import VersionedAggregated, aggregated_counter
from core.aggregation import merge_counter
from core.config import DEFAULT_TIMEOUT_MS, MIN_TIMEOUT_MS, HttpDefaults, get_defaults
from core.versioning import Migration, Versioned
from health.core import (
    ConnectedClient,
    HealthCheckRunForAggregation,
    HealthCheckStrategy,
    SessionGuard,
    aggregate_state,
    metadata_value,
)
from health.http.transport import HttpTransportClient

logger = logging.getLogger(__name__)

# Request fields that moved to the collector in config v3
_COLLECTOR_FIELDS = ("url", "method", "headers", "body")


# ============================================================================
# SCHEMAS
# ============================================================================

class HttpHealthCheckConfig(BaseModel):
    """Strategy config (v3)."""
    timeout: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        ge=MIN_TIMEOUT_MS,
        description="Default request deadline in milliseconds",
    )


class HttpResultMetadata(BaseModel):
    """Per-run strategy metadata (v2)."""
    status_code: Optional[int] = Field(default=None, alias="statusCode")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    error: Optional[str] = None

    model_config = {"populate_by_name": True}


def _add_timeout(data: Dict[str, Any]) -> Dict[str, Any]:
    return {**data, "timeout": DEFAULT_TIMEOUT_MS}


def _drop_request_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in _COLLECTOR_FIELDS}


def _drop_assertion(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k != "assertion"}


HTTP_CONFIG_MIGRATIONS = [
    Migration(
        from_version=1,
        to_version=2,
        description="Add timeout with 30s default",
        migrate=_add_timeout,
    ),
    Migration(
        from_version=2,
        to_version=3,
        description="Remove url/method/headers/body (moved to RequestCollector)",
        migrate=_drop_request_fields,
    ),
]

HTTP_RESULT_MIGRATIONS = [
    Migration(
        from_version=1,
        to_version=2,
        description="Remove assertion (assertions run in collectors)",
        migrate=_drop_assertion,
    ),
]


# ============================================================================
# STRATEGY
# ============================================================================

class HttpHealthCheckStrategy(HealthCheckStrategy[HttpHealthCheckConfig, HttpTransportClient, HttpResultMetadata]):
    """
    HTTP health check strategy.

    create_client() validates the config and returns an
    HttpTransportClient. close() only marks the session closed; HTTP holds
    no connection between requests.
    """

    id = "http"
    display_name = "HTTP Health Check"
    description = "HTTP endpoint health monitoring"

    config = Versioned(
        version=3,
        schema=HttpHealthCheckConfig,
        migrations=HTTP_CONFIG_MIGRATIONS,
    )

    result = Versioned(
        version=2,
        schema=HttpResultMetadata,
        migrations=HTTP_RESULT_MIGRATIONS,
    )

    aggregated_result = VersionedAggregated(
        version=1,
        fields={
            "errorCount": aggregated_counter("Errors"),
        },
        model_name="HttpAggregatedResult",
    )

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        defaults: Optional[HttpDefaults] = None,
    ):
        self._transport = transport
        self._defaults = defaults

    async def create_client(self, config: Any) -> ConnectedClient[HttpTransportClient]:
        validated: HttpHealthCheckConfig = self.config.validate(config)
        guard = SessionGuard(self.id)

        client = HttpTransportClient(
            timeout_ms=validated.timeout,
            guard=guard,
            defaults=self._defaults or get_defaults().http,
            transport=self._transport,
        )
        logger.debug(f"HTTP client created (timeout={validated.timeout}ms)")

        return ConnectedClient(client, close=guard.close)

    def merge_result(
        self,
        existing: Optional[Mapping[str, Any]],
        new_run: HealthCheckRunForAggregation[HttpResultMetadata],
    ) -> Dict[str, Any]:
        has_error = bool(metadata_value(new_run, "error"))
        return {
            "errorCount": merge_counter(
                aggregate_state(existing, "errorCount"),
                has_error,
            ),
        }


__all__ = [
    "HttpHealthCheckConfig",
    "HttpResultMetadata",
    "HTTP_CONFIG_MIGRATIONS",
    "HttpHealthCheckStrategy",
]
