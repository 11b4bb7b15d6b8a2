# ============================================================================
# HTTP HEALTH CHECK PLUGIN
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Plugin - HTTP strategy + request collector
# PURPOSE: Bundle and register the HTTP plugin
# CREATED: 10 MAR 2026
# ============================================================================
"""
HTTP Health Check Plugin

Provides:
- HttpHealthCheckStrategy ("http"): hands out HTTP transport clients
- RequestCollector ("request"): one HTTP request per run

Register at startup:
    from health.http import register_http_plugin
    register_http_plugin()          # global registries
"""

import logging
from typing import Optional

from health.http.transport import HttpRequest, HttpResponse, HttpTransportClient
from health.http.strategy import HttpHealthCheckConfig, HttpHealthCheckStrategy, HttpResultMetadata
from health.http.request_collector import (
    HttpHeader,
    RequestCollector,
    RequestConfig,
    RequestResult,
    flatten_headers,
)
from health.registry import (
    CollectorRegistry,
    HealthCheckRegistry,
    get_collector_registry,
    get_registry,
)

logger = logging.getLogger(__name__)

PLUGIN_ID = "healthcheck-http"


def register_http_plugin(
    registry: Optional[HealthCheckRegistry] = None,
    collector_registry: Optional[CollectorRegistry] = None,
    strategy: Optional[HttpHealthCheckStrategy] = None,
) -> HttpHealthCheckStrategy:
    """
    Register the HTTP strategy and request collector.

    Args:
        registry: Strategy registry (uses global if None)
        collector_registry: Collector registry (uses global if None)
        strategy: Pre-built strategy (e.g. with a mock transport)

    Returns:
        The registered strategy
    """
    if registry is None:
        registry = get_registry()
    if collector_registry is None:
        collector_registry = get_collector_registry()
    if strategy is None:
        strategy = HttpHealthCheckStrategy()

    registry.register_with_owner(strategy, PLUGIN_ID)
    collector_registry.register_with_owner(RequestCollector(), PLUGIN_ID)
    logger.info(f"Registered HTTP health check plugin ({PLUGIN_ID})")
    return strategy


__all__ = [
    "PLUGIN_ID",
    "HttpRequest",
    "HttpResponse",
    "HttpTransportClient",
    "HttpHealthCheckConfig",
    "HttpResultMetadata",
    "HttpHealthCheckStrategy",
    "HttpHeader",
    "RequestConfig",
    "RequestResult",
    "RequestCollector",
    "flatten_headers",
    "register_http_plugin",
]
