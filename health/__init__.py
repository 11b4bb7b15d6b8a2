# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Infrastructure - Health check plugin system
# PURPOSE: Strategies, collectors, registries and check execution
# CREATED: 06 MAR 2026
# ============================================================================
"""
Health Check Module

Plugin-based health check core:
- HealthCheckStrategy: connects to one kind of target (create_client)
- CollectorStrategy: one probe run against a strategy's client
- HealthCheckRegistry / CollectorRegistry: discovery by id
- ConfigService: plugin-scoped versioned configuration
- HealthCheckExecutor: one tick of one check, folded into buckets
- health_router: read-only listing endpoints

Usage:
    from health import HealthCheckExecutor, CheckConfig, health_router
    from health.http import register_http_plugin

    register_http_plugin()
    app.include_router(health_router)
"""

from health.core import (
    HealthStatus,
    HealthCheckRunForAggregation,
    HealthCheckRun,
    TransportClient,
    ConnectedClient,
    HealthCheckStrategy,
    CollectorResult,
    CollectorStrategy,
)
from health.registry import (
    HealthCheckRegistry,
    CollectorRegistry,
    ScopedHealthCheckRegistry,
    ScopedCollectorRegistry,
    get_registry,
    get_collector_registry,
    reset_registries,
    register_strategy,
    register_collector,
)
from health.config_service import ConfigService, InMemoryConfigService
from health.executor import (
    CheckConfig,
    CollectorInstance,
    CheckAggregates,
    CheckTickResult,
    HealthCheckExecutor,
    bucket_start,
)
from health.router import health_router

__all__ = [
    # Core types
    "HealthStatus",
    "HealthCheckRunForAggregation",
    "HealthCheckRun",
    "TransportClient",
    "ConnectedClient",
    "HealthCheckStrategy",
    "CollectorResult",
    "CollectorStrategy",
    # Registry
    "HealthCheckRegistry",
    "CollectorRegistry",
    "ScopedHealthCheckRegistry",
    "ScopedCollectorRegistry",
    "get_registry",
    "get_collector_registry",
    "reset_registries",
    "register_strategy",
    "register_collector",
    # Config
    "ConfigService",
    "InMemoryConfigService",
    # Executor
    "CheckConfig",
    "CollectorInstance",
    "CheckAggregates",
    "CheckTickResult",
    "HealthCheckExecutor",
    "bucket_start",
    # Router
    "health_router",
]
