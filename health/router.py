# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Infrastructure - FastAPI read-only listing endpoints
# PURPOSE: Expose registered strategies, collectors and their schemas
# CREATED: 14 MAR 2026
# ============================================================================
"""
Health Check Router

Read-only FastAPI router over the global registries.

Endpoints:
    GET /livez                                   - Process alive + version
    GET /healthchecks/strategies                 - Registered strategies
    GET /healthchecks/strategies/{id}/collectors - Collectors for a strategy
    GET /healthchecks/collectors/{id}            - One collector

Strategy ids may be qualified ("healthcheck-http.http") or plain ("http").
Unknown ids return 404.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from health.registry import get_collector_registry, get_registry
from __version__ import __version__, BUILD_DATE

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])


def _not_found(message: str) -> JSONResponse:
    logger.debug(message)
    return JSONResponse(status_code=404, content={"error": message})


# ============================================================================
# LIVENESS PROBE
# ============================================================================

@health_router.get("/livez")
async def liveness_probe():
    """Process is alive. No external checks."""
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


# ============================================================================
# STRATEGIES
# ============================================================================

@health_router.get("/healthchecks/strategies")
async def list_strategies():
    """
    List registered strategies with their config/result schemas.
    """
    return {
        "strategies": [
            {
                **entry.strategy.describe(),
                "qualified_id": entry.qualified_id,
                "owner_plugin_id": entry.owner_plugin_id,
            }
            for entry in get_registry().get_strategies_with_meta()
        ],
    }


@health_router.get("/healthchecks/strategies/{strategy_id}/collectors")
async def list_strategy_collectors(strategy_id: str):
    """
    List collectors that can run against a strategy.
    """
    strategy = get_registry().get_strategy(strategy_id)
    if strategy is None:
        return _not_found(f"Health check strategy not found: {strategy_id}")

    return {
        "strategy_id": strategy.id,
        "collectors": [
            {**entry.collector.describe(), "owner_plugin_id": entry.owner_plugin_id}
            for entry in get_collector_registry().get_collectors_for_plugin(strategy.id)
        ],
    }


# ============================================================================
# COLLECTORS
# ============================================================================

@health_router.get("/healthchecks/collectors/{collector_id}")
async def get_collector(collector_id: str):
    """Describe one collector."""
    entry = get_collector_registry().get_collector(collector_id)
    if entry is None:
        return _not_found(f"Collector not found: {collector_id}")

    return {**entry.collector.describe(), "owner_plugin_id": entry.owner_plugin_id}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "health_router",
]
