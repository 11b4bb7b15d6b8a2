# ============================================================================
# HEALTH CHECK CORE - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Core - FastAPI application entry point
# PURPOSE: Register built-in plugins and serve the listing endpoints
# CREATED: 19 MAR 2026
# ============================================================================
"""
Health Check Core Main Application

FastAPI application that:
1. Registers the built-in HTTP plugin (strategy + request collector)
2. Serves /livez and the read-only /healthchecks listing endpoints

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, EPOCH

from health import get_collector_registry, get_registry, health_router
from health.http import register_http_plugin

from core.logging import configure_logging, get_logger, ComponentType

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__, ComponentType.API)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Registers plugins on startup. Registries are read-only afterwards.
    """
    logger.info(f"Starting Health Check Core v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    if "http" not in get_registry():
        register_http_plugin()
    logger.info(
        f"Health checks initialized ({len(get_registry())} strategies, "
        f"{len(get_collector_registry())} collectors)"
    )

    yield

    logger.info("Health Check Core stopped")


app = FastAPI(
    title="Health Check Core",
    description=f"Epoch {EPOCH} health check strategies, collectors and aggregation",
    version=__version__,
    lifespan=lifespan,
)

# Health routes (no prefix - /livez, /healthchecks/...)
app.include_router(health_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Health Check Core",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
