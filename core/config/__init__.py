# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 04 MAR 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the health check core.
"""

from core.config.defaults import (
    DEFAULT_TIMEOUT_MS,
    MIN_TIMEOUT_MS,
    HttpDefaults,
    AggregationDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "MIN_TIMEOUT_MS",
    "HttpDefaults",
    "AggregationDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
