# ============================================================================
# VERSION - HEALTH CHECK CORE
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# ============================================================================
"""
Version information for the health check core.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch
__version__ = "0.3.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-03-20"

EPOCH = 1
CODENAME = "Health Check Core"
