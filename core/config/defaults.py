# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for probes, aggregation buckets
# CREATED: 04 MAR 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for HTTP probing and aggregation.
Per-check settings live in each strategy's versioned config schema; these
are the process-wide knobs, overridable via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides (HEALTH_*)
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from __version__ import __version__


# Schema-level constants (used as pydantic field defaults and bounds)
DEFAULT_TIMEOUT_MS = 30_000
MIN_TIMEOUT_MS = 100


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class HttpDefaults:
    """
    Defaults for the HTTP transport client.
    """
    user_agent: str = f"healthcore/{__version__}"
    follow_redirects: bool = True
    verify_tls: bool = True

    @classmethod
    def from_env(cls) -> "HttpDefaults":
        """Create from environment variables."""
        return cls(
            user_agent=os.getenv("HEALTH_HTTP_USER_AGENT", f"healthcore/{__version__}"),
            follow_redirects=_env_bool("HEALTH_HTTP_FOLLOW_REDIRECTS", True),
            verify_tls=_env_bool("HEALTH_HTTP_VERIFY_TLS", True),
        )


@dataclass(frozen=True)
class AggregationDefaults:
    """
    Defaults for bucket aggregation.

    Buckets are fixed UTC-aligned windows.
    """
    bucket_size_seconds: int = 3600  # 1 hour

    @classmethod
    def from_env(cls) -> "AggregationDefaults":
        """Create from environment variables."""
        return cls(
            bucket_size_seconds=int(os.getenv("HEALTH_BUCKET_SIZE_SECONDS", 3600)),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    http: HttpDefaults = field(default_factory=HttpDefaults)
    aggregation: AggregationDefaults = field(default_factory=AggregationDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            http=HttpDefaults.from_env(),
            aggregation=AggregationDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "MIN_TIMEOUT_MS",
    "HttpDefaults",
    "AggregationDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
