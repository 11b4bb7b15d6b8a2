# ============================================================================
# CORE EXCEPTIONS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Foundation - Exception hierarchy
# PURPOSE: Errors raised by schema validation, migration, registries, clients
# CREATED: 03 MAR 2026
# ============================================================================
"""
Core Exceptions

Everything raised by the framework derives from HealthCoreError.

Probe failures (4xx/5xx responses) are NOT exceptions - collectors report
them as result data. Transport failures (DNS, connect, timeout) are not
wrapped either; they propagate as raised by httpx / asyncio.
"""

from typing import Any, Dict, List, Optional


class HealthCoreError(Exception):
    """Base exception for the health check core."""
    pass


# ============================================================================
# SCHEMA / MIGRATION
# ============================================================================

class SchemaValidationError(HealthCoreError):
    """
    Raised when a payload fails schema validation.

    Carries every violation at once (pydantic reports all errors),
    not just the first one.
    """

    def __init__(self, version: Optional[int], errors: List[Dict[str, Any]]):
        self.version = version
        self.errors = errors
        details = "; ".join(
            f"{e['path'] or '<root>'}: {e['message']}" for e in errors
        )
        prefix = "Validation failed"
        if version is not None:
            prefix += f" (schema v{version})"
        super().__init__(f"{prefix}: {details}")

    @property
    def paths(self) -> List[str]:
        """Dotted paths of every failing field."""
        return [e["path"] for e in self.errors]

    @classmethod
    def from_pydantic(cls, exc, version: Optional[int] = None) -> "SchemaValidationError":
        """Build from a pydantic ValidationError."""
        errors = [
            {
                "path": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        return cls(version, errors)


class MigrationError(HealthCoreError):
    """Base exception for migration failures."""
    pass


class MigrationPathNotFoundError(MigrationError):
    """Raised when no migration chain leads from the stored version to the current one."""

    def __init__(self, stored_version: int, target_version: int, missing_from: Optional[int] = None):
        self.stored_version = stored_version
        self.target_version = target_version
        self.missing_from = missing_from if missing_from is not None else stored_version
        if stored_version > target_version:
            reason = "downgrades are not supported"
        else:
            reason = f"no migration from v{self.missing_from}"
        super().__init__(
            f"Cannot migrate stored v{stored_version} to v{target_version}: {reason}"
        )


class MigrationFailedError(MigrationError):
    """Raised when a migration function itself raises."""

    def __init__(self, from_version: int, to_version: int, cause: Exception):
        self.from_version = from_version
        self.to_version = to_version
        self.cause = cause
        super().__init__(
            f"Migration from v{from_version} to v{to_version} failed: {cause}"
        )


# ============================================================================
# REGISTRIES
# ============================================================================

class RegistryError(HealthCoreError):
    """Base exception for registry lookups."""
    pass


class StrategyNotFoundError(RegistryError):
    """Raised when a strategy id is not registered."""

    def __init__(self, strategy_id: str):
        self.strategy_id = strategy_id
        super().__init__(f"Health check strategy not found: {strategy_id}")


class CollectorNotFoundError(RegistryError):
    """Raised when a collector id is not registered."""

    def __init__(self, collector_id: str):
        self.collector_id = collector_id
        super().__init__(f"Collector not found: {collector_id}")


class UnsupportedCollectorError(RegistryError):
    """Raised when a collector is attached to a strategy it does not support."""

    def __init__(self, collector_id: str, plugin_id: str):
        self.collector_id = collector_id
        self.plugin_id = plugin_id
        super().__init__(
            f"Collector '{collector_id}' does not support strategy '{plugin_id}'"
        )


class DuplicateCollectorError(RegistryError):
    """Raised when a single-instance collector is attached more than once."""

    def __init__(self, collector_id: str):
        self.collector_id = collector_id
        super().__init__(
            f"Collector '{collector_id}' does not allow multiple instances"
        )


# ============================================================================
# TRANSPORT
# ============================================================================

class ClientClosedError(HealthCoreError):
    """Raised when a transport client is used after its session was closed."""

    def __init__(self, strategy_id: str):
        self.strategy_id = strategy_id
        super().__init__(
            f"Transport client for '{strategy_id}' is closed; call create_client() again"
        )


__all__ = [
    "HealthCoreError",
    "SchemaValidationError",
    "MigrationError",
    "MigrationPathNotFoundError",
    "MigrationFailedError",
    "RegistryError",
    "StrategyNotFoundError",
    "CollectorNotFoundError",
    "UnsupportedCollectorError",
    "DuplicateCollectorError",
    "ClientClosedError",
]
