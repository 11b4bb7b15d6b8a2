# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Infrastructure - Strategy and collector contracts
# PURPOSE: Plugin interfaces, transport clients, run and result types
# CREATED: 06 MAR 2026
# ============================================================================
"""
Health Check Core Types

Defines the plugin interfaces for health checks.

Strategy: how to connect to one kind of target (http, dns, ...).
    create_client(config) -> ConnectedClient{client, close()}

Collector: one probe action run against a strategy's client.
    execute(config, client, plugin_id) -> CollectorResult{result, error}

Both own versioned config/result schemas and a VersionedAggregated for
bucket storage, and fold each run into the bucket with merge_result().

Session state machine (per configured check):
    Uninitialized -> Connected (create_client) -> Probed* -> Closed (close)

Status Hierarchy (worst wins):
- healthy: All probes passed
- unhealthy: Probe failed or target unreachable
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from core.aggregated_result import VersionedAggregated
from core.errors import ClientClosedError
from core.versioning import Versioned

ConfigT = TypeVar("ConfigT")
ClientT = TypeVar("ClientT")
ResultT = TypeVar("ResultT")
RequestT = TypeVar("RequestT")
ResponseT = TypeVar("ResponseT")


class HealthStatus(str, Enum):
    """Health check status values."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        """0 healthy, 1 unhealthy."""
        return _SEVERITY[self.value]

    @classmethod
    def aggregate(cls, statuses: List["HealthStatus"]) -> "HealthStatus":
        """Aggregate multiple statuses (worst wins)."""
        if not statuses:
            return cls.HEALTHY
        return max(statuses, key=lambda s: s.severity)


_SEVERITY = {"healthy": 0, "unhealthy": 1}


# ============================================================================
# RUNS
# ============================================================================

class HealthCheckRunForAggregation(BaseModel, Generic[ResultT]):
    """
    The part of a run that merge_result() needs.

    metadata is the strategy's or collector's result (model instance, or a
    plain dict when loaded back from storage).
    """
    status: HealthStatus
    latency_ms: Optional[float] = None
    metadata: Optional[ResultT] = None


class HealthCheckRun(HealthCheckRunForAggregation[ResultT], Generic[ResultT]):
    """One execution of one collector instance for one check."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    check_id: str
    collector_instance_id: Optional[str] = None
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def aggregate_state(existing: Any, name: str) -> Any:
    """Read one accumulator from an aggregate (dict or validated model)."""
    if existing is None:
        return None
    if isinstance(existing, Mapping):
        return existing.get(name)
    return getattr(existing, name, None)


def metadata_value(run: HealthCheckRunForAggregation, name: str, alias: Optional[str] = None) -> Any:
    """
    Read one field of run.metadata.

    Works for result models (attribute) and stored dicts (alias or name key).
    """
    metadata = run.metadata
    if metadata is None:
        return None
    if isinstance(metadata, Mapping):
        if alias is not None and alias in metadata:
            return metadata[alias]
        return metadata.get(name)
    return getattr(metadata, name, None)


# ============================================================================
# TRANSPORT
# ============================================================================

class TransportClient(ABC, Generic[RequestT, ResponseT]):
    """
    Live, strategy-specific executor returned by create_client().

    One instance per configured check; never shared across checks.
    """

    @abstractmethod
    async def exec(self, request: RequestT) -> ResponseT:
        """Perform one request against the target."""
        pass


class ConnectedClient(Generic[ClientT]):
    """
    Transport client plus its cleanup hook.

    close() releases held resources. Calling it more than once is a no-op.
    """

    def __init__(self, client: ClientT, close: Optional[Callable[[], None]] = None):
        self.client = client
        self._close = close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._close is not None:
            self._close()


class SessionGuard:
    """Open/closed flag shared by a client and its ConnectedClient."""

    def __init__(self, strategy_id: str):
        self.strategy_id = strategy_id
        self.closed = False

    def ensure_open(self) -> None:
        if self.closed:
            raise ClientClosedError(self.strategy_id)

    def close(self) -> None:
        self.closed = True


# ============================================================================
# STRATEGY
# ============================================================================

class HealthCheckStrategy(ABC, Generic[ConfigT, ClientT, ResultT]):
    """
    Base class for health check strategies.

    Subclasses set id/display_name and the three versioned schemas, and
    implement create_client() and merge_result(). Instances are created
    once at plugin registration and hold no per-check state.

    Example:
        class HttpHealthCheckStrategy(HealthCheckStrategy):
            id = "http"
            config = Versioned(version=3, schema=HttpConfig, migrations=[...])
            result = Versioned(version=3, schema=HttpResult)
            aggregated_result = VersionedAggregated(version=1, fields={...})

            async def create_client(self, config):
                ...
    """

    id: str = "unnamed"
    display_name: str = ""
    description: Optional[str] = None

    config: Versioned
    result: Optional[Versioned] = None
    aggregated_result: VersionedAggregated

    def validate_config(self, raw: Any, stored_version: Optional[int] = None) -> ConfigT:
        """Migrate and validate a stored strategy config."""
        return self.config.validate(raw, stored_version)

    @abstractmethod
    async def create_client(self, config: Any) -> ConnectedClient[ClientT]:
        """
        Connect to the target.

        Args:
            config: Strategy config (validated here; raw dicts accepted)

        Returns:
            ConnectedClient wrapping the transport client

        Raises:
            SchemaValidationError: Config is invalid
            Exception: Connection failed (not retried here)
        """
        pass

    @abstractmethod
    def merge_result(
        self,
        existing: Optional[Mapping[str, Any]],
        new_run: HealthCheckRunForAggregation[ResultT],
    ) -> Dict[str, Any]:
        """
        Fold one run into the current bucket aggregate.

        Args:
            existing: Aggregate so far (None for first run in bucket)
            new_run: Run to fold in

        Returns:
            Updated aggregate (field name -> accumulator state)
        """
        pass

    def describe(self) -> Dict[str, Any]:
        """Metadata and schemas for listing endpoints."""
        info: Dict[str, Any] = {
            "id": self.id,
            "display_name": self.display_name,
            "description": self.description,
            "config_version": self.config.version,
            "config_schema": self.config.json_schema(),
            "aggregated_version": self.aggregated_result.version,
        }
        if self.result is not None:
            info["result_version"] = self.result.version
            info["result_schema"] = self.result.json_schema()
        return info


# ============================================================================
# COLLECTOR
# ============================================================================

@dataclass
class CollectorResult(Generic[ResultT]):
    """
    Output of one collector execution.

    error set means the probe failed (unhealthy) without raising.
    """
    result: ResultT
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CollectorStrategy(ABC, Generic[ClientT, ConfigT, ResultT]):
    """
    Base class for collectors.

    Attributes:
        id: Unique collector identifier
        supported_plugins: Strategy ids this collector can run against
        allow_multiple: Whether one check may attach several instances
    """

    id: str = "unnamed"
    display_name: str = ""
    description: Optional[str] = None
    supported_plugins: ClassVar[Sequence[str]] = ()
    allow_multiple: bool = False

    config: Versioned
    result: Versioned
    aggregated_result: VersionedAggregated

    def supports(self, plugin_id: str) -> bool:
        """Check if this collector can run against a strategy."""
        return plugin_id in self.supported_plugins

    @abstractmethod
    async def execute(self, config: ConfigT, client: ClientT, plugin_id: str) -> CollectorResult[ResultT]:
        """
        Run one probe.

        Transport failures propagate to the caller.
        """
        pass

    @abstractmethod
    def merge_result(
        self,
        existing: Optional[Mapping[str, Any]],
        new_run: HealthCheckRunForAggregation[ResultT],
    ) -> Dict[str, Any]:
        """Fold one run into the collector instance's bucket aggregate."""
        pass

    def describe(self) -> Dict[str, Any]:
        """Metadata and schemas for listing endpoints."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "description": self.description,
            "supported_plugins": list(self.supported_plugins),
            "allow_multiple": self.allow_multiple,
            "config_version": self.config.version,
            "config_schema": self.config.json_schema(),
            "result_version": self.result.version,
            "result_schema": self.result.json_schema(),
            "aggregated_version": self.aggregated_result.version,
        }


__all__ = [
    "HealthStatus",
    "HealthCheckRunForAggregation",
    "HealthCheckRun",
    "aggregate_state",
    "metadata_value",
    "TransportClient",
    "ConnectedClient",
    "SessionGuard",
    "HealthCheckStrategy",
    "CollectorResult",
    "CollectorStrategy",
]
