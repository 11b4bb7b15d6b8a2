# ============================================================================
# HEALTH CHECK EXECUTOR
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Infrastructure - One check tick with bucket aggregation
# PURPOSE: Connect, run collectors one at a time, fold runs into buckets
# CREATED: 13 MAR 2026
# ============================================================================
"""
Health Check Executor

Runs one tick of one configured check:
1. Resolve the strategy and attached collectors (config errors raise)
2. Validate strategy and collector configs (migrating stored versions)
3. create_client() - failure makes the whole tick unhealthy
4. Execute collectors one after another on the shared client
5. Build one HealthCheckRun per collector instance
6. Fold runs into the current bucket (strategy + per instance)
7. close() the session, always

Scheduling (when to tick) is the caller's job. Ticks of the same check
must not overlap; different checks may run concurrently. Within a tick the
client sees one exec() at a time.

Collector exceptions (DNS, connect, timeout) are recorded as unhealthy
runs with the exception message. Nothing is retried.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from core.config import get_defaults
from core.errors import DuplicateCollectorError, UnsupportedCollectorError
from core.logging import log_checkpoint, log_context
from health.core import (
    CollectorStrategy,
    ConnectedClient,
    HealthCheckRun,
    HealthCheckRunForAggregation,
    HealthCheckStrategy,
    HealthStatus,
)
from health.registry import (
    CollectorRegistry,
    HealthCheckRegistry,
    get_collector_registry,
    get_registry,
)

logger = logging.getLogger(__name__)


def bucket_start(timestamp: datetime, bucket_size_seconds: int) -> datetime:
    """
    Start of the UTC-aligned bucket containing timestamp.

    Naive timestamps are taken as UTC.
    """
    if bucket_size_seconds <= 0:
        raise ValueError(f"bucket_size_seconds must be > 0, got {bucket_size_seconds}")
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    epoch = int(timestamp.timestamp())
    return datetime.fromtimestamp(epoch - epoch % bucket_size_seconds, tz=timezone.utc)


# ============================================================================
# MODELS
# ============================================================================

class CollectorInstance(BaseModel):
    """One collector attached to a check."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    collector_id: str
    config: Dict[str, Any] = Field(default_factory=dict)
    config_version: Optional[int] = None


class CheckConfig(BaseModel):
    """A configured health check: strategy config plus collectors."""
    id: str
    name: str = ""
    strategy_id: str
    config: Dict[str, Any] = Field(default_factory=dict)
    config_version: Optional[int] = None
    collectors: List[CollectorInstance] = Field(default_factory=list)


class CheckAggregates(BaseModel):
    """Bucket aggregates for one check (JSON-compatible states)."""
    check_id: str
    bucket_start: datetime
    bucket_size_seconds: int
    run_count: int = 0
    strategy: Optional[Dict[str, Any]] = None
    collectors: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class CheckTickResult(BaseModel):
    """Outcome of one run_check() call."""
    check_id: str
    status: HealthStatus
    message: Optional[str] = None
    duration_ms: float
    runs: List[HealthCheckRun] = Field(default_factory=list)
    aggregates: CheckAggregates
    completed_bucket: Optional[CheckAggregates] = None


# ============================================================================
# EXECUTOR
# ============================================================================

class HealthCheckExecutor:
    """
    Executes check ticks and keeps the current bucket per check.
    """

    def __init__(
        self,
        registry: Optional[HealthCheckRegistry] = None,
        collector_registry: Optional[CollectorRegistry] = None,
        bucket_size_seconds: Optional[int] = None,
    ):
        """
        Initialize executor.

        Args:
            registry: Strategy registry (uses global if None)
            collector_registry: Collector registry (uses global if None)
            bucket_size_seconds: Aggregation bucket width
        """
        defaults = get_defaults()
        self.registry = registry if registry is not None else get_registry()
        self.collector_registry = (
            collector_registry if collector_registry is not None else get_collector_registry()
        )
        self.bucket_size_seconds = bucket_size_seconds or defaults.aggregation.bucket_size_seconds
        self._aggregates: Dict[str, CheckAggregates] = {}

    def get_aggregates(self, check_id: str) -> Optional[CheckAggregates]:
        """Current bucket for a check."""
        return self._aggregates.get(check_id)

    def load_aggregates(self, aggregates: CheckAggregates) -> None:
        """Seed the current bucket (e.g. restored from storage)."""
        self._aggregates[aggregates.check_id] = aggregates

    def resolve_collectors(
        self,
        check: CheckConfig,
        strategy: HealthCheckStrategy,
    ) -> List[Tuple[CollectorInstance, CollectorStrategy]]:
        """
        Look up and check the collectors attached to a check.

        Raises:
            CollectorNotFoundError: Unknown collector id
            UnsupportedCollectorError: Collector cannot run on the strategy
            DuplicateCollectorError: Attached twice without allow_multiple
        """
        resolved = []
        seen = set()
        for instance in check.collectors:
            collector = self.collector_registry.get_collector_or_raise(instance.collector_id)
            if not collector.supports(strategy.id):
                raise UnsupportedCollectorError(collector.id, strategy.id)
            if collector.id in seen and not collector.allow_multiple:
                raise DuplicateCollectorError(collector.id)
            seen.add(collector.id)
            resolved.append((instance, collector))
        return resolved

    async def run_check(
        self,
        check: CheckConfig,
        now: Optional[datetime] = None,
    ) -> CheckTickResult:
        """
        Execute one tick of a check.

        Args:
            check: Check configuration
            now: Tick time (bucket selection); defaults to current UTC time

        Returns:
            Tick result with runs and the updated bucket

        Raises:
            StrategyNotFoundError / CollectorNotFoundError: Unknown ids
            SchemaValidationError: Invalid strategy or collector config
        """
        now = now or datetime.now(timezone.utc)
        start_time = time.monotonic()

        with log_context(check_id=check.id, strategy_id=check.strategy_id, operation="run_check"):
            strategy = self.registry.get_strategy_or_raise(check.strategy_id)
            attached = self.resolve_collectors(check, strategy)

            strategy_config = strategy.validate_config(check.config, check.config_version)
            collector_configs = [
                collector.config.validate(instance.config, instance.config_version)
                for instance, collector in attached
            ]

            log_checkpoint("check_started", {"collectors": len(attached)}, logger)

            runs: List[HealthCheckRun] = []
            connect_error: Optional[str] = None
            connected: Optional[ConnectedClient] = None
            try:
                try:
                    connected = await strategy.create_client(strategy_config)
                except Exception as e:
                    connect_error = _describe(e)
                    logger.warning(f"Check {check.id}: create_client failed: {connect_error}")
                else:
                    runs = await self._run_collectors(check, strategy, connected, attached, collector_configs, now)
            finally:
                if connected is not None:
                    connected.close()
                    log_checkpoint("client_closed", logger=logger)

            if connect_error is not None:
                status = HealthStatus.UNHEALTHY
                message = connect_error
            else:
                status = HealthStatus.aggregate([r.status for r in runs])
                errors = [r.message for r in runs if r.message]
                message = "; ".join(errors) if errors else None

            aggregates, completed = self._fold(check, strategy, attached, runs, status, message, now)
            duration_ms = (time.monotonic() - start_time) * 1000

            log_checkpoint("check_completed", {
                "status": status.value,
                "runs": len(runs),
                "duration_ms": round(duration_ms, 1),
            }, logger)

            return CheckTickResult(
                check_id=check.id,
                status=status,
                message=message,
                duration_ms=duration_ms,
                runs=runs,
                aggregates=aggregates,
                completed_bucket=completed,
            )

    async def _run_collectors(
        self,
        check: CheckConfig,
        strategy: HealthCheckStrategy,
        connected: ConnectedClient,
        attached: List[Tuple[CollectorInstance, CollectorStrategy]],
        configs: List[Any],
        now: datetime,
    ) -> List[HealthCheckRun]:
        """Execute attached collectors in order, one exec() in flight at a time."""
        runs = []
        for (instance, collector), config in zip(attached, configs):
            runs.append(await self._execute_collector(check, strategy, connected, instance, collector, config, now))
        return runs

    async def _execute_collector(
        self,
        check: CheckConfig,
        strategy: HealthCheckStrategy,
        connected: ConnectedClient,
        instance: CollectorInstance,
        collector: CollectorStrategy,
        config: Any,
        now: datetime,
    ) -> HealthCheckRun:
        """Run one collector instance and wrap the outcome in a run."""
        start_time = time.monotonic()

        with log_context(collector_id=collector.id, collector_instance_id=instance.id):
            try:
                result = await collector.execute(config, connected.client, strategy.id)
            except Exception as e:
                latency_ms = (time.monotonic() - start_time) * 1000
                message = _describe(e)
                logger.warning(f"Collector {collector.id} ({instance.id}) failed: {message}")
                return HealthCheckRun(
                    check_id=check.id,
                    collector_instance_id=instance.id,
                    status=HealthStatus.UNHEALTHY,
                    latency_ms=latency_ms,
                    message=message,
                    timestamp=now,
                )

            latency_ms = (time.monotonic() - start_time) * 1000
            status = HealthStatus.HEALTHY if result.ok else HealthStatus.UNHEALTHY
            logger.debug(f"Collector {collector.id}: {status.value} ({latency_ms:.1f}ms)")

            return HealthCheckRun(
                check_id=check.id,
                collector_instance_id=instance.id,
                status=status,
                latency_ms=latency_ms,
                metadata=result.result,
                message=result.error,
                timestamp=now,
            )

    def _fold(
        self,
        check: CheckConfig,
        strategy: HealthCheckStrategy,
        attached: List[Tuple[CollectorInstance, CollectorStrategy]],
        runs: List[HealthCheckRun],
        status: HealthStatus,
        message: Optional[str],
        now: datetime,
    ) -> Tuple[CheckAggregates, Optional[CheckAggregates]]:
        """Merge this tick into the current bucket, rolling over if needed."""
        start = bucket_start(now, self.bucket_size_seconds)
        current = self._aggregates.get(check.id)
        completed = None

        if current is None or current.bucket_start != start:
            if current is not None:
                completed = current
                logger.info(f"Check {check.id}: bucket {current.bucket_start.isoformat()} closed")
            current = CheckAggregates(
                check_id=check.id,
                bucket_start=start,
                bucket_size_seconds=self.bucket_size_seconds,
            )

        strategy_run = HealthCheckRunForAggregation(
            status=status,
            latency_ms=sum(r.latency_ms or 0 for r in runs) or None,
            metadata={"error": message},
        )
        strategy_aggregate = strategy.merge_result(current.strategy, strategy_run)

        collectors = dict(current.collectors)
        by_instance = {instance.id: collector for instance, collector in attached}
        for run in runs:
            collector = by_instance[run.collector_instance_id]
            merged = collector.merge_result(collectors.get(run.collector_instance_id), run)
            collectors[run.collector_instance_id] = collector.aggregated_result.to_dict(merged)

        updated = current.model_copy(update={
            "run_count": current.run_count + 1,
            "strategy": strategy.aggregated_result.to_dict(strategy_aggregate),
            "collectors": collectors,
        })
        self._aggregates[check.id] = updated
        return updated, completed


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "bucket_start",
    "CollectorInstance",
    "CheckConfig",
    "CheckAggregates",
    "CheckTickResult",
    "HealthCheckExecutor",
]
