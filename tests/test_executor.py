# ============================================================================
# EXECUTOR TESTS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Tests - Check tick execution and bucket aggregation
# PURPOSE: Verify sequential collector runs, failure capture, buckets, cleanup
# CREATED: 18 MAR 2026
# ============================================================================
"""
Executor Tests

Runs real HTTP strategy + request collectors against httpx.MockTransport.

Covers:
1. One run per collector instance, statuses worst-wins
2. Non-2xx/3xx responses -> unhealthy run with "HTTP code: text"
3. Transport exceptions -> unhealthy run with the exception message
4. create_client failure -> whole tick unhealthy, no collector runs
5. Config errors (unknown / unsupported / duplicate collectors) raise
6. Per-instance aggregates and bucket rollover
7. Session closed after every tick; one exec() in flight per client

Run with:
    pytest tests/test_executor.py -v
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from core.errors import (
    CollectorNotFoundError,
    DuplicateCollectorError,
    SchemaValidationError,
    StrategyNotFoundError,
    UnsupportedCollectorError,
)
from health.core import ConnectedClient, HealthStatus
from health.executor import (
    CheckAggregates,
    CheckConfig,
    CollectorInstance,
    HealthCheckExecutor,
    bucket_start,
)
from health.http import HttpHealthCheckStrategy, RequestCollector
from health.registry import CollectorRegistry, HealthCheckRegistry


# ============================================================================
# FIXTURES
# ============================================================================

T0 = datetime(2026, 3, 18, 10, 15, tzinfo=timezone.utc)
T1 = datetime(2026, 3, 18, 10, 45, tzinfo=timezone.utc)
T2 = datetime(2026, 3, 18, 11, 5, tzinfo=timezone.utc)


async def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/down":
        return httpx.Response(503)
    if path == "/refused":
        raise httpx.ConnectError("connection refused", request=request)
    if path == "/slow":
        await asyncio.sleep(2)
    return httpx.Response(200, text="ok")


class SingleCollector(RequestCollector):
    id = "single"
    allow_multiple = False


class DnsOnlyCollector(RequestCollector):
    id = "dns-only"
    supported_plugins = ("dns",)


def _make_executor(strategy=None):
    registry = HealthCheckRegistry()
    collectors = CollectorRegistry()
    strategy = strategy or HttpHealthCheckStrategy(transport=httpx.MockTransport(_handler))
    registry.register_with_owner(strategy, "healthcheck-http")
    collectors.register_with_owner(RequestCollector(), "healthcheck-http")
    collectors.register(SingleCollector())
    collectors.register(DnsOnlyCollector())
    return HealthCheckExecutor(registry, collectors, bucket_size_seconds=3600)


def _make_check(*paths, collector_id="request", timeout=1000):
    return CheckConfig(
        id="chk-1",
        name="Example",
        strategy_id="http",
        config={"timeout": timeout},
        collectors=[
            CollectorInstance(
                id=f"inst-{i}",
                collector_id=collector_id,
                config={"url": f"https://example.com{path}", "timeout": timeout},
            )
            for i, path in enumerate(paths)
        ],
    )


# ============================================================================
# BUCKETS
# ============================================================================

class TestBucketStart:

    def test_hour_alignment(self):
        assert bucket_start(T0, 3600) == datetime(2026, 3, 18, 10, 0, tzinfo=timezone.utc)

    def test_naive_treated_as_utc(self):
        naive = datetime(2026, 3, 18, 10, 15)
        assert bucket_start(naive, 900) == datetime(2026, 3, 18, 10, 15, tzinfo=timezone.utc)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            bucket_start(T0, 0)


# ============================================================================
# RUN CHECK
# ============================================================================

class TestRunCheck:

    def test_all_healthy(self):
        executor = _make_executor()
        result = asyncio.run(executor.run_check(_make_check("/ok", "/ok"), now=T0))

        assert result.status == HealthStatus.HEALTHY
        assert result.message is None
        assert len(result.runs) == 2
        assert {r.collector_instance_id for r in result.runs} == {"inst-0", "inst-1"}
        assert all(r.check_id == "chk-1" for r in result.runs)
        assert all(r.metadata.status_code == 200 for r in result.runs)

    def test_http_error_status(self):
        executor = _make_executor()
        result = asyncio.run(executor.run_check(_make_check("/ok", "/down"), now=T0))

        assert result.status == HealthStatus.UNHEALTHY
        down = next(r for r in result.runs if r.collector_instance_id == "inst-1")
        assert down.status == HealthStatus.UNHEALTHY
        assert down.message == "HTTP 503: Service Unavailable"
        assert down.metadata.success is False

    def test_transport_exception_recorded(self):
        executor = _make_executor()
        result = asyncio.run(executor.run_check(_make_check("/refused"), now=T0))

        run = result.runs[0]
        assert run.status == HealthStatus.UNHEALTHY
        assert "connection refused" in run.message
        assert run.metadata is None

    def test_timeout_recorded(self):
        executor = _make_executor()
        result = asyncio.run(executor.run_check(_make_check("/slow", timeout=100), now=T0))

        run = result.runs[0]
        assert run.status == HealthStatus.UNHEALTHY
        assert run.message
        assert run.latency_ms < 1500

    def test_no_collectors(self):
        result = asyncio.run(_make_executor().run_check(_make_check(), now=T0))
        assert result.status == HealthStatus.HEALTHY
        assert result.runs == []

    def test_stored_strategy_config_migrated(self):
        check = _make_check("/ok")
        check = check.model_copy(update={
            "config": {"url": "https://legacy.example.com", "method": "GET"},
            "config_version": 1,
        })
        result = asyncio.run(_make_executor().run_check(check, now=T0))
        assert result.status == HealthStatus.HEALTHY


# ============================================================================
# CONFIG ERRORS
# ============================================================================

class TestConfigErrors:

    def test_unknown_strategy(self):
        check = _make_check("/ok").model_copy(update={"strategy_id": "dns"})
        with pytest.raises(StrategyNotFoundError):
            asyncio.run(_make_executor().run_check(check))

    def test_unknown_collector(self):
        with pytest.raises(CollectorNotFoundError):
            asyncio.run(_make_executor().run_check(_make_check("/ok", collector_id="nope")))

    def test_unsupported_collector(self):
        with pytest.raises(UnsupportedCollectorError):
            asyncio.run(_make_executor().run_check(_make_check("/ok", collector_id="dns-only")))

    def test_duplicate_single_instance_collector(self):
        with pytest.raises(DuplicateCollectorError):
            asyncio.run(_make_executor().run_check(_make_check("/ok", "/ok", collector_id="single")))

    def test_invalid_collector_config(self):
        check = _make_check("/ok")
        check.collectors[0].config = {"url": "nope"}
        with pytest.raises(SchemaValidationError):
            asyncio.run(_make_executor().run_check(check))


# ============================================================================
# CLIENT LIFECYCLE
# ============================================================================

class TestClientLifecycle:

    def test_client_closed_after_tick(self):
        strategy = HttpHealthCheckStrategy(transport=httpx.MockTransport(_handler))
        clients = []
        original = strategy.create_client

        async def tracking_create_client(config):
            connected = await original(config)
            clients.append(connected)
            return connected

        strategy.create_client = tracking_create_client
        asyncio.run(_make_executor(strategy).run_check(_make_check("/ok", "/refused"), now=T0))

        assert len(clients) == 1
        assert clients[0].closed is True

    def test_create_client_failure(self):
        strategy = HttpHealthCheckStrategy()
        strategy.create_client = AsyncMock(side_effect=OSError("tls handshake failed"))
        executor = _make_executor(strategy)

        result = asyncio.run(executor.run_check(_make_check("/ok"), now=T0))

        assert result.status == HealthStatus.UNHEALTHY
        assert result.message == "tls handshake failed"
        assert result.runs == []
        assert result.aggregates.strategy["errorCount"]["count"] == 1

    def test_close_called_when_collectors_fail(self):
        closed = []
        strategy = HttpHealthCheckStrategy()
        client = AsyncMock()
        client.exec = AsyncMock(side_effect=RuntimeError("boom"))
        strategy.create_client = AsyncMock(
            return_value=ConnectedClient(client, close=lambda: closed.append(True)),
        )

        result = asyncio.run(_make_executor(strategy).run_check(_make_check("/ok"), now=T0))

        assert closed == [True]
        assert result.runs[0].message == "boom"

    def test_one_exec_in_flight_per_client(self):
        in_flight = []
        peak = []

        async def counting_handler(request: httpx.Request) -> httpx.Response:
            in_flight.append(request.url.path)
            peak.append(len(in_flight))
            await asyncio.sleep(0.01)
            in_flight.remove(request.url.path)
            return httpx.Response(200, text="ok")

        strategy = HttpHealthCheckStrategy(transport=httpx.MockTransport(counting_handler))
        check = _make_check("/a", "/b", "/c")

        result = asyncio.run(_make_executor(strategy).run_check(check, now=T0))

        assert max(peak) == 1
        assert [r.collector_instance_id for r in result.runs] == ["inst-0", "inst-1", "inst-2"]


# ============================================================================
# AGGREGATION
# ============================================================================

class TestAggregation:

    def test_per_instance_aggregates(self):
        executor = _make_executor()
        check = _make_check("/ok", "/down")

        asyncio.run(executor.run_check(check, now=T0))
        result = asyncio.run(executor.run_check(check, now=T1))

        aggregates = result.aggregates
        assert aggregates.run_count == 2
        assert aggregates.bucket_start == datetime(2026, 3, 18, 10, 0, tzinfo=timezone.utc)
        assert aggregates.collectors["inst-0"]["successRate"]["rate"] == 100
        assert aggregates.collectors["inst-1"]["successRate"]["rate"] == 0
        assert aggregates.collectors["inst-1"]["successRate"]["total"] == 2
        assert aggregates.strategy["errorCount"]["count"] == 2
        assert result.completed_bucket is None

    def test_transport_failure_not_in_collector_rate(self):
        executor = _make_executor()
        result = asyncio.run(executor.run_check(_make_check("/refused"), now=T0))

        # No result metadata: the run counts only at strategy level
        assert result.aggregates.collectors["inst-0"]["successRate"]["total"] == 0
        assert result.aggregates.strategy["errorCount"]["count"] == 1

    def test_bucket_rollover(self):
        executor = _make_executor()
        check = _make_check("/ok")

        asyncio.run(executor.run_check(check, now=T0))
        asyncio.run(executor.run_check(check, now=T1))
        result = asyncio.run(executor.run_check(check, now=T2))

        assert result.completed_bucket is not None
        assert result.completed_bucket.run_count == 2
        assert result.aggregates.run_count == 1
        assert result.aggregates.bucket_start == datetime(2026, 3, 18, 11, 0, tzinfo=timezone.utc)
        assert executor.get_aggregates("chk-1") == result.aggregates

    def test_seeded_aggregates_continue(self):
        executor = _make_executor()
        executor.load_aggregates(CheckAggregates(
            check_id="chk-1",
            bucket_start=datetime(2026, 3, 18, 10, 0, tzinfo=timezone.utc),
            bucket_size_seconds=3600,
            run_count=3,
            strategy={"errorCount": {"_type": "counter", "count": 3}},
            collectors={"inst-0": {
                "avgResponseTimeMs": {"_type": "average", "sum": 30.0, "count": 3},
                "successRate": {"_type": "rate", "successes": 3, "total": 3},
            }},
        ))

        result = asyncio.run(executor.run_check(_make_check("/ok"), now=T0))

        assert result.aggregates.run_count == 4
        assert result.aggregates.collectors["inst-0"]["successRate"]["total"] == 4
        assert result.aggregates.strategy["errorCount"]["count"] == 3
