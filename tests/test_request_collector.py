# ============================================================================
# REQUEST COLLECTOR TESTS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Tests - HTTP request collector
# PURPOSE: Verify success boundaries, header flattening, errors, aggregation
# CREATED: 16 MAR 2026
# ============================================================================
"""
Request Collector Tests

Covers:
1. Config validation (url, method, timeout bound)
2. Status boundaries: 199 / 200 / 399 / 400
3. Non-2xx/3xx reported as result + error string, not an exception
4. Header list flattening (last duplicate wins)
5. Transport exceptions propagate
6. merge_result(): average response time and success rate

Run with:
    pytest tests/test_request_collector.py -v
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from core.errors import SchemaValidationError
from health.core import HealthCheckRunForAggregation, HealthStatus
from health.http import (
    HttpHeader,
    HttpHealthCheckStrategy,
    HttpResponse,
    RequestCollector,
    RequestConfig,
    RequestResult,
    flatten_headers,
)


# ============================================================================
# FIXTURES
# ============================================================================

def _make_client(status_code=200, status_text="OK", body="ok"):
    """Transport client mock returning a fixed HttpResponse."""
    client = MagicMock()
    client.exec = AsyncMock(return_value=HttpResponse(
        status_code=status_code,
        status_text=status_text,
        body=body,
    ))
    return client


def _execute(config, client):
    return asyncio.run(RequestCollector().execute(config, client, "http"))


def _run(result=None, status=HealthStatus.HEALTHY):
    return HealthCheckRunForAggregation(status=status, metadata=result)


def _result(response_time_ms=10, success=True, status_code=200):
    return RequestResult(
        status_code=status_code,
        status_text="OK" if success else "Error",
        response_time_ms=response_time_ms,
        success=success,
    )


# ============================================================================
# CONFIG
# ============================================================================

class TestRequestConfig:

    def test_defaults(self):
        config = RequestCollector().config.validate({"url": "https://example.com/health"})
        assert config.method == "GET"
        assert config.timeout == 30000
        assert config.headers is None
        assert config.url == "https://example.com/health"

    def test_invalid_url(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            RequestCollector().config.validate({"url": "not a url"})
        assert "url" in exc_info.value.paths

    def test_invalid_method(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            RequestCollector().config.validate({"url": "https://example.com", "method": "PATCH"})
        assert "method" in exc_info.value.paths

    def test_timeout_minimum(self):
        with pytest.raises(SchemaValidationError):
            RequestCollector().config.validate({"url": "https://example.com", "timeout": 99})

    def test_attributes(self):
        collector = RequestCollector()
        assert collector.id == "request"
        assert collector.allow_multiple is True
        assert collector.supports("http")
        assert not collector.supports("dns")


# ============================================================================
# EXECUTE
# ============================================================================

class TestExecute:

    @pytest.mark.parametrize("status_code,success", [
        (199, False),
        (200, True),
        (301, True),
        (399, True),
        (400, False),
        (503, False),
    ])
    def test_status_boundaries(self, status_code, success):
        outcome = _execute({"url": "https://example.com"}, _make_client(status_code, "S"))

        assert outcome.result.success is success
        assert outcome.result.status_code == status_code
        assert outcome.ok is success

    def test_error_string_for_failure(self):
        outcome = _execute(
            {"url": "https://example.com"},
            _make_client(503, "Service Unavailable"),
        )
        assert outcome.error == "HTTP 503: Service Unavailable"

    def test_success_has_no_error(self):
        outcome = _execute({"url": "https://example.com"}, _make_client())
        assert outcome.error is None

    def test_body_and_length(self):
        outcome = _execute({"url": "https://example.com"}, _make_client(body="hello"))
        assert outcome.result.body == "hello"
        assert outcome.result.body_length == 5
        assert outcome.result.response_time_ms >= 0

    def test_request_built_from_config(self):
        client = _make_client()
        _execute(
            {
                "url": "https://example.com/api",
                "method": "POST",
                "headers": [
                    {"name": "X-Env", "value": "staging"},
                    {"name": "X-Env", "value": "prod"},
                ],
                "body": "{}",
                "timeout": 2500,
            },
            client,
        )

        request = client.exec.await_args.args[0]
        assert request.url == "https://example.com/api"
        assert request.method == "POST"
        assert request.headers == {"X-Env": "prod"}
        assert request.body == "{}"
        assert request.timeout == 2500

    def test_accepts_validated_config(self):
        config = RequestConfig(url="https://example.com")
        outcome = _execute(config, _make_client())
        assert outcome.ok

    def test_transport_error_propagates(self):
        client = MagicMock()
        client.exec = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(httpx.ConnectError):
            _execute({"url": "https://example.com"}, client)

    def test_against_mock_transport(self):
        strategy = HttpHealthCheckStrategy(
            transport=httpx.MockTransport(lambda request: httpx.Response(204)),
        )

        async def go():
            connected = await strategy.create_client({})
            try:
                return await RequestCollector().execute(
                    {"url": "https://example.com/ping"}, connected.client, "http",
                )
            finally:
                connected.close()

        outcome = asyncio.run(go())
        assert outcome.result.status_code == 204
        assert outcome.result.status_text == "No Content"
        assert outcome.ok


# ============================================================================
# HEADERS
# ============================================================================

class TestFlattenHeaders:

    def test_last_duplicate_wins(self):
        headers = [
            HttpHeader(name="Accept", value="text/html"),
            HttpHeader(name="X-Id", value="1"),
            HttpHeader(name="Accept", value="application/json"),
        ]
        assert flatten_headers(headers) == {"Accept": "application/json", "X-Id": "1"}

    def test_none(self):
        assert flatten_headers(None) == {}


# ============================================================================
# AGGREGATION
# ============================================================================

class TestRequestAggregation:

    def test_average_and_rate(self):
        collector = RequestCollector()
        aggregate = None
        for ms, ok in [(10, True), (20, False), (30, True), (40, True)]:
            aggregate = collector.merge_result(aggregate, _run(_result(ms, ok)))

        assert aggregate["avgResponseTimeMs"].avg == 25.0
        assert aggregate["successRate"].rate == 75

    def test_stored_camel_case_metadata(self):
        collector = RequestCollector()
        aggregate = collector.merge_result(None, _run({
            "statusCode": 200,
            "statusText": "OK",
            "responseTimeMs": 12,
            "success": True,
        }))

        assert aggregate["avgResponseTimeMs"].sum == 12
        assert aggregate["successRate"].total == 1

    def test_run_without_metadata_is_noop(self):
        aggregate = RequestCollector().merge_result(None, _run(None, HealthStatus.UNHEALTHY))
        assert aggregate["avgResponseTimeMs"].count == 0
        assert aggregate["successRate"].total == 0

    def test_result_serializes_camel_case(self):
        dumped = RequestCollector().result.dump(_result(15))
        assert dumped["responseTimeMs"] == 15
        assert dumped["statusCode"] == 200
        assert dumped["bodyLength"] == 0
