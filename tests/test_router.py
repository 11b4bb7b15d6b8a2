# ============================================================================
# ROUTER TESTS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Tests - Read-only listing endpoints
# PURPOSE: Verify strategy/collector listing and 404 handling
# CREATED: 18 MAR 2026
# ============================================================================
"""
Router Tests

Uses FastAPI TestClient against the global registries.

Run with:
    pytest tests/test_router.py -v
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from __version__ import __version__
from health.http import PLUGIN_ID, register_http_plugin
from health.registry import reset_registries
from health.router import health_router


@pytest.fixture
def client():
    reset_registries()
    register_http_plugin()
    app = FastAPI()
    app.include_router(health_router)
    yield TestClient(app)
    reset_registries()


class TestLiveness:

    def test_livez(self, client):
        response = client.get("/livez")
        assert response.status_code == 200
        assert response.json()["version"] == __version__


class TestStrategies:

    def test_list_strategies(self, client):
        response = client.get("/healthchecks/strategies")
        assert response.status_code == 200

        strategies = response.json()["strategies"]
        assert len(strategies) == 1
        http = strategies[0]
        assert http["id"] == "http"
        assert http["qualified_id"] == f"{PLUGIN_ID}.http"
        assert http["owner_plugin_id"] == PLUGIN_ID
        assert http["config_version"] == 3
        assert "timeout" in http["config_schema"]["properties"]

    def test_list_empty(self):
        reset_registries()
        app = FastAPI()
        app.include_router(health_router)
        response = TestClient(app).get("/healthchecks/strategies")
        assert response.json() == {"strategies": []}

    @pytest.mark.parametrize("strategy_id", ["http", f"{PLUGIN_ID}.http"])
    def test_collectors_for_strategy(self, client, strategy_id):
        response = client.get(f"/healthchecks/strategies/{strategy_id}/collectors")
        assert response.status_code == 200

        body = response.json()
        assert body["strategy_id"] == "http"
        assert [c["id"] for c in body["collectors"]] == ["request"]
        assert body["collectors"][0]["allow_multiple"] is True

    def test_unknown_strategy_404(self, client):
        response = client.get("/healthchecks/strategies/dns/collectors")
        assert response.status_code == 404
        assert "dns" in response.json()["error"]


class TestCollectors:

    def test_get_collector(self, client):
        response = client.get("/healthchecks/collectors/request")
        assert response.status_code == 200

        body = response.json()
        assert body["supported_plugins"] == ["http"]
        assert "url" in body["config_schema"]["properties"]
        assert "responseTimeMs" in body["result_schema"]["properties"]
        assert body["owner_plugin_id"] == PLUGIN_ID

    def test_unknown_collector_404(self, client):
        response = client.get("/healthchecks/collectors/nope")
        assert response.status_code == 404


class TestApplication:
    """main.app registers the HTTP plugin at startup."""

    def test_startup_registers_http_plugin(self):
        reset_registries()
        from main import app

        with TestClient(app) as test_client:
            root = test_client.get("/")
            strategies = test_client.get("/healthchecks/strategies").json()["strategies"]

        assert root.json()["version"] == __version__
        assert [s["qualified_id"] for s in strategies] == [f"{PLUGIN_ID}.http"]
        reset_registries()
