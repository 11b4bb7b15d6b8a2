# ============================================================================
# CONFIG SERVICE TESTS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Tests - Plugin-scoped versioned configuration
# PURPOSE: Verify migration on read, secret redaction and preservation
# CREATED: 17 MAR 2026
# ============================================================================
"""
Config Service Tests

Covers:
1. set/get round trip at the current version
2. Stored older versions migrated on read and written back
3. get_redacted() removes SecretStr fields
4. set() keeps the stored secret when the new value is empty
5. delete() / list()

Run with:
    pytest tests/test_config_service.py -v
"""

import asyncio
from typing import Optional

import pytest
from pydantic import BaseModel, SecretStr

from core.errors import MigrationPathNotFoundError, SchemaValidationError
from core.versioning import Migration, VersionedPluginRecord
from health.config_service import InMemoryConfigService, secret_fields
from health.http import HttpHealthCheckConfig
from health.http.strategy import HTTP_CONFIG_MIGRATIONS


# ============================================================================
# FIXTURES
# ============================================================================

class WebhookConfig(BaseModel):
    endpoint: str
    api_key: SecretStr
    signing_secret: Optional[SecretStr] = None
    retries: int = 0


WEBHOOK_MIGRATIONS = [
    Migration(
        from_version=1,
        to_version=2,
        description="Add retries",
        migrate=lambda d: {**d, "retries": 2},
    ),
]


def _make_service():
    return InMemoryConfigService("healthcheck-webhook")


# ============================================================================
# ROUND TRIP
# ============================================================================

class TestGetSet:

    def test_round_trip(self):
        service = _make_service()

        async def go():
            await service.set("main", WebhookConfig, 2, {"endpoint": "https://hooks", "api_key": "k1"})
            return await service.get("main", WebhookConfig, 2)

        config = asyncio.run(go())
        assert config.endpoint == "https://hooks"
        assert config.api_key.get_secret_value() == "k1"

    def test_set_model_instance(self):
        service = _make_service()
        value = WebhookConfig(endpoint="https://hooks", api_key=SecretStr("k1"))

        asyncio.run(service.set("main", WebhookConfig, 2, value))

        record = service.record("main")
        assert record.data["api_key"] == "k1"
        assert record.version == 2
        assert record.plugin_id == "healthcheck-webhook"

    def test_get_missing_returns_none(self):
        assert asyncio.run(_make_service().get("nope", WebhookConfig, 1)) is None

    def test_set_validates(self):
        service = _make_service()
        with pytest.raises(SchemaValidationError):
            asyncio.run(service.set("main", WebhookConfig, 2, {"endpoint": "https://hooks"}))
        assert service.record("main") is None


# ============================================================================
# MIGRATION ON READ
# ============================================================================

class TestMigrationOnRead:

    def test_old_record_migrated_and_written_back(self):
        service = _make_service()
        service.put_record("main", VersionedPluginRecord(
            version=1,
            data={"endpoint": "https://hooks", "api_key": "k1"},
            plugin_id="healthcheck-webhook",
        ))

        config = asyncio.run(service.get("main", WebhookConfig, 2, WEBHOOK_MIGRATIONS))

        assert config.retries == 2
        record = service.record("main")
        assert record.version == 2
        assert record.original_version == 1
        assert record.migrated_at is not None
        assert record.data["api_key"] == "k1"

    def test_http_strategy_config(self):
        service = InMemoryConfigService("healthcheck-http")
        service.put_record("default", VersionedPluginRecord(
            version=1,
            data={"url": "https://example.com", "method": "GET"},
            plugin_id="healthcheck-http",
        ))

        config = asyncio.run(service.get("default", HttpHealthCheckConfig, 3, HTTP_CONFIG_MIGRATIONS))
        assert config.timeout == 30000

    def test_missing_migration_raises(self):
        service = _make_service()
        service.put_record("main", VersionedPluginRecord(
            version=1,
            data={"endpoint": "https://hooks", "api_key": "k1"},
            plugin_id="healthcheck-webhook",
        ))

        with pytest.raises(MigrationPathNotFoundError):
            asyncio.run(service.get("main", WebhookConfig, 2))


# ============================================================================
# SECRETS
# ============================================================================

class TestSecrets:

    def test_secret_fields_detected(self):
        assert secret_fields(WebhookConfig) == ["api_key", "signing_secret"]
        assert secret_fields(HttpHealthCheckConfig) == []

    def test_get_redacted_strips_secrets(self):
        service = _make_service()

        async def go():
            await service.set("main", WebhookConfig, 2, {
                "endpoint": "https://hooks",
                "api_key": "k1",
                "signing_secret": "s1",
            })
            return await service.get_redacted("main", WebhookConfig, 2)

        redacted = asyncio.run(go())
        assert redacted == {"endpoint": "https://hooks", "retries": 0}

    def test_get_redacted_migrates(self):
        service = _make_service()
        service.put_record("main", VersionedPluginRecord(
            version=1,
            data={"endpoint": "https://hooks", "api_key": "k1"},
            plugin_id="healthcheck-webhook",
        ))

        redacted = asyncio.run(service.get_redacted("main", WebhookConfig, 2, WEBHOOK_MIGRATIONS))
        assert redacted == {"endpoint": "https://hooks", "retries": 2}

    def test_empty_secret_preserves_existing(self):
        service = _make_service()

        async def go():
            await service.set("main", WebhookConfig, 2, {"endpoint": "https://a", "api_key": "k1"})
            await service.set("main", WebhookConfig, 2, {"endpoint": "https://b", "api_key": ""})
            return await service.get("main", WebhookConfig, 2)

        config = asyncio.run(go())
        assert config.endpoint == "https://b"
        assert config.api_key.get_secret_value() == "k1"

    def test_missing_secret_preserves_existing(self):
        service = _make_service()

        async def go():
            await service.set("main", WebhookConfig, 2, {"endpoint": "https://a", "api_key": "k1"})
            await service.set("main", WebhookConfig, 2, {"endpoint": "https://a", "retries": 5})
            return await service.get("main", WebhookConfig, 2)

        config = asyncio.run(go())
        assert config.retries == 5
        assert config.api_key.get_secret_value() == "k1"

    def test_new_secret_replaces(self):
        service = _make_service()

        async def go():
            await service.set("main", WebhookConfig, 2, {"endpoint": "https://a", "api_key": "k1"})
            await service.set("main", WebhookConfig, 2, {"endpoint": "https://a", "api_key": "k2"})
            return await service.get("main", WebhookConfig, 2)

        assert asyncio.run(go()).api_key.get_secret_value() == "k2"


# ============================================================================
# DELETE / LIST
# ============================================================================

class TestDeleteList:

    def test_list_and_delete(self):
        service = _make_service()

        async def go():
            await service.set("b", WebhookConfig, 2, {"endpoint": "https://b", "api_key": "k"})
            await service.set("a", WebhookConfig, 2, {"endpoint": "https://a", "api_key": "k"})
            before = await service.list()
            await service.delete("b")
            await service.delete("missing")
            return before, await service.list()

        before, after = asyncio.run(go())
        assert before == ["a", "b"]
        assert after == ["a"]
