# ============================================================================
# PLUGIN CONFIG SERVICE
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Service - Plugin-scoped versioned configuration
# PURPOSE: Store, migrate and redact plugin configuration records
# CREATED: 12 MAR 2026
# ============================================================================
"""
Plugin Config Service

Plugin-scoped key/value store for versioned configuration. Each key holds
a VersionedPluginRecord; reads migrate the record to the requested schema
version and validate it.

Secret handling (pydantic SecretStr fields):
- get(): secrets returned as SecretStr
- get_redacted(): secret fields removed entirely
- set(): an empty or missing secret keeps the stored value

Usage:
    service = InMemoryConfigService("healthcheck-http")
    await service.set("default", HttpHealthCheckConfig, 3, {"timeout": 5000})
    config = await service.get("default", HttpHealthCheckConfig, 3, HTTP_CONFIG_MIGRATIONS)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union, get_args

from pydantic import BaseModel, SecretStr

from core.versioning import Migration, Versioned, VersionedPluginRecord

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _is_secret(annotation: Any) -> bool:
    if annotation is SecretStr:
        return True
    return any(_is_secret(arg) for arg in get_args(annotation))


def secret_fields(schema: Any) -> List[str]:
    """Names of SecretStr fields (top level) of a pydantic model class."""
    if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
        return []
    return [
        name for name, field in schema.model_fields.items()
        if _is_secret(field.annotation)
    ]


def _to_raw(value: Union[BaseModel, Dict[str, Any]], secrets: Sequence[str]) -> Dict[str, Any]:
    """Model or dict -> storable dict with secrets in clear."""
    if isinstance(value, BaseModel):
        data = value.model_dump(mode="json")
        for name in secrets:
            secret = getattr(value, name, None)
            data[name] = secret.get_secret_value() if isinstance(secret, SecretStr) else secret
        return data

    data = dict(value)
    for name in secrets:
        if isinstance(data.get(name), SecretStr):
            data[name] = data[name].get_secret_value()
    return data


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


# ============================================================================
# INTERFACE
# ============================================================================

class ConfigService(ABC):
    """
    Plugin-scoped configuration store.
    """

    @abstractmethod
    async def get(
        self,
        key: str,
        schema: Type[T],
        version: int,
        migrations: Optional[Sequence[Migration]] = None,
    ) -> Optional[T]:
        """
        Load, migrate and validate a config.

        Returns:
            Validated config, or None if the key is not set

        Raises:
            MigrationPathNotFoundError: Stored version cannot reach version
            SchemaValidationError: Stored data invalid after migration
        """
        pass

    @abstractmethod
    async def set(
        self,
        key: str,
        schema: Type[T],
        version: int,
        value: Union[T, Dict[str, Any]],
        migrations: Optional[Sequence[Migration]] = None,
    ) -> None:
        """Validate and store a config at version."""
        pass

    @abstractmethod
    async def get_redacted(
        self,
        key: str,
        schema: Type[T],
        version: int,
        migrations: Optional[Sequence[Migration]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Load and migrate a config with secret fields removed."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a config. Missing keys are ignored."""
        pass

    @abstractmethod
    async def list(self) -> List[str]:
        """Keys stored for this plugin."""
        pass


# ============================================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================================

class InMemoryConfigService(ConfigService):
    """
    ConfigService backed by a dict of VersionedPluginRecord.

    Writes to one key are serialized. Migrated records are written back
    with migrated_at/original_version set.
    """

    def __init__(self, plugin_id: str):
        self.plugin_id = plugin_id
        self._records: Dict[str, VersionedPluginRecord] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def record(self, key: str) -> Optional[VersionedPluginRecord]:
        """Raw stored record (for inspection)."""
        return self._records.get(key)

    def put_record(self, key: str, record: VersionedPluginRecord) -> None:
        """Store a raw record as-is (seeding older versions)."""
        self._records[key] = record

    def _migrated_data(
        self,
        record: VersionedPluginRecord,
        version: int,
        migrations: Optional[Sequence[Migration]],
    ) -> Any:
        if record.version == version:
            return record.data
        return Versioned(version, Dict[str, Any], migrations).migrate(record.data, record.version)

    async def get(
        self,
        key: str,
        schema: Type[T],
        version: int,
        migrations: Optional[Sequence[Migration]] = None,
    ) -> Optional[T]:
        async with self._locks[key]:
            record = self._records.get(key)
            if record is None:
                return None

            validated = Versioned(version, schema, migrations).validate(record.data, record.version)

            if record.version != version:
                self._records[key] = VersionedPluginRecord(
                    version=version,
                    data=_to_raw(validated, secret_fields(schema)),
                    plugin_id=self.plugin_id,
                    migrated_at=datetime.now(timezone.utc),
                    original_version=(
                        record.original_version
                        if record.original_version is not None
                        else record.version
                    ),
                )
                logger.info(
                    f"Migrated config {self.plugin_id}/{key}: "
                    f"v{record.version} -> v{version}"
                )

            return validated

    async def set(
        self,
        key: str,
        schema: Type[T],
        version: int,
        value: Union[T, Dict[str, Any]],
        migrations: Optional[Sequence[Migration]] = None,
    ) -> None:
        secrets = secret_fields(schema)

        async with self._locks[key]:
            raw = _to_raw(value, secrets)

            existing = self._records.get(key)
            if existing is not None and secrets:
                previous = self._migrated_data(existing, version, migrations)
                for name in secrets:
                    if _is_blank(raw.get(name)) and previous.get(name):
                        raw[name] = previous[name]

            validated = Versioned(version, schema, migrations).validate(raw)
            self._records[key] = VersionedPluginRecord(
                version=version,
                data=_to_raw(validated, secrets),
                plugin_id=self.plugin_id,
            )
            logger.debug(f"Stored config {self.plugin_id}/{key} (v{version})")

    async def get_redacted(
        self,
        key: str,
        schema: Type[T],
        version: int,
        migrations: Optional[Sequence[Migration]] = None,
    ) -> Optional[Dict[str, Any]]:
        record = self._records.get(key)
        if record is None:
            return None

        data = self._migrated_data(record, version, migrations)
        secrets = set(secret_fields(schema))
        return {k: v for k, v in data.items() if k not in secrets}

    async def delete(self, key: str) -> None:
        async with self._locks[key]:
            if self._records.pop(key, None) is not None:
                logger.debug(f"Deleted config {self.plugin_id}/{key}")

    async def list(self) -> List[str]:
        return sorted(self._records)


__all__ = [
    "secret_fields",
    "ConfigService",
    "InMemoryConfigService",
]
