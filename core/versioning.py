# ============================================================================
# VERSIONED SCHEMAS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Foundation - Schema versioning and migrations
# PURPOSE: Validate stored config/result payloads, upgrading old versions
# CREATED: 03 MAR 2026
# ============================================================================
"""
Versioned Schemas

Wraps a pydantic schema with an explicit integer version and an ordered
list of forward-only migrations.

Pipeline for stored data:
    migrate (version-keyed chain) -> default-fill -> structural validate

pydantic performs default-fill and validation in a single pass and
reports every violation at once.

Usage:
    config = Versioned(
        version=2,
        schema=MyConfig,
        migrations=[
            Migration(1, 2, "Add timeout", lambda d: {**d, "timeout": 30000}),
        ],
    )

    cfg = config.validate(raw, stored_version=1)
    record = config.create(cfg)           # VersionedRecord at v2
    cfg = config.parse(record)            # migrate + validate
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from core.errors import (
    MigrationFailedError,
    MigrationPathNotFoundError,
    SchemaValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# STORAGE SHAPES
# ============================================================================

class VersionedRecord(BaseModel):
    """Versioned payload as stored in a database or sent over the wire."""
    version: int
    data: Any
    migrated_at: Optional[datetime] = None
    original_version: Optional[int] = None


class VersionedPluginRecord(VersionedRecord):
    """Versioned record owned by a plugin (plugin-wide configuration)."""
    plugin_id: str


@dataclass(frozen=True)
class Migration:
    """
    One forward step in a schema's history.

    migrate() must be pure and synchronous: it receives the payload at
    from_version and returns the payload at to_version.
    """
    from_version: int
    to_version: int
    description: str
    migrate: Callable[[Any], Any]


@dataclass
class ParseResult(Generic[T]):
    """Outcome of safe_parse()/safe_validate()."""
    success: bool
    data: Optional[T] = None
    error: Optional[Exception] = None


# ============================================================================
# VERSIONED
# ============================================================================

class Versioned(Generic[T]):
    """
    Schema + version + migration chain.

    Attributes:
        version: Current schema version
        schema: pydantic model class (or any type pydantic can validate)
        migrations: Migrations keyed by from_version
    """

    def __init__(
        self,
        version: int,
        schema: Any,
        migrations: Optional[Sequence[Migration]] = None,
    ):
        if version < 1:
            raise ValueError(f"Schema version must be >= 1, got {version}")

        self.version = version
        self.schema = schema
        self._adapter: TypeAdapter = TypeAdapter(schema)
        self._migrations: Dict[int, Migration] = {}

        for migration in migrations or []:
            if migration.to_version <= migration.from_version:
                raise ValueError(
                    f"Migration must move forward: v{migration.from_version} "
                    f"-> v{migration.to_version}"
                )
            if migration.to_version > version:
                raise ValueError(
                    f"Migration targets v{migration.to_version}, beyond "
                    f"current schema v{version}"
                )
            if migration.from_version in self._migrations:
                raise ValueError(
                    f"Duplicate migration from v{migration.from_version}"
                )
            self._migrations[migration.from_version] = migration

    @property
    def migrations(self) -> List[Migration]:
        """Migrations ordered by from_version."""
        return [self._migrations[v] for v in sorted(self._migrations)]

    # ------------------------------------------------------------------------
    # VALIDATION
    # ------------------------------------------------------------------------

    def validate(self, raw: Any, stored_version: Optional[int] = None) -> T:
        """
        Migrate (if needed) and validate a payload.

        Args:
            raw: Payload as stored
            stored_version: Version the payload was written with
                (None means current)

        Returns:
            Validated payload with defaults applied

        Raises:
            MigrationPathNotFoundError: No chain reaches the current version
            MigrationFailedError: A migration function raised
            SchemaValidationError: Payload invalid after migration
        """
        if stored_version is not None and stored_version != self.version:
            raw = self.migrate(raw, stored_version)
        return self._validate_current(raw)

    def safe_validate(self, raw: Any, stored_version: Optional[int] = None) -> ParseResult[T]:
        """validate() without raising."""
        try:
            return ParseResult(success=True, data=self.validate(raw, stored_version))
        except (SchemaValidationError, MigrationPathNotFoundError, MigrationFailedError) as e:
            return ParseResult(success=False, error=e)

    def migrate(self, raw: Any, stored_version: int) -> Any:
        """
        Apply the migration chain from stored_version to the current version.

        Does not validate the result.
        """
        if stored_version > self.version:
            raise MigrationPathNotFoundError(stored_version, self.version)

        current_version = stored_version
        data = raw
        while current_version < self.version:
            migration = self._migrations.get(current_version)
            if migration is None:
                raise MigrationPathNotFoundError(
                    stored_version, self.version, missing_from=current_version
                )
            try:
                data = migration.migrate(data)
            except Exception as e:
                raise MigrationFailedError(
                    migration.from_version, migration.to_version, e
                ) from e

            logger.debug(
                f"Applied migration v{migration.from_version} -> "
                f"v{migration.to_version}: {migration.description}"
            )
            current_version = migration.to_version

        return data

    def needs_migration(self, record: VersionedRecord) -> bool:
        """Check if a stored record is behind the current version."""
        return record.version != self.version

    def _validate_current(self, raw: Any) -> T:
        try:
            return self._adapter.validate_python(raw)
        except ValidationError as e:
            raise SchemaValidationError.from_pydantic(e, self.version) from e

    # ------------------------------------------------------------------------
    # RECORDS
    # ------------------------------------------------------------------------

    def parse(self, record: VersionedRecord) -> T:
        """Migrate and validate a stored record, returning the payload."""
        return self.validate(record.data, record.version)

    def safe_parse(self, record: VersionedRecord) -> ParseResult[T]:
        """parse() without raising."""
        return self.safe_validate(record.data, record.version)

    def parse_record(self, record: VersionedRecord) -> VersionedRecord:
        """
        Migrate and validate, keeping the record wrapper.

        migrated_at and original_version are set when a migration ran.
        """
        if not self.needs_migration(record):
            data = self._validate_current(record.data)
            return record.model_copy(update={"data": data})

        migrated = self.migrate(record.data, record.version)
        data = self._validate_current(migrated)
        original = record.original_version
        return record.model_copy(update={
            "version": self.version,
            "data": data,
            "migrated_at": datetime.now(timezone.utc),
            "original_version": original if original is not None else record.version,
        })

    def create(self, data: Any) -> VersionedRecord:
        """Validate fresh data and wrap it at the current version."""
        return VersionedRecord(version=self.version, data=self._validate_current(data))

    def create_for_plugin(self, data: Any, plugin_id: str) -> VersionedPluginRecord:
        """Validate fresh data and wrap it for a plugin."""
        return VersionedPluginRecord(
            version=self.version,
            data=self._validate_current(data),
            plugin_id=plugin_id,
        )

    def dump(self, value: Any) -> Any:
        """Serialize a validated payload to JSON-compatible data."""
        return self._adapter.dump_python(value, mode="json", by_alias=True)

    def json_schema(self) -> Dict[str, Any]:
        """JSON schema of the current version."""
        return self._adapter.json_schema(by_alias=True)


__all__ = [
    "Migration",
    "VersionedRecord",
    "VersionedPluginRecord",
    "ParseResult",
    "Versioned",
]
