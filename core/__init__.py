# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Core module initialization
# PURPOSE: Export versioned schemas, aggregation primitives, errors
# LAST_REVIEWED: 20 MAR 2026
# ============================================================================

from core.errors import (
    HealthCoreError,
    SchemaValidationError,
    MigrationError,
    MigrationPathNotFoundError,
    MigrationFailedError,
    ClientClosedError,
)
from core.versioning import (
    Migration,
    VersionedRecord,
    VersionedPluginRecord,
    ParseResult,
    Versioned,
)
from core.aggregation import (
    CounterState,
    AverageState,
    RateState,
    MinMaxState,
    merge_counter,
    merge_average,
    merge_rate,
    merge_min_max,
    merge_counter_states,
    merge_average_states,
    merge_rate_states,
    merge_min_max_states,
)
from core.aggregated_result import (
    AggregationKind,
    AggregatedField,
    aggregated_counter,
    aggregated_average,
    aggregated_rate,
    aggregated_min_max,
    VersionedAggregated,
)

__all__ = [
    # Errors
    "HealthCoreError",
    "SchemaValidationError",
    "MigrationError",
    "MigrationPathNotFoundError",
    "MigrationFailedError",
    "ClientClosedError",
    # Versioning
    "Migration",
    "VersionedRecord",
    "VersionedPluginRecord",
    "ParseResult",
    "Versioned",
    # Aggregation
    "CounterState",
    "AverageState",
    "RateState",
    "MinMaxState",
    "merge_counter",
    "merge_average",
    "merge_rate",
    "merge_min_max",
    "merge_counter_states",
    "merge_average_states",
    "merge_rate_states",
    "merge_min_max_states",
    # Aggregated results
    "AggregationKind",
    "AggregatedField",
    "aggregated_counter",
    "aggregated_average",
    "aggregated_rate",
    "aggregated_min_max",
    "VersionedAggregated",
]
