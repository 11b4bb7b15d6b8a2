# ============================================================================
# AGGREGATED RESULT DEFINITIONS
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Foundation - Field-map aggregate schemas
# PURPOSE: Declare bucket aggregates as named accumulator fields
# CREATED: 04 MAR 2026
# ============================================================================
"""
Aggregated Result Definitions

Strategies and collectors declare their bucket aggregate as a field map:

    fields = {
        "avgResponseTimeMs": aggregated_average("Avg Response Time", unit="ms"),
        "successRate": aggregated_rate("Success Rate", unit="%"),
    }
    aggregated = VersionedAggregated(version=1, fields=fields)

VersionedAggregated builds the pydantic model for the stored aggregate,
validates/migrates it like any other Versioned schema, and knows how to
combine two buckets field by field.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Type

from pydantic import Field, create_model

from core.aggregation import (
    AverageState,
    CounterState,
    MinMaxState,
    RateState,
    merge_average_states,
    merge_counter_states,
    merge_min_max_states,
    merge_rate_states,
)
from core.versioning import Migration, Versioned


class AggregationKind(str, Enum):
    """Accumulator kinds supported in bucket aggregates."""
    COUNTER = "counter"
    AVERAGE = "average"
    RATE = "rate"
    MINMAX = "minmax"


@dataclass(frozen=True)
class AggregatedField:
    """
    One named accumulator in an aggregate.

    Attributes:
        kind: Accumulator kind
        state_model: pydantic model holding the state
        merge_states: Combines two states of this kind
        label: Human-readable label for charts
        unit: Display unit ("ms", "%", ...)
        chart_type: Rendering hint ("line", "gauge", "counter", ...)
    """
    kind: AggregationKind
    state_model: Type[Any]
    merge_states: Callable[[Any, Any], Any]
    label: str
    unit: Optional[str] = None
    chart_type: str = "line"

    def initial_state(self) -> Any:
        return self.state_model()

    def display_value(self, state: Any) -> float:
        """Single number to plot for this state."""
        state = self.coerce(state)
        if self.kind == AggregationKind.COUNTER:
            return state.count
        if self.kind == AggregationKind.AVERAGE:
            return state.avg
        if self.kind == AggregationKind.RATE:
            return state.rate
        return state.max

    def coerce(self, state: Any) -> Any:
        """Accept a stored dict or a state model."""
        if isinstance(state, self.state_model):
            return state
        return self.state_model.model_validate(state)


def aggregated_counter(label: str, unit: Optional[str] = None, chart_type: str = "counter") -> AggregatedField:
    """Counter field (e.g. errorCount)."""
    return AggregatedField(
        AggregationKind.COUNTER, CounterState, merge_counter_states, label, unit, chart_type
    )


def aggregated_average(label: str, unit: Optional[str] = None, chart_type: str = "line") -> AggregatedField:
    """Average field (e.g. avgResponseTimeMs)."""
    return AggregatedField(
        AggregationKind.AVERAGE, AverageState, merge_average_states, label, unit, chart_type
    )


def aggregated_rate(label: str, unit: Optional[str] = "%", chart_type: str = "gauge") -> AggregatedField:
    """Rate field (e.g. successRate)."""
    return AggregatedField(
        AggregationKind.RATE, RateState, merge_rate_states, label, unit, chart_type
    )


def aggregated_min_max(label: str, unit: Optional[str] = None, chart_type: str = "line") -> AggregatedField:
    """Min/max field (e.g. latencyRange)."""
    return AggregatedField(
        AggregationKind.MINMAX, MinMaxState, merge_min_max_states, label, unit, chart_type
    )


class VersionedAggregated(Versioned):
    """
    Versioned schema for a bucket aggregate built from a field map.

    Missing fields validate to their initial (empty) state, so an
    aggregate written before a field was added still loads.
    """

    def __init__(
        self,
        version: int,
        fields: Mapping[str, AggregatedField],
        migrations: Optional[Sequence[Migration]] = None,
        model_name: str = "AggregatedResult",
    ):
        self.fields: Dict[str, AggregatedField] = dict(fields)
        model = create_model(
            model_name,
            **{
                name: (field.state_model, Field(default_factory=field.state_model))
                for name, field in self.fields.items()
            },
        )
        super().__init__(version=version, schema=model, migrations=migrations)

    def merge_aggregated_results(
        self,
        a: Optional[Mapping[str, Any]],
        b: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """
        Combine two buckets.

        Per field: both present -> kind merge; one present -> that one;
        neither -> initial state.
        """
        result: Dict[str, Any] = {}
        for name, field in self.fields.items():
            state_a = _get(a, name)
            state_b = _get(b, name)

            if state_a is not None and state_b is not None:
                result[name] = field.merge_states(state_a, state_b)
            elif state_a is not None:
                result[name] = field.coerce(state_a)
            elif state_b is not None:
                result[name] = field.coerce(state_b)
            else:
                result[name] = field.initial_state()
        return result

    def display_values(self, aggregate: Mapping[str, Any]) -> Dict[str, float]:
        """Flatten an aggregate into field -> display number."""
        return {
            name: field.display_value(_get(aggregate, name) or field.initial_state())
            for name, field in self.fields.items()
        }

    def to_dict(self, aggregate: Mapping[str, Any]) -> Dict[str, Any]:
        """JSON-compatible aggregate (states with _type and derived values)."""
        return {
            name: field.coerce(_get(aggregate, name) or field.initial_state()).to_dict()
            for name, field in self.fields.items()
        }


def _get(aggregate: Any, name: str) -> Any:
    if aggregate is None:
        return None
    if isinstance(aggregate, Mapping):
        return aggregate.get(name)
    return getattr(aggregate, name, None)


__all__ = [
    "AggregationKind",
    "AggregatedField",
    "aggregated_counter",
    "aggregated_average",
    "aggregated_rate",
    "aggregated_min_max",
    "VersionedAggregated",
]
