# ============================================================================
# INCREMENTAL AGGREGATION
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Foundation - Accumulator states and merge functions
# PURPOSE: O(1)-memory aggregation of per-run metrics into buckets
# CREATED: 04 MAR 2026
# ============================================================================
"""
Incremental Aggregation

Accumulators fold one observation at a time into a running state, so a
bucket never stores the raw run history.

Kinds:
- counter: {count}
- average: {sum, count} -> avg (0 when count is 0)
- rate:    {successes, total} -> rate percentage (0 when total is 0)
- minmax:  {min, max}

Two families of functions:
- merge_<kind>(existing, observation): fold one run into a state
- merge_<kind>_states(a, b): combine two pre-aggregated buckets

Every merge is total and accepts None, a state model, or a plain dict
(as loaded from JSON storage) for the existing state. Merges are
associative and commutative; average sums may differ in the last float
bits when replayed in another order.

Every state serializes with a "_type" discriminator.
"""

import math
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


def _round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _read(existing: Any, name: str, default: float = 0) -> Any:
    """Read a field from a state model or a stored dict."""
    if existing is None:
        return default
    if isinstance(existing, Mapping):
        value = existing.get(name)
    else:
        value = getattr(existing, name, None)
    return default if value is None else value


class _State(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        """JSON-compatible dict including _type and derived values."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# STATE MODELS
# ============================================================================

class CounterState(_State):
    """Occurrence counter (errorCount, failureCount, ...)."""
    kind: Literal["counter"] = Field(default="counter", alias="_type")
    count: int = 0


class AverageState(_State):
    """Running average (avgResponseTimeMs, ...)."""
    kind: Literal["average"] = Field(default="average", alias="_type")
    sum: float = 0.0
    count: int = 0

    @property
    def mean(self) -> float:
        """Exact mean; 0 when no samples were folded."""
        if self.count == 0:
            return 0.0
        return self.sum / self.count

    @computed_field
    @property
    def avg(self) -> float:
        """Display value, rounded to one decimal."""
        return _round_half_up(self.mean, 1)


class RateState(_State):
    """Success rate as a percentage (successRate, availability, ...)."""
    kind: Literal["rate"] = Field(default="rate", alias="_type")
    successes: int = 0
    total: int = 0

    @computed_field
    @property
    def rate(self) -> int:
        """Percentage 0-100, rounded half up; 0 when total is 0."""
        if self.total == 0:
            return 0
        return int(_round_half_up(self.successes / self.total * 100))


class MinMaxState(_State):
    """Observed range (latency range, memory range, ...)."""
    kind: Literal["minmax"] = Field(default="minmax", alias="_type")
    min: float = 0.0
    max: float = 0.0


StateLike = Optional[Union[BaseModel, Mapping[str, Any]]]


# ============================================================================
# MERGE ONE OBSERVATION
# ============================================================================

def merge_counter(existing: StateLike, increment: Union[bool, int]) -> CounterState:
    """
    Fold one observation into a counter.

    Args:
        existing: Previous state (None for first run in bucket)
        increment: True counts 1, False counts 0; numbers are added as-is
    """
    if isinstance(increment, bool):
        value = 1 if increment else 0
    else:
        value = increment
    return CounterState(count=_read(existing, "count") + value)


def merge_average(existing: StateLike, sample: Optional[float]) -> AverageState:
    """
    Fold one sample into an average.

    A None sample leaves the state unchanged.
    """
    total = _read(existing, "sum", 0.0)
    count = _read(existing, "count")
    if sample is None:
        return AverageState(sum=total, count=count)
    return AverageState(sum=total + sample, count=count + 1)


def merge_rate(existing: StateLike, success: Optional[bool]) -> RateState:
    """
    Fold one outcome into a rate.

    A None outcome leaves the state unchanged.
    """
    successes = _read(existing, "successes")
    total = _read(existing, "total")
    if success is None:
        return RateState(successes=successes, total=total)
    return RateState(
        successes=successes + (1 if success else 0),
        total=total + 1,
    )


def merge_min_max(existing: StateLike, value: Optional[float]) -> MinMaxState:
    """
    Fold one value into a min/max range.

    A None value leaves the state unchanged; the first value seeds both ends.
    """
    if value is None:
        return MinMaxState(min=_read(existing, "min", 0.0), max=_read(existing, "max", 0.0))
    if existing is None:
        return MinMaxState(min=value, max=value)
    return MinMaxState(
        min=min(_read(existing, "min", value), value),
        max=max(_read(existing, "max", value), value),
    )


# ============================================================================
# MERGE TWO BUCKETS
# ============================================================================

def merge_counter_states(a: StateLike, b: StateLike) -> CounterState:
    """Combine two counter buckets."""
    return CounterState(count=_read(a, "count") + _read(b, "count"))


def merge_average_states(a: StateLike, b: StateLike) -> AverageState:
    """Combine two average buckets."""
    return AverageState(
        sum=_read(a, "sum", 0.0) + _read(b, "sum", 0.0),
        count=_read(a, "count") + _read(b, "count"),
    )


def merge_rate_states(a: StateLike, b: StateLike) -> RateState:
    """Combine two rate buckets."""
    return RateState(
        successes=_read(a, "successes") + _read(b, "successes"),
        total=_read(a, "total") + _read(b, "total"),
    )


def merge_min_max_states(a: StateLike, b: StateLike) -> MinMaxState:
    """Combine two min/max buckets."""
    return MinMaxState(
        min=min(_read(a, "min", 0.0), _read(b, "min", 0.0)),
        max=max(_read(a, "max", 0.0), _read(b, "max", 0.0)),
    )


__all__ = [
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
]
