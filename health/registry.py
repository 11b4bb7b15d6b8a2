# ============================================================================
# HEALTH CHECK REGISTRIES
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Infrastructure - Strategy and collector registration
# PURPOSE: Register and discover strategies and collectors by id
# CREATED: 11 MAR 2026
# ============================================================================
"""
Health Check Registries

Explicit registry objects mapping ids to strategy / collector instances.
Populated once at startup (plugin init), read-only afterwards.

Strategies are stored under a qualified id "<owner_plugin>.<strategy_id>"
when registered with an owner, and can be looked up by either form.
Collectors are keyed by collector id and matched to strategies through
their supported_plugins list.

Usage:
    # Manual registration
    registry = get_registry()
    registry.register_with_owner(HttpHealthCheckStrategy(), "healthcheck-http")

    # Scoped registration (what a plugin receives at init)
    scoped = ScopedHealthCheckRegistry(get_registry(), "healthcheck-http")
    scoped.register(HttpHealthCheckStrategy())

    # Decorator registration
    @register_collector(owner_plugin_id="healthcheck-http")
    class RequestCollector(CollectorStrategy):
        ...
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Type

from core.errors import CollectorNotFoundError, StrategyNotFoundError
from health.core import CollectorStrategy, HealthCheckStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredStrategy:
    """A strategy with its owning plugin and qualified id."""
    strategy: HealthCheckStrategy
    owner_plugin_id: Optional[str]
    qualified_id: str


@dataclass(frozen=True)
class RegisteredCollector:
    """A collector with its owning plugin."""
    collector: CollectorStrategy
    owner_plugin_id: Optional[str]


def qualify(strategy_id: str, owner_plugin_id: Optional[str]) -> str:
    """Build the qualified strategy id."""
    if owner_plugin_id:
        return f"{owner_plugin_id}.{strategy_id}"
    return strategy_id


# ============================================================================
# STRATEGY REGISTRY
# ============================================================================

class HealthCheckRegistry:
    """
    Registry for health check strategies.
    """

    def __init__(self):
        self._strategies: Dict[str, RegisteredStrategy] = {}

    def register(self, strategy: HealthCheckStrategy) -> None:
        """Register a strategy without an owner (qualified id == strategy id)."""
        self.register_with_owner(strategy, None)

    def register_with_owner(
        self,
        strategy: HealthCheckStrategy,
        owner_plugin_id: Optional[str],
    ) -> str:
        """
        Register a strategy owned by a plugin.

        Returns:
            The qualified id the strategy is stored under
        """
        qualified_id = qualify(strategy.id, owner_plugin_id)
        if qualified_id in self._strategies:
            logger.warning(f"Overwriting health check strategy: {qualified_id}")

        self._strategies[qualified_id] = RegisteredStrategy(
            strategy=strategy,
            owner_plugin_id=owner_plugin_id,
            qualified_id=qualified_id,
        )
        logger.debug(f"Registered health check strategy: {qualified_id}")
        return qualified_id

    def get_strategy(self, strategy_id: str) -> Optional[HealthCheckStrategy]:
        """
        Get a strategy by qualified or plain id.

        A plain id resolves only when exactly one registered strategy has it.
        """
        entry = self._strategies.get(strategy_id)
        if entry is not None:
            return entry.strategy

        matches = [e for e in self._strategies.values() if e.strategy.id == strategy_id]
        if len(matches) == 1:
            return matches[0].strategy
        if len(matches) > 1:
            logger.warning(
                f"Ambiguous strategy id '{strategy_id}': "
                f"{[m.qualified_id for m in matches]}"
            )
        return None

    def get_strategy_or_raise(self, strategy_id: str) -> HealthCheckStrategy:
        """Get a strategy, raising StrategyNotFoundError if missing."""
        strategy = self.get_strategy(strategy_id)
        if strategy is None:
            raise StrategyNotFoundError(strategy_id)
        return strategy

    def get_strategies(self) -> List[HealthCheckStrategy]:
        """Get all registered strategies."""
        return [e.strategy for e in self._strategies.values()]

    def get_strategies_with_meta(self) -> List[RegisteredStrategy]:
        """Get all strategies with owner and qualified id."""
        return list(self._strategies.values())

    def get_owner_plugin_id(self, qualified_id: str) -> Optional[str]:
        """Get the owning plugin of a strategy."""
        entry = self._strategies.get(qualified_id)
        return entry.owner_plugin_id if entry else None

    def loaded_strategy_ids(self) -> List[str]:
        """Plain ids of all registered strategies."""
        return sorted({e.strategy.id for e in self._strategies.values()})

    def clear(self) -> None:
        """Remove all registered strategies."""
        self._strategies.clear()

    def __len__(self) -> int:
        return len(self._strategies)

    def __contains__(self, strategy_id: str) -> bool:
        return self.get_strategy(strategy_id) is not None


# ============================================================================
# COLLECTOR REGISTRY
# ============================================================================

class CollectorRegistry:
    """
    Registry for collectors.
    """

    def __init__(self):
        self._collectors: Dict[str, RegisteredCollector] = {}

    def register(self, collector: CollectorStrategy) -> None:
        """Register a collector without an owner."""
        self.register_with_owner(collector, None)

    def register_with_owner(
        self,
        collector: CollectorStrategy,
        owner_plugin_id: Optional[str],
    ) -> None:
        """Register a collector owned by a plugin."""
        if collector.id in self._collectors:
            logger.warning(f"Overwriting collector: {collector.id}")

        self._collectors[collector.id] = RegisteredCollector(
            collector=collector,
            owner_plugin_id=owner_plugin_id,
        )
        logger.debug(
            f"Registered collector: {qualify(collector.id, owner_plugin_id)} "
            f"(supports={collector.supported_plugins}, allow_multiple={collector.allow_multiple})"
        )

    def unregister_by_owner(self, owner_plugin_id: str) -> List[str]:
        """
        Remove all collectors owned by a plugin.

        Returns:
            Ids of removed collectors
        """
        removed = [
            cid for cid, entry in self._collectors.items()
            if entry.owner_plugin_id == owner_plugin_id
        ]
        for cid in removed:
            del self._collectors[cid]
            logger.debug(f"Unregistered collector: {cid} (owner plugin unloaded)")
        return removed

    def unregister_by_missing_strategies(self, loaded_strategy_ids: Iterable[str]) -> List[str]:
        """
        Remove collectors none of whose supported strategies are loaded.

        Returns:
            Ids of removed collectors
        """
        loaded = set(loaded_strategy_ids)
        removed = [
            cid for cid, entry in self._collectors.items()
            if not any(p in loaded for p in entry.collector.supported_plugins)
        ]
        for cid in removed:
            del self._collectors[cid]
            logger.debug(f"Unregistered collector: {cid} (no supported strategies loaded)")
        return removed

    def get_collector(self, collector_id: str) -> Optional[RegisteredCollector]:
        """Get a collector entry by id."""
        return self._collectors.get(collector_id)

    def get_collector_or_raise(self, collector_id: str) -> CollectorStrategy:
        """Get a collector, raising CollectorNotFoundError if missing."""
        entry = self._collectors.get(collector_id)
        if entry is None:
            raise CollectorNotFoundError(collector_id)
        return entry.collector

    def get_collectors_for_plugin(self, plugin_id: str) -> List[RegisteredCollector]:
        """Get collectors that can run against a strategy id."""
        return [
            entry for entry in self._collectors.values()
            if entry.collector.supports(plugin_id)
        ]

    def get_collectors(self) -> List[RegisteredCollector]:
        """Get all registered collectors."""
        return list(self._collectors.values())

    def clear(self) -> None:
        """Remove all registered collectors."""
        self._collectors.clear()

    def __len__(self) -> int:
        return len(self._collectors)

    def __contains__(self, collector_id: str) -> bool:
        return collector_id in self._collectors


# ============================================================================
# SCOPED REGISTRIES
# ============================================================================

class ScopedHealthCheckRegistry:
    """
    Strategy registry handed to one plugin; registrations carry its id.
    """

    def __init__(self, registry: HealthCheckRegistry, owner_plugin_id: str):
        self._registry = registry
        self.owner_plugin_id = owner_plugin_id

    def register(self, strategy: HealthCheckStrategy) -> None:
        self._registry.register_with_owner(strategy, self.owner_plugin_id)

    def get_strategy(self, strategy_id: str) -> Optional[HealthCheckStrategy]:
        return (
            self._registry.get_strategy(strategy_id)
            or self._registry.get_strategy(qualify(strategy_id, self.owner_plugin_id))
        )

    def get_strategies(self) -> List[HealthCheckStrategy]:
        return self._registry.get_strategies()

    def get_strategies_with_meta(self) -> List[RegisteredStrategy]:
        return self._registry.get_strategies_with_meta()


class ScopedCollectorRegistry:
    """
    Collector registry handed to one plugin; registrations carry its id.
    """

    def __init__(self, registry: CollectorRegistry, owner_plugin_id: str):
        self._registry = registry
        self.owner_plugin_id = owner_plugin_id

    def register(self, collector: CollectorStrategy) -> None:
        self._registry.register_with_owner(collector, self.owner_plugin_id)

    def get_collector(self, collector_id: str) -> Optional[RegisteredCollector]:
        return self._registry.get_collector(collector_id)

    def get_collectors_for_plugin(self, plugin_id: str) -> List[RegisteredCollector]:
        return self._registry.get_collectors_for_plugin(plugin_id)

    def get_collectors(self) -> List[RegisteredCollector]:
        return self._registry.get_collectors()


# ============================================================================
# GLOBAL REGISTRIES & DECORATORS
# ============================================================================

_registry: Optional[HealthCheckRegistry] = None
_collector_registry: Optional[CollectorRegistry] = None


def get_registry() -> HealthCheckRegistry:
    """Get the global strategy registry."""
    global _registry
    if _registry is None:
        _registry = HealthCheckRegistry()
    return _registry


def get_collector_registry() -> CollectorRegistry:
    """Get the global collector registry."""
    global _collector_registry
    if _collector_registry is None:
        _collector_registry = CollectorRegistry()
    return _collector_registry


def reset_registries() -> None:
    """Drop the global registries (for testing)."""
    global _registry, _collector_registry
    _registry = None
    _collector_registry = None


def register_strategy(
    owner_plugin_id: Optional[str] = None,
    **kwargs,
) -> Callable[[Type[HealthCheckStrategy]], Type[HealthCheckStrategy]]:
    """
    Decorator to instantiate and register a strategy class globally.

    Args:
        owner_plugin_id: Owning plugin (qualifies the id)
        **kwargs: Arguments passed to the constructor
    """
    def decorator(cls: Type[HealthCheckStrategy]) -> Type[HealthCheckStrategy]:
        get_registry().register_with_owner(cls(**kwargs), owner_plugin_id)
        return cls

    return decorator


def register_collector(
    owner_plugin_id: Optional[str] = None,
    **kwargs,
) -> Callable[[Type[CollectorStrategy]], Type[CollectorStrategy]]:
    """
    Decorator to instantiate and register a collector class globally.
    """
    def decorator(cls: Type[CollectorStrategy]) -> Type[CollectorStrategy]:
        get_collector_registry().register_with_owner(cls(**kwargs), owner_plugin_id)
        return cls

    return decorator


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "RegisteredStrategy",
    "RegisteredCollector",
    "qualify",
    "HealthCheckRegistry",
    "CollectorRegistry",
    "ScopedHealthCheckRegistry",
    "ScopedCollectorRegistry",
    "get_registry",
    "get_collector_registry",
    "reset_registries",
    "register_strategy",
    "register_collector",
]
