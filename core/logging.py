# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - HEALTH CHECK CORE
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across strategies and collectors
# CREATED: 05 MAR 2026
# ============================================================================
"""
Structured Logging

Log lines carry the check being ticked: check_id, strategy_id,
collector_id and run_id come from the active log_context() and are
attached to every record, JSON or human-readable.

Context is held in a contextvars.ContextVar, so collectors running
concurrently on one event loop each see their own fields.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("health.executor", ComponentType.EXECUTOR)

    with log_context(check_id="chk-123", strategy_id="http"):
        logger.info("Running check")
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, TextIO, Union


class ComponentType(str, Enum):
    """Which part of the health check core emitted a record."""
    STRATEGY = "strategy"
    COLLECTOR = "collector"
    REGISTRY = "registry"
    EXECUTOR = "executor"
    CONFIG = "config"
    API = "api"


# Human-readable prefixes, in display order
_SHORT_NAMES = (
    ("check_id", "check"),
    ("strategy_id", "strategy"),
    ("collector_id", "collector"),
    ("run_id", "run"),
)

# Chatty third-party loggers: one INFO line per probe request
_NOISY_LOGGERS = ("httpx", "httpcore")


@dataclass(frozen=True)
class LogContext:
    """
    Fields attached to every record logged inside a log_context() block.
    """
    check_id: Optional[str] = None
    strategy_id: Optional[str] = None
    collector_id: Optional[str] = None
    run_id: Optional[str] = None
    plugin_id: Optional[str] = None
    correlation_id: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only; extra keys are flattened in."""
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "extra" and getattr(self, f.name) is not None
        }
        data.update(self.extra)
        return data


_NAMED_FIELDS = frozenset(f.name for f in fields(LogContext)) - {"extra"}

_current_context: ContextVar[LogContext] = ContextVar("health_log_context", default=LogContext())


def get_current_context() -> LogContext:
    """Context of the innermost active log_context() block."""
    return _current_context.get()


@contextmanager
def log_context(**kwargs) -> Iterator[LogContext]:
    """
    Layer fields onto the current logging context for the block.

    Named LogContext fields replace the parent's value; any other keyword
    is merged into extra.

    Example:
        with log_context(check_id="chk-1", collector_id="request"):
            logger.info("Executing collector")
    """
    parent = get_current_context()
    named = {k: v for k, v in kwargs.items() if k in _NAMED_FIELDS}
    extra = dict(parent.extra)
    extra.update(kwargs.pop("extra", None) or {})
    extra.update({k: v for k, v in kwargs.items() if k not in _NAMED_FIELDS})

    token = _current_context.set(replace(parent, extra=extra, **named))
    try:
        yield _current_context.get()
    finally:
        _current_context.reset(token)


def _record_data(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    # ContextLogger and log_checkpoint() store their payload on record.extra
    return getattr(record, "extra", None) or None


# ============================================================================
# FORMATTERS
# ============================================================================

class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record, for log aggregators.

    Keys: timestamp, level, logger, message, context (when set),
    data (record payload), exception, source.
    """

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context = get_current_context().to_dict()
            if context:
                entry["context"] = context

        data = _record_data(record)
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry["source"] = f"{record.filename}:{record.lineno} {record.funcName}"
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Single-line format for local runs:

        2026-03-18 10:15:02 INFO     health.executor [check=chk-1, strategy=http]: ...
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        context = get_current_context()

        tags = [
            f"{short}={getattr(context, name)}"
            for name, short in _SHORT_NAMES
            if getattr(context, name)
        ]
        prefix = f" [{', '.join(tags)}]" if tags else ""

        line = (
            f"{timestamp:%Y-%m-%d %H:%M:%S} {record.levelname:<8} "
            f"{record.name}{prefix}: {record.getMessage()}"
        )

        data = _record_data(record)
        if data:
            line += f" {data}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ============================================================================
# LOGGERS
# ============================================================================

class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that snapshots the current LogContext onto each record.

    Caller-supplied extra wins over context fields of the same name.
    """

    def process(self, msg, kwargs):
        payload = get_current_context().to_dict()
        component = (self.extra or {}).get("component")
        if component and "component" not in payload:
            payload["component"] = component
        payload.update(kwargs.get("extra") or {})

        kwargs["extra"] = {"extra": payload}
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Context-aware logger for a module.

    Args:
        name: Logger name (usually __name__)
        component: Tags every record with this component
    """
    return ContextLogger(
        logging.getLogger(name),
        {"component": component.value if component is not None else None},
    )


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Install a single root handler.

    Args:
        level: Root level name or number
        json_output: JSON lines instead of human format (LOG_FORMAT=json also enables it)
        stream: Output stream (stdout by default)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    use_json = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter() if use_json else HumanFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named milestone of a check tick.

    Checkpoints ("check_started", "client_closed", "check_completed") carry
    the current context, so one tick can be reconstructed from the logs.

    Args:
        name: Checkpoint name
        data: Payload stored under "data"
        logger: Logger to emit on (defaults to "checkpoint")
    """
    payload: Dict[str, Any] = {"checkpoint": name}
    payload.update(get_current_context().to_dict())
    if data:
        payload["data"] = data

    (logger or logging.getLogger("checkpoint")).info(
        f"CHECKPOINT: {name}", extra={"extra": payload}
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
