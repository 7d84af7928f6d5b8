# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across engine, services, adapters
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Every log line carries whichever of these are in scope:

    project_id, template_id, task_set_id, blueprint_id, operation, component

Scopes nest through log_context(); inner scopes inherit and override outer
ones. Output is human-readable by default and JSON with LOG_FORMAT=json.

Checkpoints are named milestones (instantiation_started,
instantiation_completed, dependency_added, dependency_node_removed) that
can be filtered to reconstruct what one instantiation or edit did.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger(__name__, ComponentType.SERVICE)

    with log_context(project_id="p-1", operation="instantiate_project"):
        logger.info("Loading bundle")
"""

import json
import logging
import os
import sys

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from core.errors import PlanningError


class ComponentType(str, Enum):
    """Which layer emitted a log line."""
    ENGINE = "engine"
    ORCHESTRATOR = "orchestrator"
    REPOSITORY = "repository"
    SERVICE = "service"
    INFRASTRUCTURE = "infrastructure"


# ============================================================================
# CONTEXT
# ============================================================================

@dataclass(frozen=True)
class LogContext:
    """One scope of logging context; None fields are omitted."""
    project_id: Optional[str] = None
    template_id: Optional[str] = None
    task_set_id: Optional[str] = None
    blueprint_id: Optional[str] = None
    correlation_id: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if k != "extra" and v is not None}
        data.update(self.extra)
        return data


_NAMED_FIELDS = tuple(f.name for f in fields(LogContext) if f.name != "extra")
_EMPTY = LogContext()

# Innermost scope last; each asyncio task sees its own copy
_scopes: ContextVar[Tuple[LogContext, ...]] = ContextVar("planning_log_scopes", default=())


def get_current_context() -> LogContext:
    """Innermost active context (empty outside any log_context)."""
    scopes = _scopes.get()
    return scopes[-1] if scopes else _EMPTY


@contextmanager
def log_context(**kwargs):
    """
    Push a context scope for the duration of a block.

    Named fields override the enclosing scope; anything else (and the
    contents of ``extra=``) is merged into extra.
    """
    parent = get_current_context()
    extra = {**parent.extra, **kwargs.pop("extra", {})}
    named = {}
    for name in _NAMED_FIELDS:
        named[name] = kwargs.pop(name) if name in kwargs else getattr(parent, name)
    extra.update(kwargs)

    scope = LogContext(extra=extra, **named)
    token = _scopes.set(_scopes.get() + (scope,))
    try:
        yield scope
    finally:
        _scopes.reset(token)


# ============================================================================
# FORMATTERS
# ============================================================================

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _record_data(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "data", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation."""

    def __init__(self, include_source: bool = True):
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data = _record_data(record)
        if data:
            payload["data"] = data
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if self.include_source:
            payload["source"] = f"{record.filename}:{record.lineno}"
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line text for local runs: ids inline, other data appended."""

    INLINE = ("project_id", "template_id", "blueprint_id")

    def format(self, record: logging.LogRecord) -> str:
        data = dict(_record_data(record))
        ids = [f"{name[:-3]}={data.pop(name)}" for name in self.INLINE if data.get(name)]
        data.pop("component", None)

        line = f"{_now():%Y-%m-%d %H:%M:%S} {record.levelname:<8} {record.name}"
        if ids:
            line += f" [{', '.join(ids)}]"
        line += f": {record.getMessage()}"
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
    Adapter that snapshots the active context into each record.

    Call-site ``extra=`` values, the context and the component are merged
    into a single ``record.data`` dict.
    """

    def process(self, msg, kwargs):
        data = {**get_current_context().to_dict(), **(kwargs.get("extra") or {})}
        if self.extra.get("component"):
            data.setdefault("component", self.extra["component"])
        kwargs["extra"] = {"data": data}
        return msg, kwargs


def get_logger(name: str, component: Optional[ComponentType] = None) -> ContextLogger:
    """Context-aware logger, optionally tagged with its layer."""
    return ContextLogger(
        logging.getLogger(name),
        {"component": component.value if component else None},
    )


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """
    Install one stdout handler on the root logger.

    JSON output is used when json_output is set or LOG_FORMAT=json.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    use_json = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if use_json else HumanFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)


# ============================================================================
# CHECKPOINTS AND ERROR BATCHES
# ============================================================================

def log_checkpoint(name: str, data: Optional[Dict[str, Any]] = None) -> None:
    """Log a named milestone with the active context and optional data."""
    payload: Dict[str, Any] = {"checkpoint": name, **get_current_context().to_dict()}
    if data:
        payload["checkpoint_data"] = data
    logging.getLogger("checkpoint").info(f"CHECKPOINT: {name}", extra={"data": payload})


def log_planning_errors(
    logger: ContextLogger,
    message: str,
    errors: Iterable[PlanningError],
) -> None:
    """Log a batch of collected errors as one warning with their payloads."""
    payloads = [e.to_dict() for e in errors]
    logger.warning(f"{message} ({len(payloads)} error(s))", extra={"errors": payloads})


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
    "log_planning_errors",
]
