# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for formula limits, scheduling, storage
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for the instantiation engine and its adapters.
These can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class FormulaDefaults:
    """
    Limits for the budget formula interpreter.

    Formulas are template-author text evaluated at instantiation time,
    so every limit bounds parse and evaluation cost.
    """
    max_length: int = 512   # characters
    max_tokens: int = 256
    max_depth: int = 32     # parenthesis / unary nesting

    @classmethod
    def from_env(cls) -> "FormulaDefaults":
        """Create from environment variables."""
        return cls(
            max_length=int(os.getenv("FORMULA_MAX_LENGTH", 512)),
            max_tokens=int(os.getenv("FORMULA_MAX_TOKENS", 256)),
            max_depth=int(os.getenv("FORMULA_MAX_DEPTH", 32)),
        )


@dataclass(frozen=True)
class SchedulingDefaults:
    """
    Defaults for task instantiation.

    Task ids are truncated SHA256 digests so re-running an instantiation
    for the same project yields the same ids.
    """
    task_id_length: int = 32
    # Project id used when instantiating a preview with no project yet
    preview_project_id: str = "preview"

    @classmethod
    def from_env(cls) -> "SchedulingDefaults":
        """Create from environment variables."""
        return cls(
            task_id_length=int(os.getenv("TASK_ID_LENGTH", 32)),
            preview_project_id=os.getenv("PREVIEW_PROJECT_ID", "preview"),
        )


@dataclass(frozen=True)
class DatabaseDefaults:
    """Defaults for the PostgreSQL adapters."""
    schema: str = "planning"
    pool_min_size: int = 2
    pool_max_size: int = 10

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            schema=os.getenv("DB_SCHEMA", "planning"),
            pool_min_size=int(os.getenv("DB_POOL_MIN", 2)),
            pool_max_size=int(os.getenv("DB_POOL_MAX", 10)),
        )


@dataclass(frozen=True)
class LockDefaults:
    """Defaults for per-graph advisory locks."""
    namespace: str = "planning"

    @classmethod
    def from_env(cls) -> "LockDefaults":
        """Create from environment variables."""
        return cls(namespace=os.getenv("LOCK_NAMESPACE", "planning"))


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    formula: FormulaDefaults = field(default_factory=FormulaDefaults)
    scheduling: SchedulingDefaults = field(default_factory=SchedulingDefaults)
    database: DatabaseDefaults = field(default_factory=DatabaseDefaults)
    locks: LockDefaults = field(default_factory=LockDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            formula=FormulaDefaults.from_env(),
            scheduling=SchedulingDefaults.from_env(),
            database=DatabaseDefaults.from_env(),
            locks=LockDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "FormulaDefaults",
    "SchedulingDefaults",
    "DatabaseDefaults",
    "LockDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
