# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the planning engine.
"""

from core.config.defaults import (
    FormulaDefaults,
    SchedulingDefaults,
    DatabaseDefaults,
    LockDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "FormulaDefaults",
    "SchedulingDefaults",
    "DatabaseDefaults",
    "LockDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
