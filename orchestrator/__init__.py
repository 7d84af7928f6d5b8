# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Template instantiation
# PURPOSE: Turn templates and answers into scheduled tasks
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Module

Usage:
    from orchestrator import TemplateInstantiator

    result = TemplateInstantiator().instantiate(bundle, answers, start, project_id)
"""

from .instantiation import (
    InstantiationResult,
    TemplateInstantiator,
    get_instantiator,
    make_task_id,
)

__all__ = [
    "InstantiationResult",
    "TemplateInstantiator",
    "get_instantiator",
    "make_task_id",
]
