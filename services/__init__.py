# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Business logic layer
# PURPOSE: Instantiation, dependency edits and budget roll-ups
# CREATED: 19 OCT 2026
# ============================================================================
"""
Services Module

Services coordinate between repositories, locks and the pure engine.

Usage:
    from services import InstantiationService

    service = InstantiationService(template_repo, task_repo)
    result = await service.instantiate_project("residential_build", answers, start, "p-1")
"""

from .instantiation_service import InstantiationService
from .dependency_service import DependencyService
from .budget_service import BudgetService

__all__ = [
    "InstantiationService",
    "DependencyService",
    "BudgetService",
]
