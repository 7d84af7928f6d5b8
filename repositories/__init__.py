# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Persistence layer
# PURPOSE: Repository interfaces and their adapters
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repositories Module

Interfaces the services depend on, plus three families of adapters:
- TemplateCatalog: YAML files on disk
- Memory*: process-local dicts
- Postgres*: psycopg3 async with connection pooling

Usage:
    from repositories import DatabasePool, PostgresTaskRepository

    async with DatabasePool() as pool:
        task_repo = PostgresTaskRepository(pool)
        tasks = await task_repo.get_for_project(project_id)
"""

from .database import get_pool, init_pool, close_pool, DatabasePool
from .interfaces import (
    TemplateRepository,
    TaskRepository,
    DependencyGraphStore,
    BudgetEntryRepository,
    ProjectRepository,
)
from .catalog import TemplateCatalog, get_template_catalog
from .memory import MemoryTaskRepository, MemoryBudgetRepository, MemoryProjectRepository
from .template_repo import PostgresTemplateRepository
from .task_repo import PostgresTaskRepository
from .budget_repo import PostgresBudgetRepository, PostgresProjectRepository

__all__ = [
    # Pool
    "get_pool",
    "init_pool",
    "close_pool",
    "DatabasePool",
    # Interfaces
    "TemplateRepository",
    "TaskRepository",
    "DependencyGraphStore",
    "BudgetEntryRepository",
    "ProjectRepository",
    # Adapters
    "TemplateCatalog",
    "get_template_catalog",
    "MemoryTaskRepository",
    "MemoryBudgetRepository",
    "MemoryProjectRepository",
    "PostgresTemplateRepository",
    "PostgresTaskRepository",
    "PostgresBudgetRepository",
    "PostgresProjectRepository",
]
