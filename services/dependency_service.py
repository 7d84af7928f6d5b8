# ============================================================================
# DEPENDENCY SERVICE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Dependency edits on persisted graphs
# PURPOSE: Add and remove dependency edges without ever storing a cycle
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dependency Service

Edits one persisted dependency graph at a time: a project's task graph
(scope "project") or a task set's blueprint graph (scope "task_set").

Each edit runs under the graph's lock:

    lock -> load edges -> check -> write -> release

so two concurrent edits can never each pass the check and together close
a cycle.

Blueprints and their dependencies are shared by every task set listing
them, so all task sets form one graph: blueprint edits take a single lock
and the store loads edges reachable outside the edited set.
"""

from typing import List, Optional, Tuple

from core.errors import NotFoundError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from infrastructure.locking import LockNotAcquired, graph_lock_key
from orchestrator.engine.graph import DependencyGraph, EdgeCheck
from repositories.interfaces import DependencyGraphStore

logger = get_logger(__name__, ComponentType.SERVICE)

_ENTITY_BY_SCOPE = {
    "project": "Task",
    "task_set": "TaskTemplate",
}

# Lock id shared by every task set's blueprint graph
SHARED_BLUEPRINT_GRAPH = "*"


class DependencyService:
    """Service for dependency edits on one graph family."""

    def __init__(self, store: DependencyGraphStore, lock_service, scope: str = "project"):
        """
        Initialize dependency service.

        Args:
            store: Graph store for the scope
            lock_service: LockService or LocalLockService
            scope: "project" (task graphs) or "task_set" (blueprint graphs)
        """
        if scope not in _ENTITY_BY_SCOPE:
            raise ValueError(f"Unknown graph scope: {scope}")
        self.store = store
        self.lock_service = lock_service
        self.scope = scope
        self.entity = _ENTITY_BY_SCOPE[scope]

    def _lock_id(self, scope_id: str) -> str:
        return SHARED_BLUEPRINT_GRAPH if self.scope == "task_set" else scope_id

    def _lock(self, scope_id: str, blocking: bool):
        return self.lock_service.graph_lock(self.scope, self._lock_id(scope_id), blocking)

    def _not_acquired(self, scope_id: str) -> LockNotAcquired:
        return LockNotAcquired(
            "graph", graph_lock_key(self.lock_service.namespace, self.scope, self._lock_id(scope_id)),
        )

    async def _load(self, scope_id: str, conn=None) -> Tuple[DependencyGraph, Optional[List[str]]]:
        graph = DependencyGraph.from_edges(await self.store.load_edges(scope_id, conn=conn))
        members = await self.store.scope_members(scope_id, conn=conn)
        return graph, members

    def _require_nodes(
        self,
        graph: DependencyGraph,
        members: Optional[List[str]],
        scope_id: str,
        *node_ids: str,
    ) -> None:
        for node_id in node_ids:
            if node_id not in graph or (members is not None and node_id not in members):
                raise NotFoundError(
                    self.entity, node_id, referenced_by=f"{self.scope} {scope_id}",
                )

    async def check_dependency(self, scope_id: str, node_id: str, dependency_id: str) -> EdgeCheck:
        """Dry-run an edge against the current graph (no lock, no write)."""
        graph, members = await self._load(scope_id)
        self._require_nodes(graph, members, scope_id, node_id, dependency_id)
        return graph.check_edge(node_id, dependency_id)

    async def add_dependency(
        self,
        scope_id: str,
        node_id: str,
        dependency_id: str,
        blocking: bool = True,
    ) -> EdgeCheck:
        """
        Make node depend on dependency, unless that would close a cycle.

        Returns:
            EdgeCheck; when not ok, nothing was written and .cycle names
            the offending path

        Raises:
            NotFoundError: Either node is not in the graph
            LockNotAcquired: blocking=False and another edit holds the graph
        """
        with log_context(operation="add_dependency", extra={"scope": self.scope, "scope_id": scope_id}):
            async with self._lock(scope_id, blocking) as (acquired, conn):
                if not acquired:
                    raise self._not_acquired(scope_id)

                graph, members = await self._load(scope_id, conn=conn)
                self._require_nodes(graph, members, scope_id, node_id, dependency_id)

                check = graph.check_edge(node_id, dependency_id)
                if not check.ok:
                    logger.warning(f"Rejected edge {node_id} -> {dependency_id}: cycle {check.cycle}")
                    return check

                await self.store.add_edge(scope_id, node_id, dependency_id, conn=conn)
                log_checkpoint("dependency_added", {
                    "node_id": node_id,
                    "dependency_id": dependency_id,
                })
                return check

    async def dependents_of(self, scope_id: str, node_id: str) -> List[str]:
        """Every node in the scope that depends on node_id."""
        graph, members = await self._load(scope_id)
        self._require_nodes(graph, members, scope_id, node_id)
        dependents = graph.dependents_of(node_id)
        if members is not None:
            dependents = [d for d in dependents if d in members]
        return dependents

    async def remove_node(self, scope_id: str, node_id: str, blocking: bool = True) -> None:
        """
        Remove a node nothing in the scope depends on.

        Raises:
            NotFoundError: Node is not in the graph
            DependencyInUseError: Lists every dependent still referencing it
            LockNotAcquired: blocking=False and another edit holds the graph
        """
        with log_context(operation="remove_node", extra={"scope": self.scope, "scope_id": scope_id}):
            async with self._lock(scope_id, blocking) as (acquired, conn):
                if not acquired:
                    raise self._not_acquired(scope_id)

                graph, members = await self._load(scope_id, conn=conn)
                self._require_nodes(graph, members, scope_id, node_id)
                graph.guard_removal(node_id, within=members)

                await self.store.delete_node(scope_id, node_id, conn=conn)
                log_checkpoint("dependency_node_removed", {"node_id": node_id})


__all__ = ["DependencyService", "SHARED_BLUEPRINT_GRAPH"]
