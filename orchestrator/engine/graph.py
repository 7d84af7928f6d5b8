# ============================================================================
# DEPENDENCY GRAPH VALIDATOR
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Dependency graph integrity
# PURPOSE: Keep blueprint and task dependency graphs acyclic and ordered
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dependency Graph Validator

One arena graph type serves both blueprint graphs (inside a task set) and
task graphs (inside a project). Nodes are ids; an edge A -> B means
"A depends on B" (B must finish before A starts).

Features:
- Edge check before insertion (self-reference and cycle rejection)
- Dependents lookup and removal guard
- Cycle search over an existing graph
- Topological order with a stable, caller-preferred tie-break

All traversals are iterative, so deep chains never hit the recursion limit.
"""

import heapq
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from core.errors import CycleDetectedError, DependencyInUseError
from core.logging import ComponentType, get_logger

logger = get_logger(__name__, ComponentType.ENGINE)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class EdgeCheck:
    """Outcome of checking a proposed edge."""
    ok: bool
    cycle: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True}
        return {"ok": False, "cycle": list(self.cycle or [])}


@dataclass
class DependencyGraph:
    """
    Dependency graph keyed by node id.

    Insertion order of nodes and edges is kept, so every traversal is
    deterministic for the same input.
    """
    # Node ID -> nodes it depends on
    backward_edges: Dict[str, List[str]] = field(default_factory=dict)

    # Node ID -> nodes that depend on it
    forward_edges: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def nodes(self) -> List[str]:
        return list(self.backward_edges)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.backward_edges

    def __len__(self) -> int:
        return len(self.backward_edges)

    def add_node(self, node_id: str) -> None:
        self.backward_edges.setdefault(node_id, [])
        self.forward_edges.setdefault(node_id, [])

    def get_dependencies(self, node_id: str) -> List[str]:
        """Get nodes that this node depends on."""
        return list(self.backward_edges.get(node_id, []))

    def dependents_of(self, node_id: str) -> List[str]:
        """Get every node that depends on this node."""
        return list(self.forward_edges.get(node_id, []))

    def edges(self) -> Dict[str, List[str]]:
        """Plain adjacency mapping: node -> dependencies."""
        return {node: list(deps) for node, deps in self.backward_edges.items()}

    # ------------------------------------------------------------------
    # Edge insertion
    # ------------------------------------------------------------------

    def check_edge(self, node_id: str, dependency_id: str) -> EdgeCheck:
        """
        Check whether "node depends on dependency" keeps the graph acyclic.

        Walks the dependency's own dependencies looking for the node. If
        found, the returned cycle is [node, dependency, ..., node].
        """
        if node_id == dependency_id:
            return EdgeCheck(ok=False, cycle=[node_id, node_id])

        parent: Dict[str, Optional[str]] = {dependency_id: None}
        stack = [dependency_id]
        while stack:
            current = stack.pop()
            if current == node_id:
                path = []
                step: Optional[str] = current
                while step is not None:
                    path.append(step)
                    step = parent[step]
                path.reverse()
                return EdgeCheck(ok=False, cycle=[node_id] + path)
            for dep in reversed(self.backward_edges.get(current, [])):
                if dep not in parent:
                    parent[dep] = current
                    stack.append(dep)

        return EdgeCheck(ok=True)

    def add_edge(self, node_id: str, dependency_id: str) -> None:
        """
        Record that node depends on dependency.

        Raises:
            CycleDetectedError: The edge would close a cycle
        """
        result = self.check_edge(node_id, dependency_id)
        if not result.ok:
            raise CycleDetectedError(result.cycle)
        self._record(node_id, dependency_id)

    def _record(self, node_id: str, dependency_id: str) -> None:
        self.add_node(node_id)
        self.add_node(dependency_id)
        if dependency_id not in self.backward_edges[node_id]:
            self.backward_edges[node_id].append(dependency_id)
            self.forward_edges[dependency_id].append(node_id)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def guard_removal(self, node_id: str, within: Optional[Iterable[str]] = None) -> None:
        """
        Args:
            node_id: Node about to be removed
            within: Only dependents among these nodes count (default: all)

        Raises:
            DependencyInUseError: Other nodes still depend on this one
        """
        dependents = self.dependents_of(node_id)
        if within is not None:
            members = set(within)
            dependents = [d for d in dependents if d in members]
        if dependents:
            raise DependencyInUseError(node_id, dependents)

    def remove_node(self, node_id: str) -> None:
        """Remove a node nothing depends on, together with its own edges."""
        self.guard_removal(node_id)
        for dep in self.backward_edges.pop(node_id, []):
            self.forward_edges[dep].remove(node_id)
        self.forward_edges.pop(node_id, None)

    # ------------------------------------------------------------------
    # Whole-graph checks
    # ------------------------------------------------------------------

    def find_cycle(self) -> Optional[List[str]]:
        """
        Find any cycle in the graph.

        Returns:
            Cycle path [a, b, ..., a] following dependency edges, or None
        """
        white, grey, black = 0, 1, 2
        colour = {node: white for node in self.backward_edges}

        for root in self.backward_edges:
            if colour[root] != white:
                continue
            colour[root] = grey
            path = [root]
            stack = [iter(self.backward_edges[root])]
            while stack:
                advanced = False
                for dep in stack[-1]:
                    state = colour.get(dep, white)
                    if state == grey:
                        return path[path.index(dep):] + [dep]
                    if state == white:
                        colour[dep] = grey
                        path.append(dep)
                        stack.append(iter(self.backward_edges.get(dep, [])))
                        advanced = True
                        break
                if not advanced:
                    colour[path.pop()] = black
                    stack.pop()
        return None

    def topological_order(self, preferred: Optional[Sequence[str]] = None) -> List[str]:
        """
        Kahn's algorithm: dependencies before dependents.

        Among nodes that are ready at the same time, the one earlier in
        `preferred` goes first; nodes not listed follow in insertion order.

        Raises:
            CycleDetectedError: The graph is not acyclic
        """
        rank: Dict[str, int] = {}
        for index, node in enumerate(preferred or []):
            rank.setdefault(node, index)
        offset = len(rank)
        for index, node in enumerate(self.backward_edges):
            rank.setdefault(node, offset + index)

        in_degree = {node: len(deps) for node, deps in self.backward_edges.items()}
        ready = [(rank[node], node) for node, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        ordered: List[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            ordered.append(node)
            for dependent in self.forward_edges.get(node, []):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, (rank[dependent], dependent))

        if len(ordered) != len(self.backward_edges):
            cycle = self.find_cycle() or [n for n in self.backward_edges if n not in ordered]
            raise CycleDetectedError(cycle)
        return ordered

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_edges(cls, mapping: Mapping[str, Iterable[str]]) -> "DependencyGraph":
        """
        Load an adjacency mapping as-is, without cycle checks.

        Used for persisted graphs; call find_cycle() to audit the result.
        """
        graph = cls()
        for node_id in mapping:
            graph.add_node(node_id)
        for node_id, deps in mapping.items():
            for dep in deps:
                graph._record(node_id, dep)
        return graph

    @classmethod
    def build_validated(
        cls,
        nodes: Iterable[str],
        edges: Mapping[str, Iterable[str]],
    ) -> "DependencyGraph":
        """
        Build a graph inserting edges one by one through add_edge.

        Raises:
            CycleDetectedError: At the first edge that closes a cycle
        """
        graph = cls()
        for node_id in nodes:
            graph.add_node(node_id)
        for node_id, deps in edges.items():
            for dep in deps:
                graph.add_edge(node_id, dep)
        return graph


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "EdgeCheck",
    "DependencyGraph",
]
