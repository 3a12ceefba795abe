"""Dependency graph utilities.

The graph is an arena of Crate records keyed by name, with edges stored as
adjacency lists of names. Edges point from a crate to its dependencies;
reverse edges point from a crate to its direct dependents.

Provides topological sorting for determining build and release order.
Crates must be released in dependency order so that when crate A depends on
crate B, B is released first.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict

from .errors import CycleDetectedError, DanglingDependencyError, UnknownCrateError
from .models import Crate


class DependencyGraph(BaseModel):
    """Read-only view over a discovered crate set.

    Attributes:
        crates: Map of crate name → Crate (the node arena).
        edges: Map of crate name → sorted names of its direct dependencies.
        reverse_edges: Map of crate name → sorted names of direct dependents.
    """

    model_config = ConfigDict(frozen=True)

    crates: dict[str, Crate]
    edges: dict[str, list[str]]
    reverse_edges: dict[str, list[str]]

    def __contains__(self, name: object) -> bool:
        return name in self.crates

    def __len__(self) -> int:
        return len(self.crates)

    def get(self, name: str) -> Crate:
        """Look up a crate by name.

        Raises:
            UnknownCrateError: If no such crate was discovered.
        """
        try:
            return self.crates[name]
        except KeyError:
            raise UnknownCrateError(name) from None

    def dependencies_of(self, name: str) -> list[str]:
        self.get(name)
        return self.edges[name]

    def dependents_of(self, name: str) -> list[str]:
        self.get(name)
        return self.reverse_edges[name]

    def recursive_dependencies(self, names: Iterable[str]) -> list[str]:
        """Start crates plus everything they transitively depend on.

        Returned in topological order (dependencies first).
        """
        return self._closure(names, self.edges)

    def recursive_dependents(self, names: Iterable[str]) -> list[str]:
        """Start crates plus everything that transitively depends on them.

        Returned in topological order (dependencies first).
        """
        return self._closure(names, self.reverse_edges)

    def _closure(
        self, names: Iterable[str], adjacency: Mapping[str, list[str]]
    ) -> list[str]:
        seen: set[str] = set()
        stack = [self.get(n).name for n in names]
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            stack.extend(adjacency[node])
        return [n for n in topo_sort(self) if n in seen]


def build_graph(crates: Mapping[str, Crate], strict: bool = False) -> DependencyGraph:
    """Build the internal dependency graph for a crate set.

    Every dependency name that is a key of crates becomes an edge. Other
    names (skipped crates, crates outside the repository) are dropped, or
    rejected when strict is set. The node set is exactly the input set.

    Args:
        crates: Map of crate name → Crate, as produced by discovery.
        strict: If True, raise instead of dropping unknown dependencies.

    Raises:
        DanglingDependencyError: In strict mode, for the first dependency
            that does not name a crate in the set.
    """
    edges: dict[str, list[str]] = {n: [] for n in crates}
    reverse_edges: dict[str, list[str]] = {n: [] for n in crates}

    for name in sorted(crates):
        for dep in sorted(set(crates[name].dependencies)):
            if dep == name:
                continue
            if dep not in crates:
                if strict:
                    raise DanglingDependencyError(name, dep)
                continue
            edges[name].append(dep)
            reverse_edges[dep].append(name)

    for dependents in reverse_edges.values():
        dependents.sort()

    return DependencyGraph(
        crates=dict(crates), edges=edges, reverse_edges=reverse_edges
    )


def topo_sort(graph: DependencyGraph) -> list[str]:
    """Topologically sort crates by their internal dependencies.

    Uses Kahn's algorithm to produce an order where dependencies come
    before dependents. Whenever several crates are ready, the one with the
    smallest name goes first, so the output is the same on every run.

    Returns:
        List of crate names in release order (dependencies first).

    Raises:
        CycleDetectedError: If a dependency cycle is detected. No partial
            order is returned.

    Example:
        If A depends on B, and B depends on C:
        topo_sort(graph of {A, B, C}) → [C, B, A]
    """
    # Count unscheduled dependencies for each crate
    in_degree = {n: len(deps) for n, deps in graph.edges.items()}

    # Min-heap of crates whose dependencies are all scheduled
    ready = [n for n, d in in_degree.items() if d == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for dependent in graph.reverse_edges[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, dependent)

    # If we didn't schedule every crate, the rest sit on or behind a cycle
    if len(order) != len(graph.crates):
        raise CycleDetectedError(sorted(set(graph.crates) - set(order)))

    return order


def check_publish_dependencies(graph: DependencyGraph) -> list[str]:
    """Find publishable crates that depend on non-publishable ones.

    Such a crate can never be published, since its dependency will not
    exist on the registry.

    Returns:
        One message per offending edge; empty if the graph is consistent.
    """
    problems: list[str] = []
    for name, crate in graph.crates.items():
        if not crate.publish:
            continue
        for dep in graph.edges[name]:
            if not graph.crates[dep].publish:
                problems.append(
                    f"Publishable crate '{name}' depends on "
                    f"non-publishable crate '{dep}'"
                )
    return problems
