"""Bump propagation.

When a crate is released, every crate that depends on it (directly or
transitively) has to be released too, so that its manifest can require the
new version. This module works out how large each of those bumps must be.
"""

from __future__ import annotations

from collections.abc import Mapping

from .graph import DependencyGraph, topo_sort
from .models import Bump


def inherited_bump(dependency_bump: Bump) -> Bump:
    """Minimum bump a dependent needs when one of its dependencies is bumped.

    A breaking or additive change in a dependency is modelled as a minor
    bump of the dependent; a patch stays a patch.
    """
    if dependency_bump >= Bump.MINOR:
        return Bump.MINOR
    return dependency_bump


def propagate(graph: DependencyGraph, seeds: Mapping[str, Bump]) -> dict[str, Bump]:
    """Compute the bump every crate needs given the seeded classifications.

    Each crate ends up with the maximum of its own seed and what it
    inherits from the resulting classification of each dependency. Walking
    the topological order means a crate's dependencies are final before it
    is visited, so one pass reaches the fixed point.

    Non-publishable crates carry their classification through to their
    dependents but are reported as Bump.NONE, since they are never released.

    Args:
        graph: The dependency graph.
        seeds: Externally computed classification per changed crate.

    Returns:
        Map of every crate name → Bump, in topological order.

    Raises:
        UnknownCrateError: If a seed names a crate not in the graph.
        CycleDetectedError: If the graph is not acyclic.
    """
    for name in seeds:
        graph.get(name)

    resolved: dict[str, Bump] = {}
    for name in topo_sort(graph):
        bump = seeds.get(name, Bump.NONE)
        for dep in graph.edges[name]:
            bump = max(bump, inherited_bump(resolved[dep]))
        resolved[name] = Bump(bump)

    return {
        name: bump if graph.crates[name].publish else Bump.NONE
        for name, bump in resolved.items()
    }
