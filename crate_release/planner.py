"""Release planning.

Turns propagated bump classifications into concrete new versions, in the
order crates have to be released.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .errors import NoChangesError
from .graph import DependencyGraph
from .models import Bump, ReleaseEntry, ReleasePlan
from .versions import bump_version


def plan(
    graph: DependencyGraph,
    order: Sequence[str],
    bumps: Mapping[str, Bump],
    current_versions: Mapping[str, str],
) -> ReleasePlan:
    """Build the release plan.

    One entry per publishable crate whose classification is not NONE,
    following order (normally the output of topo_sort).

    Args:
        graph: The dependency graph, used for the publish flag.
        order: Crate names, dependencies first.
        bumps: Resolved classification per crate (see bump.propagate).
        current_versions: Current version string per crate.

    Raises:
        NoChangesError: If no crate needs a release. The empty plan is
            attached to the error.
        VersionError: If a current version is not a valid semantic version.
    """
    entries: list[ReleaseEntry] = []
    for name in order:
        bump = bumps.get(name, Bump.NONE)
        if bump == Bump.NONE or not graph.get(name).publish:
            continue
        old = current_versions[name]
        entries.append(
            ReleaseEntry(
                name=name,
                old_version=old,
                new_version=bump_version(old, bump),
                bump=bump,
            )
        )

    release_plan = ReleasePlan(entries=entries)
    if not entries:
        raise NoChangesError(release_plan)
    return release_plan
