"""Building crates with cargo.

Crates are built in topological order so dependencies are built before the
crates that depend on them, once per build configuration.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import click

from .errors import BuildError
from .graph import DependencyGraph, topo_sort
from .models import BuildConfig, Crate
from .shell import cargo, step


def build_args(crate: Crate, config: BuildConfig) -> list[str]:
    """Arguments for `cargo build` of one crate configuration."""
    args = ["build", "--release", f"--manifest-path={crate.path}/Cargo.toml"]
    if config.target:
        args.append(f"--target={config.target}")
    if config.features:
        args.append(f"--features={','.join(config.features)}")
    return args


def build_crates(
    root: Path, graph: DependencyGraph, names: Iterable[str] | None = None
) -> None:
    """Build crates with every one of their build configurations.

    Args:
        root: Repository root; cargo runs from here.
        graph: The dependency graph.
        names: Crates to build. All crates when None.

    Raises:
        UnknownCrateError: If a name is not in the graph.
        BuildError: On the first failing build.
    """
    if names is None:
        selected = set(graph.crates)
    else:
        selected = {graph.get(n).name for n in names}
    order = [n for n in topo_sort(graph) if n in selected]

    step(f"Building {len(order)} crates")
    for name in order:
        crate = graph.crates[name]
        click.echo(f"\n  {name} ({crate.path})")
        for config in crate.build_configs:
            if cargo(*build_args(crate, config), cwd=root) != 0:
                raise BuildError(f"Failed to build {name}")
