"""CLI entry point for crate-release."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from pydantic import BaseModel, ConfigDict

from crate_release.build import build_crates
from crate_release.bump import propagate
from crate_release.checks import check_manifests
from crate_release.config import ReleaseConfig, load_config
from crate_release.errors import CrateReleaseError, NoChangesError
from crate_release.graph import DependencyGraph, build_graph, topo_sort
from crate_release.models import Bump
from crate_release.planner import plan
from crate_release.release import apply_plan, release_commands, set_version
from crate_release.repository import discover, find_repo_root
from crate_release.semver_check import minimum_update
from crate_release.shell import step

BUMP_CHOICES = [str(b) for b in Bump]


class Workspace(BaseModel):
    """Everything a command needs, loaded once per invocation."""

    model_config = ConfigDict(frozen=True)

    root: Path
    config: ReleaseConfig
    graph: DependencyGraph


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn tool errors into click errors (message on stderr, exit 1)."""
    try:
        yield
    except CrateReleaseError as exc:
        raise click.ClickException(str(exc)) from exc


def load_workspace(ctx: click.Context) -> Workspace:
    """Find the repository, read its config and build the dependency graph."""
    start: Path = ctx.obj["root"] or Path.cwd()
    with reported_errors():
        root = find_repo_root(start)
        config = load_config(root)
        if ctx.obj["strict"]:
            config = config.model_copy(update={"strict": True})
        crates = discover(root, config)
        graph = build_graph(crates, strict=config.strict)
        # Fail early on cycles; every command relies on the order
        topo_sort(graph)
    return Workspace(root=root, config=config, graph=graph)


def _print_tree(graph: DependencyGraph, name: str, related: list[str]) -> None:
    click.echo(f"+ {name}-{graph.crates[name].version}")
    for other in related:
        if other != name:
            click.echo(f"|- {other}-{graph.crates[other].version}")


@click.group()
@click.version_option(package_name="crate-release")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Start searching for the repository here instead of the cwd.",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Fail on internal dependencies that are not discovered crates.",
)
@click.pass_context
def cli(ctx: click.Context, root: Path | None, strict: bool) -> None:
    """Release tooling for repositories with interdependent crates."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["strict"] = strict


@cli.command("list")
@click.pass_context
def list_crates(ctx: click.Context) -> None:
    """All crates in release order, with their dependencies."""
    graph = load_workspace(ctx).graph
    for name in topo_sort(graph):
        _print_tree(graph, name, graph.recursive_dependencies([name]))
        click.echo()


@cli.command()
@click.argument("crate")
@click.pass_context
def dependencies(ctx: click.Context, crate: str) -> None:
    """List all dependencies of CRATE."""
    graph = load_workspace(ctx).graph
    with reported_errors():
        related = graph.recursive_dependencies([crate])
    _print_tree(graph, crate, related)


@cli.command()
@click.argument("crate")
@click.pass_context
def dependents(ctx: click.Context, crate: str) -> None:
    """List all crates that depend on CRATE."""
    graph = load_workspace(ctx).graph
    with reported_errors():
        related = graph.recursive_dependents([crate])
    _print_tree(graph, crate, related)


@cli.command()
@click.argument("crate", required=False)
@click.pass_context
def build(ctx: click.Context, crate: str | None) -> None:
    """Build CRATE, or every crate, with all build configurations."""
    ws = load_workspace(ctx)
    with reported_errors():
        build_crates(ws.root, ws.graph, None if crate is None else [crate])


@cli.command("semver-check")
@click.argument("crate")
@click.pass_context
def semver_check(ctx: click.Context, crate: str) -> None:
    """Print the minimum version bump CRATE needs."""
    ws = load_workspace(ctx)
    with reported_errors():
        info = ws.graph.get(crate)
    if not info.publish:
        raise click.ClickException(
            f"Cannot semver-check non-publishable crate '{crate}'"
        )
    click.echo(f"{crate}: {minimum_update(ws.root, info)}")


@cli.command("prepare-release")
@click.argument("crates", nargs=-1, required=True)
@click.option(
    "--bump",
    "bump_name",
    type=click.Choice(BUMP_CHOICES, case_sensitive=False),
    default=None,
    help="Use this classification instead of running cargo semver-checks.",
)
@click.option("--dry-run", is_flag=True, help="Print the plan without writing.")
@click.pass_context
def prepare_release(
    ctx: click.Context, crates: tuple[str, ...], bump_name: str | None, dry_run: bool
) -> None:
    """Bump CRATES and every crate that depends on them."""
    ws = load_workspace(ctx)

    with reported_errors():
        for name in crates:
            if not ws.graph.get(name).publish:
                raise click.ClickException(
                    f"Cannot prepare release for non-publishable crate '{name}'"
                )

        step("Classifying changes")
        seeds: dict[str, Bump] = {}
        for name in crates:
            if bump_name is not None:
                seeds[name] = Bump.parse(bump_name)
            else:
                seeds[name] = minimum_update(ws.root, ws.graph.crates[name])
            click.echo(f"  {name}: {seeds[name]}")

        bumps = propagate(ws.graph, seeds)
        versions = {n: c.version for n, c in ws.graph.crates.items()}
        try:
            release_plan = plan(ws.graph, topo_sort(ws.graph), bumps, versions)
        except NoChangesError as exc:
            click.echo(f"\n{exc}")
            return

        step("Release plan")
        for entry in release_plan.entries:
            click.echo(
                f"  {entry.name}: {entry.old_version} → {entry.new_version}"
                f" ({entry.bump})"
            )
        if dry_run:
            return

        apply_plan(ws.root, ws.graph, release_plan, ws.config)

    step("Next steps")
    click.echo("# Please inspect changes and run the following commands when happy:")
    for command in release_commands(ws.graph, release_plan):
        click.echo(command)


@cli.command("set-version")
@click.argument("crate")
@click.argument("version")
@click.pass_context
def set_version_cmd(ctx: click.Context, crate: str, version: str) -> None:
    """Force CRATE to VERSION, updating every requirement on it."""
    ws = load_workspace(ctx)
    with reported_errors():
        set_version(ws.root, ws.graph, crate, version, ws.config)


@cli.command("check-manifest")
@click.pass_context
def check_manifest(ctx: click.Context) -> None:
    """Check that all Cargo.toml files have the expected metadata."""
    ws = load_workspace(ctx)
    errors = check_manifests(ws.root, ws.graph, ws.config)
    if errors:
        for error in errors:
            click.echo(f"✗ {error}", err=True)
        raise click.ClickException(f"Found {len(errors)} manifest errors")
    click.echo("✓ All manifests are correct!")
