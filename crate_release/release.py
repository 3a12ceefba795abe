"""Applying a release plan: manifests → changelogs → commands.

This module turns a ReleasePlan into changes on disk:
1. Set the new version in each released crate's Cargo.toml
2. Point every dependent's requirement at the new version
3. Add a version heading to each released crate's changelog
4. Print the git and cargo commands that finish the release

Nothing is written until every manifest and changelog has been read and
updated in memory, so a bad manifest aborts the release with the tree
untouched. Git and publish commands are only printed, never run.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path

import click
import tomlkit
from tomlkit.exceptions import TOMLKitError

from .config import ReleaseConfig
from .errors import ManifestError
from .graph import DependencyGraph
from .models import ReleaseEntry, ReleasePlan
from .shell import step
from .toml import (
    load_manifest,
    save_manifest,
    set_dependency_version,
    set_package_version,
)
from .versions import classify_change, parse_version

_UNRELEASED_RE = re.compile(
    r"^##\s+\[?unreleased\]?[^\n]*$", re.IGNORECASE | re.MULTILINE
)


def rewrite_manifests(
    root: Path, graph: DependencyGraph, new_versions: Mapping[str, str]
) -> dict[Path, tomlkit.TOMLDocument]:
    """Compute updated manifests for a set of new versions.

    Every crate in the graph that depends on (or dev-depends on) a released
    crate gets its requirement rewritten, including non-publishable crates,
    so the whole repository keeps building against the new versions.

    Returns:
        Map of manifest path → updated document, for changed manifests only.

    Raises:
        ManifestError: If a manifest cannot be read or lacks [package].
    """
    updated: dict[Path, tomlkit.TOMLDocument] = {}
    for name, crate in graph.crates.items():
        released_deps = [
            dep
            for dep in (*crate.dependencies, *crate.dev_dependencies)
            if dep in new_versions
        ]
        if name not in new_versions and not released_deps:
            continue

        path = root / crate.path / "Cargo.toml"
        try:
            doc = load_manifest(path)
        except (OSError, TOMLKitError) as exc:
            raise ManifestError(f"{path}: {exc}") from exc

        changed = False
        if name in new_versions:
            try:
                set_package_version(doc, new_versions[name])
            except KeyError as exc:
                raise ManifestError(f"{path}: {exc}") from exc
            changed = True
        for dep in released_deps:
            if set_dependency_version(doc, dep, new_versions[dep]):
                click.echo(f"  {name}: requirement on {dep} → {new_versions[dep]}")
                changed = True

        if changed:
            updated[path] = doc
    return updated


def render_changelog(text: str, version: str, date: str) -> str | None:
    """Add a "## <version> - <date>" heading below "## Unreleased".

    Entries collected under Unreleased end up under the new version, and
    an empty Unreleased section stays on top for the next cycle.

    Returns:
        The new text, or None if there is no Unreleased heading.
    """
    match = _UNRELEASED_RE.search(text)
    if match is None:
        return None
    heading = f"{match.group(0)}\n\n## {version} - {date}"
    return text[: match.start()] + heading + text[match.end() :]


def rewrite_changelogs(
    root: Path,
    graph: DependencyGraph,
    plan: ReleasePlan,
    config: ReleaseConfig,
    date: str,
) -> dict[Path, str]:
    """Compute updated changelogs for released crates.

    Crates without a changelog, or without an Unreleased heading, are
    reported and skipped; changelog layout is up to each crate.

    Raises:
        ManifestError: If an existing changelog cannot be read.
    """
    updated: dict[Path, str] = {}
    for entry in plan.entries:
        path = root / graph.crates[entry.name].path / config.changelog
        if not path.exists():
            click.echo(f"  {entry.name}: no {config.changelog}, skipping")
            continue
        try:
            current = path.read_text()
        except (OSError, UnicodeDecodeError) as exc:
            raise ManifestError(f"{path}: {exc}") from exc
        text = render_changelog(current, entry.new_version, date)
        if text is None:
            click.echo(f"  {entry.name}: no Unreleased section in {path.name}")
            continue
        updated[path] = text
    return updated


def apply_plan(
    root: Path,
    graph: DependencyGraph,
    plan: ReleasePlan,
    config: ReleaseConfig,
    *,
    date: str | None = None,
) -> list[Path]:
    """Write the plan's versions to manifests and changelogs.

    Args:
        root: Repository root.
        graph: The dependency graph the plan was built from.
        plan: The release plan.
        config: Release policy (changelog file name).
        date: Release date for changelog headings; today (UTC) if omitted.

    Returns:
        Paths of all files written.

    Raises:
        ManifestError: If any manifest cannot be read or written. Reading
            errors happen before anything is written.
    """
    step("Bumping versions")
    date = date or datetime.now(timezone.utc).strftime("%Y-%m-%d")

    manifests = rewrite_manifests(root, graph, plan.new_versions())
    changelogs = rewrite_changelogs(root, graph, plan, config, date)

    written: list[Path] = []
    try:
        for path, doc in manifests.items():
            save_manifest(path, doc)
            written.append(path)
        for path, text in changelogs.items():
            path.write_text(text)
            written.append(path)
    except OSError as exc:
        raise ManifestError(f"failed to write {exc.filename}: {exc}") from exc

    for entry in plan.entries:
        click.echo(f"  {entry.name}: {entry.old_version} → {entry.new_version}")
    return written


def set_version(
    root: Path,
    graph: DependencyGraph,
    name: str,
    version: str,
    config: ReleaseConfig,
    *,
    date: str | None = None,
) -> ReleaseEntry:
    """Force a crate to a specific version.

    Used to override the result of prepare-release. Dependents have their
    requirements updated but are not themselves bumped.

    Raises:
        UnknownCrateError: If name is not a discovered crate.
        VersionError: If version is not a valid semantic version.
    """
    crate = graph.get(name)
    new_version = str(parse_version(version))
    entry = ReleaseEntry(
        name=name,
        old_version=crate.version,
        new_version=new_version,
        bump=classify_change(crate.version, new_version),
    )
    apply_plan(root, graph, ReleasePlan(entries=[entry]), config, date=date)
    return entry


def publish_command(graph: DependencyGraph, name: str) -> str:
    """`cargo publish` for a crate, using its first build configuration."""
    crate = graph.crates[name]
    args = ["cargo", "publish", "--manifest-path", f"{crate.path}/Cargo.toml"]
    config = crate.build_configs[0]
    if config.features:
        args.extend(["--features", ",".join(config.features)])
    if config.target:
        args.extend(["--target", config.target])
    return " ".join(args)


def release_commands(graph: DependencyGraph, plan: ReleasePlan) -> list[str]:
    """Commands that commit, tag, publish and push a prepared release.

    Publish commands follow the plan order, so each crate is published
    after the crates it depends on.
    """
    commands = ["git commit -a -m 'chore: prepare crate releases'"]
    commands.extend(f"git tag {e.name}-v{e.new_version}" for e in plan.entries)
    commands.extend(publish_command(graph, e.name) for e in plan.entries)
    commands.append("git push --tags")
    return commands
