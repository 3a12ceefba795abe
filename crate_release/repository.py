"""Crate discovery.

Walks a repository for Cargo.toml files and turns every crate manifest into
a Crate record. Discovery is read-only; the returned mapping is the snapshot
every other stage works from.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError
from tomlkit.exceptions import TOMLKitError

from .config import ReleaseConfig
from .errors import DiscoveryError, VersionError
from .models import BuildConfig, Crate
from .toml import (
    get_dependency_names,
    get_package,
    get_package_metadata,
    get_package_name,
    get_package_version,
    get_publish,
    load_manifest,
)
from .versions import parse_version

# Directories that never contain crates of their own
PRUNED_DIRS = {"target", "node_modules"}


def find_repo_root(start: Path) -> Path:
    """Find the repository root by walking up from start to a .git entry.

    Raises:
        DiscoveryError: If no enclosing repository exists.
    """
    path = start.resolve()
    for candidate in (path, *path.parents):
        if (candidate / ".git").exists():
            return candidate
    raise DiscoveryError(
        "Could not find repository root. Run from inside a git repository.", start
    )


def find_manifests(root: Path) -> list[Path]:
    """Return every Cargo.toml under root, sorted by path.

    Build output (target/) and hidden directories are not searched.
    """
    manifests: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in PRUNED_DIRS and not d.startswith(".")
        )
        if "Cargo.toml" in filenames:
            manifests.append(Path(dirpath) / "Cargo.toml")
    return sorted(manifests)


class _RawCrate(BaseModel):
    """A parsed manifest before internal dependencies are resolved."""

    name: str
    path: str
    version: str
    deps: list[str]
    dev_deps: list[str]
    publish: bool
    skip: bool
    configs: list[BuildConfig]


def _read_crate(root: Path, manifest: Path, config: ReleaseConfig) -> _RawCrate | None:
    try:
        doc = load_manifest(manifest)
    except (OSError, TOMLKitError) as exc:
        raise DiscoveryError(f"failed to parse manifest: {exc}", manifest) from exc

    if get_package(doc) is None:
        # Virtual workspace manifest
        return None

    name = get_package_name(doc)
    if not name:
        raise DiscoveryError("[package] has no name", manifest)
    version = get_package_version(doc)
    if not version:
        raise DiscoveryError("[package] has no literal version", manifest)
    try:
        parse_version(version)
    except VersionError as exc:
        raise DiscoveryError(str(exc), manifest) from exc

    try:
        metadata = get_package_metadata(doc, config.metadata_key)
    except ValueError as exc:
        raise DiscoveryError(str(exc), manifest) from exc
    skip = metadata.get("skip", False)
    if not isinstance(skip, bool):
        raise DiscoveryError(
            f"[package.metadata.{config.metadata_key}].skip must be a boolean",
            manifest,
        )
    configs = _read_build_configs(metadata.get("build", []), manifest)

    return _RawCrate(
        name=name,
        path=manifest.parent.relative_to(root).as_posix(),
        version=version,
        deps=get_dependency_names(doc, ("dependencies", "build-dependencies")),
        dev_deps=get_dependency_names(doc, ("dev-dependencies",)),
        publish=get_publish(doc),
        skip=skip,
        configs=configs,
    )


def _read_build_configs(raw: Any, manifest: Path) -> list[BuildConfig]:
    if not isinstance(raw, list):
        raise DiscoveryError(
            "build configurations must be an array of tables", manifest
        )
    try:
        configs = [BuildConfig.model_validate(entry) for entry in raw]
    except ValidationError as exc:
        raise DiscoveryError(f"invalid build configuration: {exc}", manifest) from exc
    # Every crate gets built at least once, with default features
    return configs or [BuildConfig()]


def discover(root: Path, config: ReleaseConfig | None = None) -> dict[str, Crate]:
    """Scan the repository and discover all crates in the ecosystem.

    A crate is kept if it is not marked skip and it takes part in the
    internal dependency graph: it depends on at least one internal crate,
    or some other kept crate depends on it. Isolated crates are left out.

    Dependencies are filtered to internal-looking names (configured
    prefixes, or names of crates found in the repository when no prefixes
    are set). Names of skipped crates stay in the lists and are dropped
    when the graph is built.

    Args:
        root: Repository root.
        config: Release policy; defaults apply when omitted.

    Returns:
        Map of crate name to Crate, sorted by name.

    Raises:
        DiscoveryError: If a manifest that is not excluded cannot be read,
            or two manifests declare the same crate name.
    """
    config = config or ReleaseConfig()

    raw: dict[str, _RawCrate] = {}
    for manifest in find_manifests(root):
        if config.is_excluded(manifest.relative_to(root).as_posix()):
            continue
        crate = _read_crate(root, manifest, config)
        if crate is None:
            continue
        if crate.name in raw:
            raise DiscoveryError(
                f"duplicate crate name '{crate.name}' "
                f"(also declared in {raw[crate.name].path})",
                manifest,
            )
        raw[crate.name] = crate

    known_names = set(raw)

    def is_internal(dep: str) -> bool:
        if config.prefixes:
            return config.is_internal_name(dep)
        return dep in known_names

    # Second pass: keep only internal deps, never self-references
    internal: dict[str, list[str]] = {}
    internal_dev: dict[str, list[str]] = {}
    for name, crate in raw.items():
        if crate.skip:
            continue
        internal[name] = sorted(
            {d for d in crate.deps if is_internal(d) and d != name}
        )
        internal_dev[name] = sorted(
            {d for d in crate.dev_deps if is_internal(d) and d != name}
        )

    referenced = {dep for deps in internal.values() for dep in deps}

    crates: dict[str, Crate] = {}
    for name in sorted(internal):
        if not internal[name] and name not in referenced:
            continue
        crate = raw[name]
        crates[name] = Crate(
            name=name,
            path=crate.path,
            version=crate.version,
            dependencies=internal[name],
            dev_dependencies=internal_dev[name],
            publish=crate.publish,
            build_configs=crate.configs,
        )

    return crates
