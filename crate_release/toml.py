"""Cargo.toml reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying Cargo.toml
files. This is important for maintaining readable, diff-friendly manifests.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import tomlkit

DEPENDENCY_SECTIONS = ("dependencies", "build-dependencies", "dev-dependencies")


def load_manifest(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a Cargo.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def save_manifest(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_package(doc: tomlkit.TOMLDocument) -> dict[str, Any] | None:
    """Return the [package] table, or None for a virtual workspace manifest."""
    package = doc.get("package")
    return package if isinstance(package, dict) else None


def get_package_name(doc: tomlkit.TOMLDocument) -> str | None:
    """Extract [package].name, or None if missing."""
    name = (get_package(doc) or {}).get("name")
    return str(name) if isinstance(name, str) else None


def get_package_version(doc: tomlkit.TOMLDocument) -> str | None:
    """Extract [package].version, or None if missing or inherited."""
    version = (get_package(doc) or {}).get("version")
    return str(version) if isinstance(version, str) else None


def get_publish(doc: tomlkit.TOMLDocument) -> bool:
    """Whether the crate may be published.

    Cargo accepts either a bool or a list of allowed registries; an empty
    list means "nowhere".
    """
    publish = (get_package(doc) or {}).get("publish", True)
    if isinstance(publish, list):
        return len(publish) > 0
    return bool(publish)


def _metadata_table(metadata: Any, key: str, section: str) -> dict[str, Any]:
    table = metadata.get(key, {}) if isinstance(metadata, dict) else {}
    if not isinstance(table, dict):
        raise ValueError(f"[{section}.metadata.{key}] must be a table")
    return table.unwrap() if hasattr(table, "unwrap") else dict(table)


def get_package_metadata(doc: tomlkit.TOMLDocument, key: str) -> dict[str, Any]:
    """Return [package.metadata.<key>] as a plain dict (empty if absent).

    Raises:
        ValueError: If the entry exists but is not a table.
    """
    metadata = (get_package(doc) or {}).get("metadata", {})
    return _metadata_table(metadata, key, "package")


def get_workspace_metadata(doc: tomlkit.TOMLDocument, key: str) -> dict[str, Any]:
    """Return [workspace.metadata.<key>] as a plain dict (empty if absent).

    Raises:
        ValueError: If the entry exists but is not a table.
    """
    workspace = doc.get("workspace", {})
    metadata = workspace.get("metadata", {}) if isinstance(workspace, dict) else {}
    return _metadata_table(metadata, key, "workspace")


def iter_dependency_tables(
    doc: tomlkit.TOMLDocument,
) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield (section, table) for every dependency table in a manifest.

    Covers the top-level [dependencies], [build-dependencies] and
    [dev-dependencies] tables as well as their [target.<cfg>.*] variants.
    """
    for section in DEPENDENCY_SECTIONS:
        table = doc.get(section)
        if isinstance(table, dict):
            yield section, table

    targets = doc.get("target")
    if isinstance(targets, dict):
        for target in targets.values():
            if not isinstance(target, dict):
                continue
            for section in DEPENDENCY_SECTIONS:
                table = target.get(section)
                if isinstance(table, dict):
                    yield section, table


def dependency_package_name(key: str, spec: Any) -> str:
    """Resolve the real package name of a dependency entry.

    Handles renamed dependencies:
        foo = { package = "real-name", version = "1" } → "real-name"
    """
    if isinstance(spec, dict):
        package = spec.get("package")
        if isinstance(package, str):
            return str(package)
    return key


def get_dependency_names(
    doc: tomlkit.TOMLDocument, sections: tuple[str, ...]
) -> list[str]:
    """Collect dependency package names from the given sections.

    Returns names in manifest order, without duplicates.
    """
    names: list[str] = []
    for section, table in iter_dependency_tables(doc):
        if section not in sections:
            continue
        for key, spec in table.items():
            name = dependency_package_name(str(key), spec)
            if name not in names:
                names.append(name)
    return names


def set_package_version(doc: tomlkit.TOMLDocument, version: str) -> None:
    """Update [package].version in place."""
    package = get_package(doc)
    if package is None:
        raise KeyError("manifest has no [package] table")
    package["version"] = version


def set_dependency_version(
    doc: tomlkit.TOMLDocument, dependency: str, version: str
) -> bool:
    """Point every requirement on dependency at version.

    Only two formats are rewritten:
    - foo = "0.1.0"
    - foo = { version = "0.1.0", ... }
    Path-only and workspace-inherited entries are left untouched.

    Returns:
        True if anything changed.
    """
    changed = False
    for _, table in iter_dependency_tables(doc):
        for key in list(table.keys()):
            spec = table[key]
            if dependency_package_name(str(key), spec) != dependency:
                continue
            if isinstance(spec, str):
                table[key] = version
                changed = True
            elif isinstance(spec, dict) and "version" in spec:
                spec["version"] = version
                changed = True
    return changed
