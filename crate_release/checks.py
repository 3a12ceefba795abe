"""Manifest consistency checks.

Verifies that every crate's Cargo.toml carries the package metadata the
repository expects, and that optional dependencies are wired to features.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .config import ReleaseConfig
from .graph import DependencyGraph, check_publish_dependencies
from .toml import get_package, iter_dependency_tables, load_manifest


def check_package_metadata(
    package: dict[str, Any], name: str, publish: bool, config: ReleaseConfig
) -> list[str]:
    """Compare [package] fields against the configured expectations.

    edition and license apply to every crate; repository and documentation
    only to publishable ones.
    """
    expected: dict[str, str | None] = {
        "edition": config.edition,
        "license": config.license,
    }
    if publish:
        expected["repository"] = config.repository
        if config.documentation is not None:
            expected["documentation"] = config.documentation.format(name=name)

    errors: list[str] = []
    for field, value in expected.items():
        if value is None:
            continue
        actual = package.get(field)
        if actual is None:
            errors.append(f"missing {field} field")
        elif not isinstance(actual, str):
            errors.append(f"{field} field is not a string")
        elif actual != value:
            errors.append(f"{field} should be '{value}', found '{actual}'")
    return errors


def check_features(doc: tomlkit.TOMLDocument) -> list[str]:
    """Every optional dependency must be enabled by some "dep:<name>" feature."""
    optional: set[str] = set()
    for _, table in iter_dependency_tables(doc):
        for key, spec in table.items():
            if isinstance(spec, dict) and spec.get("optional") is True:
                optional.add(str(key))
    if not optional:
        return []

    referenced: set[str] = set()
    features = doc.get("features", {})
    for items in features.values():
        for item in items:
            if isinstance(item, str) and item.startswith("dep:"):
                referenced.add(item.removeprefix("dep:"))

    unreferenced = sorted(optional - referenced)
    if unreferenced:
        return [
            "optional dependencies not referenced by any feature with 'dep:': "
            + ", ".join(unreferenced)
        ]
    return []


def check_manifests(
    root: Path, graph: DependencyGraph, config: ReleaseConfig
) -> list[str]:
    """Run every manifest check over the discovered crates.

    Returns:
        Error messages prefixed with the crate name; empty if all is well.
    """
    errors: list[str] = []
    for name, crate in graph.crates.items():
        path = root / crate.path / "Cargo.toml"
        try:
            doc = load_manifest(path)
        except (OSError, TOMLKitError) as exc:
            errors.append(f"{name}: failed to read {path}: {exc}")
            continue

        package = get_package(doc) or {}
        problems = check_package_metadata(package, name, crate.publish, config)
        if crate.publish:
            problems.extend(check_features(doc))
        errors.extend(f"{name}: {p}" for p in problems)

    errors.extend(check_publish_dependencies(graph))
    return errors
