"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import tomlkit

from crate_release.graph import DependencyGraph, build_graph
from crate_release.models import Crate


@pytest.fixture
def make_graph() -> Callable[..., DependencyGraph]:
    """Build a graph from a name → dependency names map."""

    def _make(
        deps: dict[str, list[str]],
        unpublished: set[str] | None = None,
        versions: dict[str, str] | None = None,
    ) -> DependencyGraph:
        unpublished = unpublished or set()
        versions = versions or {}
        crates = {
            name: Crate(
                name=name,
                path=f"crates/{name}",
                version=versions.get(name, "1.0.0"),
                dependencies=d,
                publish=name not in unpublished,
            )
            for name, d in deps.items()
        }
        return build_graph(crates)

    return _make


CrateWriter = Callable[..., Path]


@pytest.fixture
def cargo_repo(tmp_path: Path) -> Path:
    """An empty git repository root."""
    (tmp_path / ".git").mkdir()
    return tmp_path


@pytest.fixture
def write_crate(cargo_repo: Path) -> CrateWriter:
    """Write a crate manifest into the cargo_repo fixture.

    Dependencies are written as path + version requirements, the way crates
    inside one repository refer to each other.
    """

    def _write(
        name: str,
        version: str = "0.1.0",
        deps: list[str] | None = None,
        dev_deps: list[str] | None = None,
        extra: str = "",
        path: str | None = None,
        publish: bool = True,
    ) -> Path:
        crate_dir = cargo_repo / (path or name)
        crate_dir.mkdir(parents=True, exist_ok=True)
        lines = [
            "[package]",
            f'name = "{name}"',
            f'version = "{version}"',
            'edition = "2021"',
            *([] if publish else ["publish = false"]),
            "",
            "[dependencies]",
            'serde = "1.0"',
        ]
        for dep in deps or []:
            lines.append(f'{dep} = {{ version = "0.1.0", path = "../{dep}" }}')
        if dev_deps:
            lines += ["", "[dev-dependencies]"]
            for dep in dev_deps:
                lines.append(f'{dep} = {{ version = "0.1.0", path = "../{dep}" }}')
        content = "\n".join(lines) + "\n"
        if extra:
            content += "\n" + extra.strip() + "\n"
        manifest = crate_dir / "Cargo.toml"
        manifest.write_text(content)
        return manifest

    return _write


@pytest.fixture
def sample_manifest() -> tomlkit.TOMLDocument:
    """A manifest using every dependency table layout."""
    content = """\
[package]
name = "embassy-net"
version = "0.4.0"
edition = "2021"
license = "MIT OR Apache-2.0"

[package.metadata.crate-release]
skip = false
build = [
    { features = ["defmt", "tcp"], target = "thumbv7em-none-eabi" },
    { features = ["std"] },
]

[dependencies]
embassy-time = { version = "0.3.0", path = "../embassy-time" }
embassy-sync = "0.5.0" # keep in sync
time-alias = { package = "embassy-time-driver", version = "0.1.0" }
heapless = "0.8"
smoltcp = { version = "0.11", optional = true }

[build-dependencies]
embassy-build = { path = "../embassy-build" }

[dev-dependencies]
embassy-executor = { version = "0.5.0", features = ["std"] }

[target.'cfg(unix)'.dependencies]
embassy-sync = { version = "0.5.0", workspace = false }

[features]
tcp = ["dep:smoltcp"]
"""
    return tomlkit.parse(content)
