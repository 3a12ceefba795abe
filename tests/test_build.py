"""Tests for crate_release.build."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from crate_release.build import build_args, build_crates
from crate_release.errors import BuildError, UnknownCrateError
from crate_release.graph import build_graph
from crate_release.models import BuildConfig, Crate


def test_build_args_default() -> None:
    crate = Crate(name="a", path="crates/a", version="1.0.0")
    assert build_args(crate, BuildConfig()) == [
        "build",
        "--release",
        "--manifest-path=crates/a/Cargo.toml",
    ]


def test_build_args_with_target_and_features() -> None:
    crate = Crate(name="a", path="crates/a", version="1.0.0")
    config = BuildConfig(features=["defmt", "time"], target="thumbv6m-none-eabi")
    assert build_args(crate, config) == [
        "build",
        "--release",
        "--manifest-path=crates/a/Cargo.toml",
        "--target=thumbv6m-none-eabi",
        "--features=defmt,time",
    ]


def test_builds_in_dependency_order(make_graph: Callable) -> None:
    graph = make_graph({"app": ["net"], "net": ["time"], "time": []})
    with patch("crate_release.build.cargo", return_value=0) as cargo:
        build_crates(Path("/repo"), graph)

    paths = [c.args[2] for c in cargo.call_args_list]
    assert paths == [
        "--manifest-path=crates/time/Cargo.toml",
        "--manifest-path=crates/net/Cargo.toml",
        "--manifest-path=crates/app/Cargo.toml",
    ]
    assert all(c.kwargs["cwd"] == Path("/repo") for c in cargo.call_args_list)


def test_every_build_config_is_built() -> None:
    crate = Crate(
        name="a",
        path="a",
        version="1.0.0",
        build_configs=[BuildConfig(features=["std"]), BuildConfig(target="wasm32")],
    )
    graph = build_graph({"a": crate})
    with patch("crate_release.build.cargo", return_value=0) as cargo:
        build_crates(Path("/repo"), graph, ["a"])

    assert cargo.call_count == 2


def test_selected_crates_only(make_graph: Callable) -> None:
    graph = make_graph({"a": [], "b": ["a"]})
    with patch("crate_release.build.cargo", return_value=0) as cargo:
        build_crates(Path("/repo"), graph, ["b"])

    assert cargo.call_count == 1
    assert cargo.call_args.args[2] == "--manifest-path=crates/b/Cargo.toml"


def test_failure_stops_build(make_graph: Callable) -> None:
    graph = make_graph({"a": [], "b": ["a"]})
    with patch("crate_release.build.cargo", return_value=101) as cargo:
        with pytest.raises(BuildError, match="Failed to build a"):
            build_crates(Path("/repo"), graph)

    assert cargo.call_count == 1


def test_unknown_crate(make_graph: Callable) -> None:
    graph = make_graph({"a": []})
    with pytest.raises(UnknownCrateError):
        build_crates(Path("/repo"), graph, ["nope"])
