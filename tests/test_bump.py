"""Tests for crate_release.bump."""

from __future__ import annotations

import itertools
from collections.abc import Callable

import pytest

from crate_release.bump import inherited_bump, propagate
from crate_release.errors import CycleDetectedError, UnknownCrateError
from crate_release.graph import DependencyGraph
from crate_release.models import Bump

GraphFactory = Callable[..., DependencyGraph]


class TestInheritedBump:
    def test_major_becomes_minor(self) -> None:
        assert inherited_bump(Bump.MAJOR) is Bump.MINOR

    def test_minor_stays_minor(self) -> None:
        assert inherited_bump(Bump.MINOR) is Bump.MINOR

    def test_patch_stays_patch(self) -> None:
        assert inherited_bump(Bump.PATCH) is Bump.PATCH

    def test_none_stays_none(self) -> None:
        assert inherited_bump(Bump.NONE) is Bump.NONE


class TestPropagate:
    @pytest.fixture
    def chain(self, make_graph: GraphFactory) -> DependencyGraph:
        """c depends on b depends on a."""
        return make_graph({"a": [], "b": ["a"], "c": ["b"]})

    def test_chain_from_major(self, chain: DependencyGraph) -> None:
        result = propagate(chain, {"a": Bump.MAJOR})
        assert result == {"a": Bump.MAJOR, "b": Bump.MINOR, "c": Bump.MINOR}

    def test_chain_from_patch(self, chain: DependencyGraph) -> None:
        result = propagate(chain, {"a": Bump.PATCH})
        assert result == {"a": Bump.PATCH, "b": Bump.PATCH, "c": Bump.PATCH}

    def test_dependencies_not_affected(self, chain: DependencyGraph) -> None:
        result = propagate(chain, {"b": Bump.MAJOR})
        assert result == {"a": Bump.NONE, "b": Bump.MAJOR, "c": Bump.MINOR}

    def test_none_seed_changes_nothing(self, chain: DependencyGraph) -> None:
        result = propagate(chain, {"a": Bump.NONE})
        assert set(result.values()) == {Bump.NONE}

    def test_own_seed_wins_when_higher(self, chain: DependencyGraph) -> None:
        result = propagate(chain, {"a": Bump.PATCH, "c": Bump.MAJOR})
        assert result["b"] is Bump.PATCH
        assert result["c"] is Bump.MAJOR

    def test_inherited_wins_when_higher(self, chain: DependencyGraph) -> None:
        result = propagate(chain, {"a": Bump.MAJOR, "c": Bump.PATCH})
        assert result["c"] is Bump.MINOR

    def test_diamond_takes_maximum(self, make_graph: GraphFactory) -> None:
        graph = make_graph(
            {"base": [], "left": ["base"], "right": [], "top": ["left", "right"]}
        )
        result = propagate(graph, {"base": Bump.PATCH, "right": Bump.MAJOR})
        assert result["left"] is Bump.PATCH
        assert result["top"] is Bump.MINOR

    def test_fixed_point_through_intermediate_seed(
        self, make_graph: GraphFactory
    ) -> None:
        """A dependent inherits its dependency's result, not just the seed."""
        graph = make_graph({"a": [], "b": ["a"], "c": ["b"]})
        result = propagate(graph, {"a": Bump.PATCH, "b": Bump.MAJOR})
        assert result["c"] is Bump.MINOR

    def test_unpublishable_passes_bump_through(
        self, make_graph: GraphFactory
    ) -> None:
        graph = make_graph(
            {"a": [], "internal": ["a"], "app": ["internal"]},
            unpublished={"internal"},
        )
        result = propagate(graph, {"a": Bump.MAJOR})
        assert result["internal"] is Bump.NONE
        assert result["app"] is Bump.MINOR

    def test_unpublishable_seed_reported_as_none(
        self, make_graph: GraphFactory
    ) -> None:
        graph = make_graph({"a": [], "b": ["a"]}, unpublished={"a"})
        result = propagate(graph, {"a": Bump.PATCH})
        assert result == {"a": Bump.NONE, "b": Bump.PATCH}

    def test_reports_every_crate(self, make_graph: GraphFactory) -> None:
        graph = make_graph({"a": [], "b": ["a"], "lonely": []})
        assert set(propagate(graph, {"a": Bump.PATCH})) == {"a", "b", "lonely"}

    def test_monotonic_in_seed(self, make_graph: GraphFactory) -> None:
        graph = make_graph(
            {
                "core": [],
                "sync": ["core"],
                "time": ["core"],
                "net": ["sync", "time"],
                "app": ["net"],
            }
        )
        levels = list(Bump)
        for low, high in itertools.combinations(levels, 2):
            weak = propagate(graph, {"core": low, "time": Bump.PATCH})
            strong = propagate(graph, {"core": high, "time": Bump.PATCH})
            for name in graph.crates:
                assert weak[name] <= strong[name]

    def test_unknown_seed(self, chain: DependencyGraph) -> None:
        with pytest.raises(UnknownCrateError):
            propagate(chain, {"zzz": Bump.MAJOR})

    def test_cycle(self, make_graph: GraphFactory) -> None:
        graph = make_graph({"a": ["b"], "b": ["a"]})
        with pytest.raises(CycleDetectedError):
            propagate(graph, {"a": Bump.PATCH})
