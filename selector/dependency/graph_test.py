"""Unit tests for the reference graph and reachability."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest

from selector.dependency.graph import (
    ReferenceGraph,
    load_graph,
    reachable_dependents,
    save_graph,
)


def _graph(references: dict[str, list[str]], modules=None) -> ReferenceGraph:
    data: dict = {"references": references}
    if modules is not None:
        data["modules"] = modules
    return ReferenceGraph.from_dict(data)


class TestReferenceGraph:
    """Tests for ReferenceGraph construction."""

    def test_external_references_dropped(self):
        """References to non-local modules are ignored."""
        graph = _graph({"Bar": ["Foo", "String"]}, modules=["Foo", "Bar"])
        assert graph.references == {"Bar": {"Foo"}}
        assert graph.referenced_by == {"Foo": {"Bar"}}

    def test_modules_inferred(self):
        """Without a module list every named module is local."""
        graph = _graph({"Bar": ["Foo"]})
        assert graph.modules == {"Bar", "Foo"}

    def test_self_reference_ignored(self):
        graph = _graph({"Foo": ["Foo"]})
        assert graph.references == {}

    def test_invalid_references(self):
        with pytest.raises(ValueError, match="mapping"):
            ReferenceGraph.from_dict({"references": ["Foo"]})
        with pytest.raises(ValueError, match="must be a list"):
            ReferenceGraph.from_dict({"references": {"Foo": "Bar"}})

    def test_to_dict_sorted(self):
        graph = _graph({"B": ["A"], "C": ["B", "A"]})
        assert graph.to_dict() == {
            "modules": ["A", "B", "C"],
            "references": {"B": ["A"], "C": ["A", "B"]},
        }


class TestReachableDependents:
    """Tests for reachable_dependents()."""

    def test_transitive_dependents(self):
        """Foo -> Bar -> BarTest: changing Foo reaches BarTest."""
        graph = _graph({"Bar": ["Foo"], "BarTest": ["Bar"], "BazTest": ["Baz"]})
        assert reachable_dependents(graph, {"Foo"}) == {"Foo", "Bar", "BarTest"}

    def test_direction(self):
        """Modules referenced by the change are not dependents."""
        graph = _graph({"Bar": ["Foo"], "BarTest": ["Bar"]})
        assert reachable_dependents(graph, {"BarTest"}) == {"BarTest"}

    def test_cycle_terminates(self):
        """Reference cycles are visited once."""
        graph = _graph({"A": ["B"], "B": ["C"], "C": ["A"], "ATest": ["A"]})
        assert reachable_dependents(graph, {"C"}) == {"A", "B", "C", "ATest"}

    def test_unknown_changed_ignored(self):
        graph = _graph({"Bar": ["Foo"]})
        assert reachable_dependents(graph, {"Nope"}) == set()

    def test_multiple_changed(self):
        graph = _graph({"ATest": ["A"], "BTest": ["B"], "CTest": ["C"]})
        assert reachable_dependents(graph, ["A", "B"]) == {"A", "ATest", "B", "BTest"}

    def test_empty_change(self):
        graph = _graph({"ATest": ["A"]})
        assert reachable_dependents(graph, set()) == set()


class TestGraphFiles:
    """Tests for save_graph() and load_graph()."""

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "graph.json"
            graph = _graph({"Bar": ["Foo"]})
            save_graph(graph, path)
            loaded = load_graph(path)
            assert loaded is not None
            assert loaded.modules == {"Foo", "Bar"}
            assert loaded.referenced_by == {"Foo": {"Bar"}}

    def test_load_missing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert load_graph(Path(tmpdir) / "graph.json") is None

    def test_load_invalid(self):
        """Invalid JSON or shape loads as None."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "graph.json"
            path.write_text("{broken")
            assert load_graph(path) is None
            path.write_text(json.dumps([1, 2]))
            assert load_graph(path) is None
            path.write_text(json.dumps({"references": {"A": "B"}}))
            assert load_graph(path) is None
