"""Unit tests for the test registry."""

from __future__ import annotations

import pytest

from selector.registry.registry import Priority, TestCase, TestRegistry, simple_name


class TestRegistryConstruction:
    """Tests for TestRegistry.from_ids()."""

    def test_preserves_manifest_order(self):
        """Registry iterates in the order ids were listed."""
        registry = TestRegistry.from_ids(["c.class", "a.class", "b.class"])
        assert registry.ids() == ["c.class", "a.class", "b.class"]
        assert [t.id for t in registry] == ["c.class", "a.class", "b.class"]

    def test_defaults(self):
        """New tests start Low with last prioritized build 0."""
        registry = TestRegistry.from_ids(["a.class"])
        test = registry.get("a.class")
        assert test == TestCase(id="a.class", priority=Priority.LOW, last_prioritized_build=0)

    def test_duplicate_id_rejected(self):
        """Listing the same id twice is an error."""
        with pytest.raises(ValueError, match="Duplicate"):
            TestRegistry.from_ids(["a.class", "a.class"])

    def test_empty_id_rejected(self):
        """Empty ids are rejected."""
        with pytest.raises(ValueError):
            TestRegistry.from_ids([""])

    def test_empty_registry(self):
        """An empty registry has no tests."""
        registry = TestRegistry.from_ids([])
        assert len(registry) == 0
        assert registry.ids() == []

    def test_contains(self):
        """Membership checks by id."""
        registry = TestRegistry.from_ids(["a.class"])
        assert "a.class" in registry
        assert "b.class" not in registry


class TestApplyState:
    """Tests for seeding state into the registry."""

    def test_known_ids_updated(self):
        """Persisted build numbers are applied to registered tests."""
        registry = TestRegistry.from_ids(["a.class", "b.class"])
        registry.apply_state({"a.class": 12})
        assert registry.get("a.class").last_prioritized_build == 12
        assert registry.get("b.class").last_prioritized_build == 0

    def test_unknown_ids_ignored(self):
        """State for tests no longer in the manifest is dropped."""
        registry = TestRegistry.from_ids(["a.class"])
        registry.apply_state({"gone.class": 7})
        assert registry.ids() == ["a.class"]

    def test_reset_priorities(self):
        """reset_priorities sets every test to Low."""
        registry = TestRegistry.from_ids(["a.class", "b.class"])
        registry.get("a.class").priority = Priority.HIGH
        registry.reset_priorities()
        assert all(t.priority is Priority.LOW for t in registry)


class TestSimpleName:
    """Tests for simple_name()."""

    def test_strips_package_and_suffix(self):
        assert simple_name("com.acme.BarTest.class") == "BarTest"

    def test_no_package(self):
        assert simple_name("BarTest.class") == "BarTest"

    def test_no_suffix(self):
        assert simple_name("BarTest") == "BarTest"

    def test_custom_suffix(self):
        assert simple_name("pkg.mod_test::Case", suffix="::Case") == "mod_test"


class TestMatchModules:
    """Tests for mapping resolver output onto the registry."""

    def test_match_by_simple_name(self):
        """Module ids match tests by simple name."""
        registry = TestRegistry.from_ids([
            "com.acme.BarTest.class", "com.acme.BazTest.class",
        ])
        assert registry.match_modules({"Bar", "BarTest"}) == ["com.acme.BarTest.class"]

    def test_match_by_exact_id(self):
        """Module ids equal to a test id match directly."""
        registry = TestRegistry.from_ids(["BarTest", "BazTest"])
        assert registry.match_modules({"Bar", "BarTest"}) == ["BarTest"]

    def test_registry_order(self):
        """Matches are returned in registry order."""
        registry = TestRegistry.from_ids(["ZTest.class", "ATest.class"])
        assert registry.match_modules({"ATest", "ZTest"}) == ["ZTest.class", "ATest.class"]

    def test_no_matches(self):
        registry = TestRegistry.from_ids(["ATest.class"])
        assert registry.match_modules({"Foo"}) == []
