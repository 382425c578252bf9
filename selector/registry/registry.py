"""Test registry: the canonical set of known tests and their metadata.

A registry snapshot is built from the ids listed in the test-suite manifest.
Iteration follows manifest order, which is also the tie-break order used by
the priority engine's stable sort.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Iterator


class Priority(enum.Enum):
    """Binary test priority."""

    HIGH = "high"
    LOW = "low"


@dataclass
class TestCase:
    """A single test known to the registry."""

    __test__ = False  # not a pytest test class

    id: str
    priority: Priority = Priority.LOW
    last_prioritized_build: int = 0


def simple_name(test_id: str, suffix: str = ".class") -> str:
    """Return the simple name of a test id.

    Strips the test-id suffix (e.g. ``.class``) and any package prefix, so
    ``com.acme.BarTest.class`` becomes ``BarTest``.
    """
    name = test_id
    if suffix and name.endswith(suffix):
        name = name[: -len(suffix)]
    return name.rsplit(".", 1)[-1]


class TestRegistry:
    """Ordered collection of TestCase objects keyed by id."""

    __test__ = False

    def __init__(self) -> None:
        self._tests: dict[str, TestCase] = {}

    @classmethod
    def from_ids(cls, test_ids: Iterable[str]) -> TestRegistry:
        """Build a registry from manifest ids.

        Args:
            test_ids: Test identifiers in manifest order.

        Returns:
            A registry holding one TestCase per id.

        Raises:
            ValueError: If an id is empty or listed twice.
        """
        registry = cls()
        for test_id in test_ids:
            registry.add(test_id)
        return registry

    def add(self, test_id: str) -> TestCase:
        """Register a new test with default metadata."""
        if not test_id:
            raise ValueError("Test id must not be empty")
        if test_id in self._tests:
            raise ValueError(f"Duplicate test id in registry: {test_id}")
        test = TestCase(id=test_id)
        self._tests[test_id] = test
        return test

    def get(self, test_id: str) -> TestCase | None:
        return self._tests.get(test_id)

    def ids(self) -> list[str]:
        """Get all test ids in registry order."""
        return list(self._tests)

    def apply_state(self, state: dict[str, int]) -> None:
        """Seed last_prioritized_build from persisted state.

        Ids in the state that are not registered are ignored; registered
        tests absent from the state keep the default of 0.
        """
        for test_id, build_number in state.items():
            test = self._tests.get(test_id)
            if test is not None:
                test.last_prioritized_build = build_number

    def reset_priorities(self) -> None:
        """Set every test back to Low before a fresh computation."""
        for test in self._tests.values():
            test.priority = Priority.LOW

    def match_modules(
        self, module_ids: Iterable[str], suffix: str = ".class",
    ) -> list[str]:
        """Find registry tests that correspond to dependent modules.

        A test matches a module when its id equals the module id or when
        its simple name does.

        Args:
            module_ids: Module ids returned by a dependency resolver.
            suffix: Test-id suffix stripped before comparing simple names.

        Returns:
            Matching test ids in registry order.
        """
        modules = set(module_ids)
        return [
            test_id
            for test_id in self._tests
            if test_id in modules or simple_name(test_id, suffix) in modules
        ]

    def __contains__(self, test_id: object) -> bool:
        return test_id in self._tests

    def __iter__(self) -> Iterator[TestCase]:
        return iter(list(self._tests.values()))

    def __len__(self) -> int:
        return len(self._tests)
