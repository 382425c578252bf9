"""Priority engine: assign High/Low priorities and order the tests to run.

Rules, combined with OR:

1. recent failure: the test failed within the failure window. High, and
   the test counts as prioritized in this build.
2. not recently executed: the test did not run within the execution
   window. High.
3. priority window: the test was last prioritized more than
   ``priority_window`` builds ago. High, and the test counts as prioritized
   in this build. Applies to the whole registry, including tests outside
   the relevant set.

Rules 1 and 2 only apply to the relevant tests (the whole registry when
dependency filtering is off). The output is a stable High-first ordering
of the relevant tests plus every test forced by rule 3; equal priorities
keep registry order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from selector.registry.registry import Priority, TestCase, TestRegistry


REASON_RECENT_FAILURE = "recent_failure"
REASON_NOT_RECENTLY_EXECUTED = "not_recently_executed"
REASON_PRIORITY_WINDOW = "priority_window"


@dataclass
class PrioritizationResult:
    """Ordered tests and why each one was prioritized."""

    ordered: list[TestCase]
    reasons: dict[str, list[str]] = field(default_factory=dict)
    forced_outside_relevant: list[str] = field(default_factory=list)

    @property
    def ordered_ids(self) -> list[str]:
        return [t.id for t in self.ordered]

    @property
    def high_priority(self) -> list[str]:
        return [t.id for t in self.ordered if t.priority is Priority.HIGH]

    @property
    def low_priority(self) -> list[str]:
        return [t.id for t in self.ordered if t.priority is Priority.LOW]


def stable_priority_sort(tests: Iterable[TestCase]) -> list[TestCase]:
    """Order tests High before Low, preserving input order within a priority.

    Python's ``sorted`` is guaranteed stable, so tests with equal priority
    keep their relative positions.
    """
    return sorted(tests, key=lambda t: 0 if t.priority is Priority.HIGH else 1)


def is_stale(
    test: TestCase, build_number: int, priority_window: int | None,
) -> bool:
    """Whether a test has gone more than ``priority_window`` builds unprioritized."""
    if priority_window is None:
        return False
    return build_number - test.last_prioritized_build > priority_window


def prioritize(
    registry: TestRegistry,
    found: set[str],
    failed: set[str],
    build_number: int,
    priority_window: int | None,
    relevant: Iterable[str] | None = None,
) -> PrioritizationResult:
    """Compute priorities for this build and order the tests.

    Mutates the registry's TestCase objects: ``priority`` is recomputed from
    scratch and ``last_prioritized_build`` is advanced to ``build_number``
    for tests prioritized by rules 1 or 3 (it never moves backward).

    Args:
        registry: All known tests, with persisted state applied.
        found: Tests executed within the execution window.
        failed: Tests that failed within the failure window.
        build_number: Current build number.
        priority_window: Maximum builds a test may go unprioritized, or
            None to disable the staleness rule.
        relevant: Ids of change-relevant tests, or None for the whole
            registry.

    Returns:
        PrioritizationResult with the ordered tests under consideration.

    Raises:
        ValueError: If the build number or priority window is negative.
    """
    if build_number < 0:
        raise ValueError(f"build_number must be >= 0, got {build_number}")
    if priority_window is not None and priority_window < 0:
        raise ValueError(f"priority_window must be >= 0, got {priority_window}")

    relevant_ids = set(registry.ids()) if relevant is None else set(relevant)
    registry.reset_priorities()
    reasons: dict[str, list[str]] = {}

    def mark(test: TestCase, reason: str, refresh: bool) -> None:
        test.priority = Priority.HIGH
        reasons.setdefault(test.id, []).append(reason)
        if refresh:
            test.last_prioritized_build = max(
                test.last_prioritized_build, build_number
            )

    # Staleness is judged against the persisted value, before rule 1 refreshes it
    stale = {
        test.id for test in registry
        if is_stale(test, build_number, priority_window)
    }

    for test in registry:
        if test.id not in relevant_ids:
            continue
        if test.id in failed:
            mark(test, REASON_RECENT_FAILURE, refresh=True)
        if test.id not in found:
            mark(test, REASON_NOT_RECENTLY_EXECUTED, refresh=False)

    forced_outside: list[str] = []
    for test in registry:
        if test.id in stale:
            mark(test, REASON_PRIORITY_WINDOW, refresh=True)
            if test.id not in relevant_ids:
                forced_outside.append(test.id)

    considered = [
        test for test in registry
        if test.id in relevant_ids or test.id in stale
    ]
    return PrioritizationResult(
        ordered=stable_priority_sort(considered),
        reasons=reasons,
        forced_outside_relevant=forced_outside,
    )
