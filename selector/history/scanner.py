"""Backward scan over recent build outcomes.

Produces the two membership sets the priority engine needs: tests executed
within the execution window and tests that failed within the failure
window. A single backward walk honours both windows independently.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from selector.history.builds import DEFAULT_ACCEPTABLE_RESULTS, BuildHistory


@dataclass
class ScanResult:
    """Signals gathered from the build history."""

    found: set[str] = field(default_factory=set)
    failed: set[str] = field(default_factory=set)
    examined: list[int] = field(default_factory=list)  # builds whose results were used
    skipped: list[int] = field(default_factory=list)  # builds with no usable results
    exhausted: bool = False  # ran out of history before the windows closed


def scan(
    history: BuildHistory,
    start_build: int,
    failure_window: int,
    execution_window: int,
    acceptable_results: frozenset[str] | set[str] = DEFAULT_ACCEPTABLE_RESULTS,
) -> ScanResult:
    """Walk backward from ``start_build`` collecting found and failed tests.

    Window index ``i`` runs from 0 to ``max(failure_window,
    execution_window) - 1``; every predecessor build consumes one index,
    including builds that are skipped for having no usable results.

    Args:
        history: Build-history collaborator.
        start_build: Current build number; the walk starts at its
            predecessor.
        failure_window: Number of builds checked for failures (Wf).
        execution_window: Number of builds checked for executions (We).
        acceptable_results: Build results whose test reports are used.

    Returns:
        ScanResult with found/failed sets.

    Raises:
        ValueError: If either window is negative.
    """
    if failure_window < 0:
        raise ValueError(f"failure_window must be >= 0, got {failure_window}")
    if execution_window < 0:
        raise ValueError(f"execution_window must be >= 0, got {execution_window}")

    result = ScanResult()
    build_number = start_build

    for i in range(max(failure_window, execution_window)):
        outcome = history.previous_build(build_number)
        if outcome is None:
            result.exhausted = True
            break
        build_number = outcome.build_number

        if not outcome.is_acceptable(acceptable_results):
            result.skipped.append(build_number)
            continue

        result.examined.append(build_number)
        assert outcome.test_results is not None
        for test_id, fail_count in outcome.test_results.items():
            if i < execution_window:
                result.found.add(test_id)
            if i < failure_window and fail_count > 0:
                result.failed.add(test_id)

    return result
