"""Build-history records and the directory-backed history store.

Each finalized build is stored as ``<history_dir>/<build_number>.json``::

    {
      "build_number": 42,
      "result": "unstable",
      "tests": {"com.acme.FooTest.class": 0, "com.acme.BarTest.class": 2}
    }

``tests`` maps a test id to its fail count and is ``null`` when the build
produced no test report (e.g. it broke before tests ran).
"""

from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol


# CI build results; "unstable" means tests ran and some failed
VALID_RESULTS = frozenset({"success", "unstable", "failure", "aborted", "not_built"})

DEFAULT_ACCEPTABLE_RESULTS = frozenset({"success", "unstable", "failure"})

_RECORD_NAME = re.compile(r"^(\d+)\.json$")


@dataclass(frozen=True)
class BuildOutcome:
    """Immutable outcome of one finalized build."""

    build_number: int
    result: str
    test_results: dict[str, int] | None = None

    def is_acceptable(
        self, acceptable_results: frozenset[str] | set[str] = DEFAULT_ACCEPTABLE_RESULTS,
    ) -> bool:
        """Whether this build's test results can be used.

        A build is acceptable when its result is in ``acceptable_results``
        and it recorded a test report.
        """
        return self.result in acceptable_results and self.test_results is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_number": self.build_number,
            "result": self.result,
            "tests": (
                dict(self.test_results) if self.test_results is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildOutcome:
        """Build an outcome from its JSON form.

        Raises:
            ValueError: If required fields are missing or malformed.
        """
        try:
            build_number = int(data["build_number"])
            result = str(data["result"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed build record: {e}")
        tests = data.get("tests")
        test_results: dict[str, int] | None = None
        if tests is not None:
            if not isinstance(tests, dict):
                raise ValueError("Malformed build record: 'tests' must be a mapping")
            try:
                test_results = {str(k): int(v) for k, v in tests.items()}
            except (TypeError, ValueError) as e:
                raise ValueError(f"Malformed build record: bad fail count: {e}")
        return cls(build_number=build_number, result=result, test_results=test_results)


class BuildHistory(Protocol):
    """Read-only access to prior build outcomes."""

    def previous_build(self, build_number: int) -> BuildOutcome | None:
        """Return the build immediately preceding ``build_number``, or None."""
        ...


class DirectoryBuildHistory:
    """Build history persisted as one JSON file per build."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def build_numbers(self) -> list[int]:
        """All recorded build numbers, ascending."""
        if not self.directory.is_dir():
            return []
        numbers = []
        for entry in self.directory.iterdir():
            match = _RECORD_NAME.match(entry.name)
            if match and entry.is_file():
                numbers.append(int(match.group(1)))
        return sorted(numbers)

    def load(self, build_number: int) -> BuildOutcome | None:
        """Load one build record.

        Returns:
            The outcome, or None if the build was never recorded.

        Raises:
            ValueError: If the record exists but cannot be parsed.
        """
        path = self._path(build_number)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in build record {path}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Malformed build record {path}")
        return BuildOutcome.from_dict(data)

    def previous_build(self, build_number: int) -> BuildOutcome | None:
        """Return the most recent recorded build before ``build_number``.

        A record that cannot be parsed is returned as a build without test
        results, so a scan skips it instead of failing.
        """
        earlier = [n for n in self.build_numbers() if n < build_number]
        if not earlier:
            return None
        previous = earlier[-1]
        try:
            outcome = self.load(previous)
        except (ValueError, OSError) as e:
            print(f"Warning: ignoring build {previous}: {e}", file=sys.stderr)
            return BuildOutcome(build_number=previous, result="not_built")
        if outcome is None:
            return BuildOutcome(build_number=previous, result="not_built")
        return outcome

    def record(self, outcome: BuildOutcome) -> Path:
        """Persist a finalized build.

        Raises:
            ValueError: If the build number is negative, the result unknown,
                or the build was already recorded (records are immutable).
        """
        if outcome.build_number < 0:
            raise ValueError(f"Invalid build number: {outcome.build_number}")
        if outcome.result not in VALID_RESULTS:
            raise ValueError(
                f"Invalid build result '{outcome.result}'. "
                f"Must be one of: {sorted(VALID_RESULTS)}"
            )
        path = self._path(outcome.build_number)
        if path.exists():
            raise ValueError(f"Build {outcome.build_number} is already recorded")
        self.directory.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(outcome.to_dict(), indent=2) + "\n")
        return path

    def _path(self, build_number: int) -> Path:
        return self.directory / f"{build_number}.json"
