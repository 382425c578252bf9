"""Report generation for test selection runs.

Produces a structured report of one selection: the ordered tests with
their priorities and reasons, the history signals used, and whether
dependency analysis narrowed the candidates or fell back to the full
registry. Written as JSON or YAML.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any

import yaml

from selector.pipeline import SelectionResult


class SelectionReporter:
    """Collects a selection result and generates report files."""

    def __init__(self, result: SelectionResult) -> None:
        self.result = result
        self.commit_hash: str | None = None

    def set_commit_hash(self, commit_hash: str) -> None:
        """Set the commit hash to tag the report with.

        Args:
            commit_hash: Git commit hash string.
        """
        self.commit_hash = commit_hash

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for
            JSON or YAML serialization.
        """
        result = self.result
        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()

        report: dict[str, Any] = {
            "generated_at": now,
            "build_number": result.build_number,
            "summary": self._compute_summary(),
            "selection": {
                "dependency_analysis": result.relevant_tests is not None,
                "fallback_reason": result.fallback_reason,
                "changed_modules": list(result.changed_modules),
                "relevant_tests": (
                    list(result.relevant_tests)
                    if result.relevant_tests is not None else None
                ),
                "forced_outside_relevant": list(result.forced_outside_relevant),
                "history": {
                    "builds_examined": list(result.scan.examined),
                    "builds_skipped": list(result.scan.skipped),
                    "history_exhausted": result.scan.exhausted,
                    "recently_failed": sorted(result.scan.failed),
                },
            },
            "tests": [
                {
                    "id": test_id,
                    "priority": result.priorities[test_id],
                    "reasons": list(result.reasons.get(test_id, [])),
                    "last_prioritized_build": result.last_prioritized.get(test_id, 0),
                }
                for test_id in result.ordered_tests
            ],
        }

        if self.commit_hash:
            report["commit"] = self.commit_hash

        return {"report": report}

    def _compute_summary(self) -> dict[str, int]:
        result = self.result
        high = len(result.high_priority)
        return {
            "total_tests": result.total_tests,
            "selected": len(result.ordered_tests),
            "high_priority": high,
            "low_priority": len(result.ordered_tests) - high,
        }

    def write_report(self, path: Path) -> None:
        """Write the report as a JSON file.

        Args:
            path: File path to write the JSON report to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2)
            f.write("\n")

    def write_yaml(self, path: Path) -> None:
        """Write the report as a YAML file.

        Args:
            path: File path to write the YAML report to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(
                report,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

    def write(self, path: Path) -> None:
        """Write JSON or YAML depending on the file suffix."""
        if path.suffix.lower() in (".yaml", ".yml"):
            self.write_yaml(path)
        else:
            self.write_report(path)
