"""Build history: outcome records, JUnit ingestion, and the backward scan."""

from selector.history.builds import (
    DEFAULT_ACCEPTABLE_RESULTS,
    VALID_RESULTS,
    BuildHistory,
    BuildOutcome,
    DirectoryBuildHistory,
)
from selector.history.junit import collect_junit_reports, parse_junit_xml
from selector.history.scanner import ScanResult, scan

__all__ = [
    "DEFAULT_ACCEPTABLE_RESULTS",
    "VALID_RESULTS",
    "BuildHistory",
    "BuildOutcome",
    "DirectoryBuildHistory",
    "ScanResult",
    "collect_junit_reports",
    "parse_junit_xml",
    "scan",
]
