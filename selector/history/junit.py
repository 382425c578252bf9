"""Fold JUnit XML test reports into per-class fail counts.

Test ids are class level: the ``classname`` attribute of each
``<testcase>`` plus a suffix (``.class`` by default), matching the ids
listed in a JUnit suite manifest.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path


def parse_junit_xml(xml_content: str, suffix: str = ".class") -> dict[str, int]:
    """Parse one JUnit XML document.

    Handles both a bare ``<testsuite>`` root and a ``<testsuites>``
    wrapper. A testcase counts as failing when it has a ``<failure>`` or
    ``<error>`` child.

    Args:
        xml_content: XML text of the report.
        suffix: Suffix appended to each classname to form the test id.

    Returns:
        Mapping of test id to number of failing testcases. Classes whose
        testcases all passed (or were skipped) map to 0.

    Raises:
        ValueError: If the document is not well-formed XML.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise ValueError(f"Invalid JUnit XML: {e}")

    results: dict[str, int] = {}
    for case in root.iter("testcase"):
        classname = case.get("classname", "").strip()
        if not classname:
            continue  # skip malformed cases
        test_id = f"{classname}{suffix}"
        failed = case.find("failure") is not None or case.find("error") is not None
        results[test_id] = results.get(test_id, 0) + (1 if failed else 0)
    return results


def collect_junit_reports(
    paths: list[Path], suffix: str = ".class",
) -> dict[str, int]:
    """Merge several JUnit XML report files.

    Directories are searched for ``*.xml`` files (non-recursively, in name
    order). Fail counts for the same id are summed.

    Raises:
        ValueError: If a report is not valid XML.
        OSError: If a report cannot be read.
    """
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(path.glob("*.xml")))
        else:
            files.append(path)

    merged: dict[str, int] = {}
    for report in files:
        for test_id, fail_count in parse_junit_xml(report.read_text(), suffix).items():
            merged[test_id] = merged.get(test_id, 0) + fail_count
    return merged
