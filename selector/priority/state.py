"""Priority-state file: the build at which each test was last prioritized.

One record per line, ``<test id>:<build number>``. The file is rewritten in
full on every run and is the only state carried between builds.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable

from selector.registry.registry import TestCase


def parse_state(lines: Iterable[str]) -> dict[str, int]:
    """Parse state records, skipping malformed ones.

    A record is malformed when it has no ``:`` separator, an empty id, or
    a build number that is not a non-negative integer. The separator is the
    last ``:`` on the line.
    """
    state: dict[str, int] = {}
    for line in lines:
        line = line.strip()
        if not line:
            continue
        test_id, sep, number = line.rpartition(":")
        test_id = test_id.strip()
        if not sep or not test_id:
            continue
        try:
            build_number = int(number.strip())
        except ValueError:
            continue
        if build_number < 0:
            continue
        state[test_id] = build_number
    return state


def load_state(path: str | Path) -> dict[str, int]:
    """Load the priority state.

    A missing or unreadable file yields an empty state, so every test is
    treated as never prioritized.
    """
    path = Path(path)
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(
            f"Warning: cannot read priority state {path}: {e}; "
            f"using 0 as last prioritized build",
            file=sys.stderr,
        )
        return {}
    return parse_state(text.splitlines())


def save_state(path: str | Path, tests: Iterable[TestCase]) -> None:
    """Write one record per test, replacing the previous file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for test in tests:
            f.write(f"{test.id}:{test.last_prioritized_build}\n")
