"""Selector configuration file management.

Reads and writes the .selector_config JSON file holding the selection
windows, dependency-analysis options, and file locations. Missing keys
fall back to DEFAULT_CONFIG.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from selector.dependency.changes import DEFAULT_SOURCE_EXTENSIONS
from selector.history.builds import DEFAULT_ACCEPTABLE_RESULTS, VALID_RESULTS
from selector.registry.manifest import DEFAULT_END_MARKER, DEFAULT_START_MARKERS

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "failure_window": 5,
    "execution_window": 5,
    "priority_window": 10,
    "use_dependency_analysis": False,
    "reference_graph": ".tests/reference_graph.json",
    "resolver_command": None,
    "resolver_timeout": 300.0,
    "acceptable_results": sorted(DEFAULT_ACCEPTABLE_RESULTS),
    "source_extensions": list(DEFAULT_SOURCE_EXTENSIONS),
    "test_id_suffix": ".class",
    "start_markers": list(DEFAULT_START_MARKERS),
    "end_marker": DEFAULT_END_MARKER,
    "state_file": ".tests/priority_state.txt",
    "history_dir": ".tests/builds",
    "output_manifest": None,
}


class SelectorConfig:
    """Manages the .selector_config JSON configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def failure_window(self) -> int:
        """Builds checked for recent failures (Wf)."""
        return int(self._data.get("failure_window", DEFAULT_CONFIG["failure_window"]))

    @property
    def execution_window(self) -> int:
        """Builds checked for recent executions (We)."""
        return int(
            self._data.get("execution_window", DEFAULT_CONFIG["execution_window"])
        )

    @property
    def priority_window(self) -> int | None:
        """Max builds a test may go unprioritized (None = no refresh)."""
        val = self._data.get("priority_window", DEFAULT_CONFIG["priority_window"])
        return int(val) if val is not None else None

    @property
    def use_dependency_analysis(self) -> bool:
        return bool(self._data.get("use_dependency_analysis", False))

    @property
    def reference_graph(self) -> Path:
        return Path(
            self._data.get("reference_graph") or DEFAULT_CONFIG["reference_graph"]
        )

    @property
    def resolver_command(self) -> list[str] | None:
        """External analysis command (argv list), or None to use the graph."""
        val = self._data.get("resolver_command")
        if not val:
            return None
        if isinstance(val, str):
            return val.split()
        return [str(part) for part in val]

    @property
    def resolver_timeout(self) -> float:
        return float(
            self._data.get("resolver_timeout", DEFAULT_CONFIG["resolver_timeout"])
        )

    @property
    def acceptable_results(self) -> frozenset[str]:
        return frozenset(
            self._data.get("acceptable_results", DEFAULT_CONFIG["acceptable_results"])
        )

    @property
    def source_extensions(self) -> list[str]:
        return list(
            self._data.get("source_extensions", DEFAULT_CONFIG["source_extensions"])
        )

    @property
    def test_id_suffix(self) -> str:
        return str(self._data.get("test_id_suffix", DEFAULT_CONFIG["test_id_suffix"]))

    @property
    def start_markers(self) -> list[str]:
        return list(self._data.get("start_markers", DEFAULT_CONFIG["start_markers"]))

    @property
    def end_marker(self) -> str:
        return str(self._data.get("end_marker", DEFAULT_CONFIG["end_marker"]))

    @property
    def state_file(self) -> Path:
        return Path(self._data.get("state_file") or DEFAULT_CONFIG["state_file"])

    @property
    def history_dir(self) -> Path:
        return Path(self._data.get("history_dir") or DEFAULT_CONFIG["history_dir"])

    @property
    def output_manifest(self) -> Path | None:
        """Where the prioritized manifest is written (None = in place)."""
        val = self._data.get("output_manifest")
        return Path(val) if val else None

    def set_config(
        self,
        failure_window: int | None = None,
        execution_window: int | None = None,
        priority_window: int | None = None,
        use_dependency_analysis: bool | None = None,
    ) -> None:
        """Update configuration values.

        Arguments left as None are not changed, so ``priority_window``
        cannot be disabled here; set it to null in the config file instead.
        """
        if failure_window is not None:
            self._data["failure_window"] = failure_window
        if execution_window is not None:
            self._data["execution_window"] = execution_window
        if priority_window is not None:
            self._data["priority_window"] = priority_window
        if use_dependency_analysis is not None:
            self._data["use_dependency_analysis"] = use_dependency_analysis

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: On a negative window, a non-positive resolver
                timeout, an unknown build result, or no start markers.
        """
        for name in ("failure_window", "execution_window"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be a non-negative number, got {value}")
        if self.priority_window is not None and self.priority_window < 0:
            raise ValueError(
                f"priority_window must be a non-negative number, got {self.priority_window}"
            )
        if self.resolver_timeout <= 0:
            raise ValueError(
                f"resolver_timeout must be positive, got {self.resolver_timeout}"
            )
        unknown = self.acceptable_results - VALID_RESULTS
        if unknown:
            raise ValueError(
                f"Unknown build results in acceptable_results: {sorted(unknown)}"
            )
        if not self.start_markers:
            raise ValueError("start_markers must not be empty")
