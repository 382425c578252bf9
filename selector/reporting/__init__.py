"""Selection reports (JSON and YAML)."""

from selector.reporting.reporter import SelectionReporter

__all__ = [
    "SelectionReporter",
]
