"""Dependency resolvers: map changed modules to every dependent module.

Two implementations share the ``resolve(changed) -> dependents`` contract:

- GraphResolver walks a ReferenceGraph in process.
- CommandResolver hands the changed ids to an external analysis program
  through a handoff file and reads the dependents back, under a timeout.

Both raise ResolverError on failure; callers fall back to the full test
registry.
"""

from __future__ import annotations

import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, Protocol

from selector.dependency.graph import ReferenceGraph, load_graph, reachable_dependents


class ResolverError(RuntimeError):
    """Raised when dependency resolution fails or times out."""


class DependencyResolver(Protocol):
    def resolve(self, changed: set[str]) -> set[str]:
        """Return the transitive set of modules dependent on ``changed``."""
        ...


class GraphResolver:
    """Resolve dependents from a reference graph."""

    def __init__(self, graph: ReferenceGraph) -> None:
        self.graph = graph

    @classmethod
    def from_file(cls, path: str | Path) -> GraphResolver:
        """Load the graph file.

        Raises:
            ResolverError: If the graph file is missing or invalid.
        """
        graph = load_graph(path)
        if graph is None:
            raise ResolverError(f"Reference graph not found or invalid: {path}")
        return cls(graph)

    def resolve(self, changed: set[str]) -> set[str]:
        return reachable_dependents(self.graph, changed)


class CommandResolver:
    """Resolve dependents by running an external analysis command.

    The command is invoked as ``command + [handoff_path]``. The handoff file
    initially holds the changed module ids, one per line; the command must
    overwrite it with the dependent module ids, one per line, and exit 0.
    """

    def __init__(
        self,
        command: list[str],
        timeout: float = 300.0,
        handoff_dir: str | Path | None = None,
    ) -> None:
        if not command:
            raise ValueError("Resolver command must not be empty")
        if timeout <= 0:
            raise ValueError(f"Resolver timeout must be positive, got {timeout}")
        self.command = list(command)
        self.timeout = timeout
        self.handoff_dir = Path(handoff_dir) if handoff_dir is not None else None

    def resolve(self, changed: set[str]) -> set[str]:
        with tempfile.TemporaryDirectory(dir=self.handoff_dir) as tmpdir:
            handoff = Path(tmpdir) / "handoff.txt"
            handoff.write_text(
                "".join(f"{m}\n" for m in sorted(changed)), encoding="utf-8",
            )
            self._run(handoff)
            try:
                text = handoff.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise ResolverError(f"Cannot read resolver handoff file: {e}")
        return _parse_module_lines(text.splitlines())

    def _run(self, handoff: Path) -> None:
        argv = self.command + [str(handoff)]
        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise ResolverError(
                f"Dependency analysis timed out after {self.timeout} seconds"
            )
        except FileNotFoundError:
            raise ResolverError(f"Resolver executable not found: {argv[0]}")
        except OSError as e:
            raise ResolverError(f"OS error running resolver: {e}")

        if proc.returncode != 0:
            raise ResolverError(
                f"Dependency analysis exited with code {proc.returncode}: "
                f"{proc.stderr.strip()}"
            )


def _parse_module_lines(lines: Iterable[str]) -> set[str]:
    return {line.strip() for line in lines if line.strip()}
