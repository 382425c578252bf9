"""Reference graph and transitive reachability over project modules.

The graph file is produced by an external static-analysis step and stores,
for each project-local module, the modules it references::

    {
      "modules": ["Foo", "Bar", "BarTest"],
      "references": {"Bar": ["Foo", "String"], "BarTest": ["Bar"]}
    }

References to entities outside ``modules`` (library or platform classes)
are dropped on load. A change to a module affects every module that
references it, directly or transitively, so reachability walks the
"referenced by" direction.
"""

from __future__ import annotations

import json
from collections import deque
from pathlib import Path
from typing import Any, Iterable


class ReferenceGraph:
    """Directed references between project-local modules."""

    def __init__(self) -> None:
        self.modules: set[str] = set()
        self.references: dict[str, set[str]] = {}
        self.referenced_by: dict[str, set[str]] = {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceGraph:
        """Construct a graph from its JSON form.

        When ``modules`` is absent, every module named in ``references``
        (as source or target) is treated as project-local.

        Raises:
            ValueError: If ``references`` is not a mapping of lists.
        """
        references = data.get("references", {})
        if not isinstance(references, dict):
            raise ValueError("Reference graph 'references' must be a mapping")

        graph = cls()
        if "modules" in data:
            graph.modules = {str(m) for m in data["modules"]}
        else:
            graph.modules = set(references)
            for targets in references.values():
                graph.modules.update(str(t) for t in targets)

        for source, targets in references.items():
            if not isinstance(targets, list):
                raise ValueError(
                    f"Reference graph entry for '{source}' must be a list"
                )
            for target in targets:
                graph.add_reference(str(source), str(target))
        return graph

    def add_reference(self, source: str, target: str) -> None:
        """Record that ``source`` references ``target``.

        Ignored unless both ends are project-local modules.
        """
        if source not in self.modules or target not in self.modules:
            return
        if source == target:
            return
        self.references.setdefault(source, set()).add(target)
        self.referenced_by.setdefault(target, set()).add(source)

    def to_dict(self) -> dict[str, Any]:
        return {
            "modules": sorted(self.modules),
            "references": {
                source: sorted(targets)
                for source, targets in sorted(self.references.items())
            },
        }


def reachable_dependents(
    graph: ReferenceGraph, changed: Iterable[str],
) -> set[str]:
    """Compute every module affected by a change to ``changed``.

    BFS over the "referenced by" relation. Nodes are marked visited before
    they are enqueued, so reference cycles cannot cause revisits.

    Args:
        graph: Project reference graph.
        changed: Changed module ids. Ids unknown to the graph are ignored.

    Returns:
        The changed modules known to the graph plus all modules that
        transitively reference them.
    """
    visited: set[str] = set()
    queue: deque[str] = deque()

    for module in changed:
        if module in graph.modules and module not in visited:
            visited.add(module)
            queue.append(module)

    while queue:
        module = queue.popleft()
        for dependent in graph.referenced_by.get(module, ()):
            if dependent not in visited:
                visited.add(dependent)
                queue.append(dependent)

    return visited


def save_graph(graph: ReferenceGraph, output_path: str | Path) -> None:
    """Save a reference graph as JSON, creating parent directories."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(graph.to_dict(), indent=2) + "\n")


def load_graph(input_path: str | Path) -> ReferenceGraph | None:
    """Load a reference graph from JSON.

    Returns:
        The graph, or None if the file doesn't exist or isn't valid.
    """
    path = Path(input_path)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
        if not isinstance(data, dict):
            return None
        return ReferenceGraph.from_dict(data)
    except (json.JSONDecodeError, OSError, ValueError):
        return None
