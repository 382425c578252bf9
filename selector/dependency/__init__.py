"""Dependency analysis: change sets, reference graphs, and resolvers."""

from selector.dependency.changes import (
    DEFAULT_SOURCE_EXTENSIONS,
    changed_module_ids,
    get_changed_files,
    parse_changed_files,
)
from selector.dependency.graph import (
    ReferenceGraph,
    load_graph,
    reachable_dependents,
    save_graph,
)
from selector.dependency.resolver import (
    CommandResolver,
    DependencyResolver,
    GraphResolver,
    ResolverError,
)

__all__ = [
    "DEFAULT_SOURCE_EXTENSIONS",
    "CommandResolver",
    "DependencyResolver",
    "GraphResolver",
    "ReferenceGraph",
    "ResolverError",
    "changed_module_ids",
    "get_changed_files",
    "load_graph",
    "parse_changed_files",
    "reachable_dependents",
    "save_graph",
]
