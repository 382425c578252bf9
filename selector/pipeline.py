"""Selection pipeline: one build's test selection and prioritization.

Steps: load the manifest into a registry, apply persisted priority state,
optionally narrow the candidates to change-relevant tests, scan the build
history, prioritize, then persist state and rewrite the manifest.

Dependency filtering and the priority-window refresh are independent
options. Every dependency-analysis problem fails open to the full
registry. The source manifest is the registry for the next build, so a
filtered ordering is always written to a separate output manifest.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

from selector.config import SelectorConfig
from selector.dependency.changes import DEFAULT_SOURCE_EXTENSIONS, changed_module_ids
from selector.dependency.resolver import (
    CommandResolver,
    DependencyResolver,
    GraphResolver,
    ResolverError,
)
from selector.history.builds import DEFAULT_ACCEPTABLE_RESULTS, BuildHistory
from selector.history.scanner import ScanResult, scan
from selector.priority.engine import prioritize
from selector.priority.state import load_state, save_state
from selector.registry.manifest import (
    DEFAULT_END_MARKER,
    DEFAULT_START_MARKERS,
    load_manifest,
    write_manifest,
)
from selector.registry.registry import TestRegistry


# Reasons for falling back to the full registry
FALLBACK_NO_RESOLVER = "no dependency resolver available"
FALLBACK_NO_CHANGES = "no changed files"
FALLBACK_NO_SOURCE_CHANGES = "no changed source files"
FALLBACK_NO_RELEVANT_TESTS = "no tests reachable from changed files"
FALLBACK_RESOLVER_FAILED = "dependency analysis failed"


@dataclass
class SelectionOptions:
    """Tuning parameters for one selection run."""

    failure_window: int = 5
    execution_window: int = 5
    priority_window: int | None = 10
    use_dependency_analysis: bool = False
    acceptable_results: frozenset[str] = DEFAULT_ACCEPTABLE_RESULTS
    source_extensions: list[str] = field(
        default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS)
    )
    test_id_suffix: str = ".class"
    start_markers: list[str] = field(
        default_factory=lambda: list(DEFAULT_START_MARKERS)
    )
    end_marker: str = DEFAULT_END_MARKER

    @classmethod
    def from_config(cls, config: SelectorConfig) -> SelectionOptions:
        """Build options from a validated config file.

        Raises:
            ValueError: If the config holds out-of-range values.
        """
        config.validate()
        return cls(
            failure_window=config.failure_window,
            execution_window=config.execution_window,
            priority_window=config.priority_window,
            use_dependency_analysis=config.use_dependency_analysis,
            acceptable_results=config.acceptable_results,
            source_extensions=config.source_extensions,
            test_id_suffix=config.test_id_suffix,
            start_markers=config.start_markers,
            end_marker=config.end_marker,
        )


@dataclass
class SelectionContext:
    """Everything one selection run needs, passed explicitly."""

    manifest_path: Path
    build_number: int
    state_path: Path
    history: BuildHistory
    options: SelectionOptions = field(default_factory=SelectionOptions)
    changed_files: list[str] | None = None
    resolver: DependencyResolver | None = None
    # defaults to manifest_path; must differ from it with dependency analysis
    output_manifest: Path | None = None
    dry_run: bool = False


@dataclass
class SelectionResult:
    """Outcome of a selection run."""

    build_number: int
    ordered_tests: list[str]
    priorities: dict[str, str]
    reasons: dict[str, list[str]]
    last_prioritized: dict[str, int]
    total_tests: int
    scan: ScanResult
    relevant_tests: list[str] | None = None  # None when the full registry was used
    changed_modules: list[str] = field(default_factory=list)
    fallback_reason: str | None = None
    forced_outside_relevant: list[str] = field(default_factory=list)

    @property
    def high_priority(self) -> list[str]:
        return [t for t in self.ordered_tests if self.priorities[t] == "high"]


def build_resolver(config: SelectorConfig) -> DependencyResolver:
    """Create the resolver configured in ``config``.

    An external ``resolver_command`` takes precedence over the reference
    graph file.

    Raises:
        ResolverError: If the reference graph cannot be loaded.
    """
    command = config.resolver_command
    if command:
        return CommandResolver(command, timeout=config.resolver_timeout)
    return GraphResolver.from_file(config.reference_graph)


def resolve_relevant_tests(
    registry: TestRegistry,
    changed_files: list[str] | None,
    resolver: DependencyResolver | None,
    options: SelectionOptions,
) -> tuple[list[str] | None, list[str], str | None]:
    """Narrow the registry to tests reachable from the changed files.

    Args:
        registry: All known tests.
        changed_files: Paths changed since the last build.
        resolver: Dependency resolver, or None if unavailable.
        options: Selection options (source extensions, id suffix).

    Returns:
        Tuple of (relevant test ids or None for the full registry,
        changed module ids, fallback reason or None).
    """
    if resolver is None:
        return None, [], FALLBACK_NO_RESOLVER
    if not changed_files:
        return None, [], FALLBACK_NO_CHANGES

    modules = changed_module_ids(changed_files, options.source_extensions)
    if not modules:
        return None, [], FALLBACK_NO_SOURCE_CHANGES

    try:
        dependents = resolver.resolve(modules)
    except ResolverError as e:
        print(f"Warning: {e}; using all tests", file=sys.stderr)
        return None, sorted(modules), f"{FALLBACK_RESOLVER_FAILED}: {e}"

    relevant = registry.match_modules(dependents, options.test_id_suffix)
    if not relevant:
        return None, sorted(modules), FALLBACK_NO_RELEVANT_TESTS
    return relevant, sorted(modules), None


def run_selection(context: SelectionContext) -> SelectionResult:
    """Select and order this build's tests, then persist state and manifest.

    Args:
        context: Paths, collaborators, and options for this run.

    Returns:
        SelectionResult describing the ordering.

    Raises:
        ManifestError: If the manifest is missing or has no test section.
        ValueError: If the manifest lists a test twice, a window is
            negative, or dependency analysis would rewrite the source
            manifest in place.
    """
    options = context.options
    output_path = context.output_manifest or context.manifest_path
    # A filtered suite written over its source would shrink the next registry
    if (
        options.use_dependency_analysis
        and not context.dry_run
        and _same_path(output_path, context.manifest_path)
    ):
        raise ValueError(
            "Dependency analysis can narrow the suite; write it to an output "
            f"manifest other than the source manifest {context.manifest_path}"
        )

    manifest = load_manifest(
        context.manifest_path, options.start_markers, options.end_marker,
    )
    registry = TestRegistry.from_ids(manifest.test_ids)
    if not len(registry):
        print(
            f"Warning: no tests listed in {context.manifest_path}",
            file=sys.stderr,
        )

    registry.apply_state(load_state(context.state_path))

    relevant: list[str] | None = None
    changed_modules: list[str] = []
    fallback_reason: str | None = None
    if options.use_dependency_analysis:
        relevant, changed_modules, fallback_reason = resolve_relevant_tests(
            registry, context.changed_files, context.resolver, options,
        )

    scan_result = scan(
        context.history,
        context.build_number,
        options.failure_window,
        options.execution_window,
        options.acceptable_results,
    )

    prioritization = prioritize(
        registry,
        found=scan_result.found,
        failed=scan_result.failed,
        build_number=context.build_number,
        priority_window=options.priority_window,
        relevant=relevant,
    )

    if not context.dry_run:
        save_state(context.state_path, registry)
        write_manifest(manifest, output_path, prioritization.ordered_ids)

    return SelectionResult(
        build_number=context.build_number,
        ordered_tests=prioritization.ordered_ids,
        priorities={t.id: t.priority.value for t in prioritization.ordered},
        reasons=prioritization.reasons,
        last_prioritized={t.id: t.last_prioritized_build for t in registry},
        total_tests=len(registry),
        scan=scan_result,
        relevant_tests=relevant,
        changed_modules=changed_modules,
        fallback_reason=fallback_reason,
        forced_outside_relevant=prioritization.forced_outside_relevant,
    )


def _same_path(a: Path, b: Path) -> bool:
    return Path(a).resolve() == Path(b).resolve()
