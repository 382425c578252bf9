"""Entry point for the regression test selector.

Parses command-line arguments, selects and orders the tests for the
current build, rewrites the test-suite manifest and the priority state,
and optionally writes a selection report.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

from selector.config import SelectorConfig
from selector.dependency.changes import get_changed_files, parse_changed_files
from selector.dependency.resolver import DependencyResolver, ResolverError
from selector.history.builds import DirectoryBuildHistory
from selector.pipeline import (
    SelectionContext,
    SelectionOptions,
    SelectionResult,
    build_resolver,
    run_selection,
)
from selector.registry.manifest import ManifestError
from selector.reporting.reporter import SelectionReporter


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Regression test selector - orders a test suite by priority"
    )
    parser.add_argument(
        "--manifest",
        required=True,
        type=Path,
        help="Path to the test-suite manifest to prioritize",
    )
    parser.add_argument(
        "--build-number",
        type=int,
        default=None,
        help="Current build number (default: $BUILD_NUMBER)",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=Path(".selector_config"),
        help="Path to the .selector_config JSON file (default: .selector_config)",
    )
    parser.add_argument(
        "--output-manifest",
        type=Path,
        default=None,
        help="Write the prioritized manifest here instead of rewriting --manifest "
        "(required with dependency analysis; default: config output_manifest)",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Path to write the selection report (.json, .yaml or .yml)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Compute the ordering without writing the manifest or state file",
    )

    # Dependency analysis flags
    parser.add_argument(
        "--dependency-analysis",
        dest="dependency_analysis",
        action="store_true",
        default=None,
        help="Only consider tests reachable from changed files",
    )
    parser.add_argument(
        "--no-dependency-analysis",
        dest="dependency_analysis",
        action="store_false",
        help="Consider all tests regardless of changed files",
    )
    parser.add_argument(
        "--diff-base",
        type=str,
        default=None,
        help="Git ref to diff against for changed files (e.g. main, HEAD~1)",
    )
    parser.add_argument(
        "--changed-files",
        type=str,
        default=None,
        help="Comma-separated list of changed files (alternative to --diff-base)",
    )
    return parser.parse_args(argv)


def _resolve_build_number(value: int | None) -> int | None:
    if value is not None:
        return value
    env_value = os.environ.get("BUILD_NUMBER")
    if env_value is None:
        return None
    try:
        return int(env_value)
    except ValueError:
        return None


def _resolve_commit_sha() -> str | None:
    """Best-effort HEAD commit SHA for tagging the report."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def _collect_changed_files(args: argparse.Namespace) -> list[str] | None:
    """Determine changed files from the CLI flags.

    Returns:
        Changed paths, or None if they could not be determined.
    """
    if args.changed_files is not None:
        return parse_changed_files(args.changed_files)
    if args.diff_base:
        try:
            return get_changed_files(args.diff_base)
        except RuntimeError as e:
            print(f"Warning: {e}; using all tests", file=sys.stderr)
            return None
    return None


def _print_summary(result: SelectionResult, options: SelectionOptions) -> None:
    print(
        f"Test prioritization for build {result.build_number}: "
        f"{len(result.ordered_tests)} of {result.total_tests} tests selected, "
        f"{len(result.high_priority)} high priority"
    )
    print(
        f"  windows: failure={options.failure_window} "
        f"execution={options.execution_window} "
        f"priority={options.priority_window if options.priority_window is not None else 'off'}"
    )
    print(
        f"  history: {len(result.scan.examined)} builds used, "
        f"{len(result.scan.skipped)} skipped"
        + (" (history exhausted)" if result.scan.exhausted else "")
    )
    if options.use_dependency_analysis:
        if result.relevant_tests is not None:
            print(
                f"  dependency analysis: {len(result.relevant_tests)} relevant tests "
                f"from {len(result.changed_modules)} changed modules"
            )
        else:
            print(f"  dependency analysis: using all tests ({result.fallback_reason})")
    if result.forced_outside_relevant:
        print(
            f"  priority window forced {len(result.forced_outside_relevant)} "
            f"tests outside the relevant set"
        )
    print()
    for test_id in result.ordered_tests:
        reasons = result.reasons.get(test_id)
        suffix = f" ({', '.join(reasons)})" if reasons else ""
        print(f"  [{result.priorities[test_id].upper():<4}] {test_id}{suffix}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    build_number = _resolve_build_number(args.build_number)
    if build_number is None:
        print(
            "Error: --build-number is required when $BUILD_NUMBER is not set",
            file=sys.stderr,
        )
        return 1

    config = SelectorConfig(args.config_file)
    if args.dependency_analysis is not None:
        config.set_config(use_dependency_analysis=args.dependency_analysis)
    try:
        options = SelectionOptions.from_config(config)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    changed_files: list[str] | None = None
    resolver: DependencyResolver | None = None
    if options.use_dependency_analysis:
        changed_files = _collect_changed_files(args)
        try:
            resolver = build_resolver(config)
        except (ResolverError, ValueError) as e:
            print(f"Warning: {e}; using all tests", file=sys.stderr)

    context = SelectionContext(
        manifest_path=args.manifest,
        build_number=build_number,
        state_path=config.state_file,
        history=DirectoryBuildHistory(config.history_dir),
        options=options,
        changed_files=changed_files,
        resolver=resolver,
        output_manifest=args.output_manifest or config.output_manifest,
        dry_run=args.dry_run,
    )

    try:
        result = run_selection(context)
    except ValueError as e:
        # ManifestError is a ValueError; both are fatal here
        label = "Error" if isinstance(e, ManifestError) else "Error during selection"
        print(f"{label}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error writing selection output: {e}", file=sys.stderr)
        return 1

    _print_summary(result, options)

    if args.report:
        reporter = SelectionReporter(result)
        commit_sha = _resolve_commit_sha()
        if commit_sha:
            reporter.set_commit_hash(commit_sha)
        reporter.write(args.report)
        print(f"\nReport written to {args.report}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
