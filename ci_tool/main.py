"""CI tool entry point with build-history and priority-state subcommands.

Provides record-build, priority-status, resolve, and generate-manifest
subcommands for feeding build outcomes into the selector's history,
inspecting the persisted priority state, querying the reference graph,
and regenerating the full suite manifest from the test sources.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from selector.history.builds import VALID_RESULTS, BuildOutcome, DirectoryBuildHistory
from selector.priority.state import load_state


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="CI tool for regression test selector history and state"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # record-build subcommand
    record_parser = subparsers.add_parser(
        "record-build",
        help="Record a finished build's outcome from JUnit XML reports",
    )
    record_parser.add_argument(
        "--history-dir",
        type=Path,
        default=Path(".tests/builds"),
        help="Build-history directory (default: .tests/builds)",
    )
    record_parser.add_argument(
        "--build-number",
        type=int,
        required=True,
        help="Number of the finished build",
    )
    record_parser.add_argument(
        "--result",
        choices=sorted(VALID_RESULTS),
        required=True,
        help="CI result of the build",
    )
    record_parser.add_argument(
        "--suffix",
        type=str,
        default=".class",
        help="Suffix appended to JUnit classnames to form test ids (default: .class)",
    )
    record_parser.add_argument(
        "reports",
        nargs="*",
        type=Path,
        help="JUnit XML report files or directories (none = build had no test report)",
    )

    # priority-status subcommand
    status_parser = subparsers.add_parser(
        "priority-status",
        help="Display when each test was last prioritized",
    )
    status_parser.add_argument(
        "--state-file",
        type=Path,
        default=Path(".tests/priority_state.txt"),
        help="Path to the priority state file (default: .tests/priority_state.txt)",
    )
    status_parser.add_argument(
        "--build-number",
        type=int,
        default=None,
        help="Current build number, to show builds since last prioritized",
    )
    status_parser.add_argument(
        "--priority-window",
        type=int,
        default=None,
        help="Flag tests that would be forced by this priority window",
    )

    # resolve subcommand
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="List modules dependent on the given modules",
    )
    resolve_parser.add_argument(
        "--graph",
        type=Path,
        default=Path(".tests/reference_graph.json"),
        help="Reference graph JSON (default: .tests/reference_graph.json)",
    )
    resolve_parser.add_argument(
        "modules",
        nargs="+",
        help="Changed module ids",
    )

    # generate-manifest subcommand
    generate_parser = subparsers.add_parser(
        "generate-manifest",
        help="Write a suite manifest listing every test class under a source tree",
    )
    generate_parser.add_argument(
        "--suffix",
        type=str,
        default=".class",
        help="Suffix appended to qualified class names (default: .class)",
    )
    generate_parser.add_argument(
        "root",
        type=Path,
        help="Directory holding the test sources",
    )
    generate_parser.add_argument(
        "package",
        help="Java package of the generated suite class (\"\" for none)",
    )
    generate_parser.add_argument(
        "output",
        type=Path,
        help="Manifest file to write, e.g. src/test/java/com/acme/AllTests.java",
    )

    return parser.parse_args(argv)


def cmd_record_build(args: argparse.Namespace) -> int:
    """Handle record-build subcommand.

    Folds the given JUnit XML reports into one build record. With no
    reports the build is recorded without test results.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    from selector.history.junit import collect_junit_reports

    test_results = None
    if args.reports:
        try:
            test_results = collect_junit_reports(args.reports, args.suffix)
        except (ValueError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    history = DirectoryBuildHistory(args.history_dir)
    outcome = BuildOutcome(
        build_number=args.build_number,
        result=args.result,
        test_results=test_results,
    )
    try:
        path = history.record(outcome)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if test_results is None:
        print(f"Recorded build {args.build_number} ({args.result}, no test report)")
    else:
        failing = sum(1 for count in test_results.values() if count > 0)
        print(
            f"Recorded build {args.build_number} ({args.result}): "
            f"{len(test_results)} tests, {failing} failing"
        )
    print(f"  {path}")
    return 0


def cmd_priority_status(args: argparse.Namespace) -> int:
    """Handle priority-status subcommand.

    Displays the priority state in tabular format.

    Returns:
        Exit code (0 for success).
    """
    state = load_state(args.state_file)
    if not state:
        print("No tests found")
        return 0

    name_width = max(len(name) for name in state)
    name_width = max(name_width, 4)  # minimum "Test"

    show_age = args.build_number is not None
    header = f"{'Test':<{name_width}}  {'Last Prioritized':>16}"
    if show_age:
        header += f"  {'Age':>6}"
    print(header)
    print("-" * len(header))

    stale = 0
    for name in sorted(state):
        last = state[name]
        row = f"{name:<{name_width}}  {last:>16}"
        if show_age:
            age = args.build_number - last
            row += f"  {age:>6}"
            if args.priority_window is not None and age > args.priority_window:
                row += "  stale"
                stale += 1
        print(row)

    print()
    summary = f"Total: {len(state)} tests"
    if show_age and args.priority_window is not None:
        summary += f" ({stale} beyond priority window {args.priority_window})"
    print(summary)
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle resolve subcommand.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    from selector.dependency.resolver import GraphResolver, ResolverError

    try:
        resolver = GraphResolver.from_file(args.graph)
    except ResolverError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    dependents = resolver.resolve(set(args.modules))
    unknown = sorted(set(args.modules) - resolver.graph.modules)
    for module in unknown:
        print(f"  {module}: not in reference graph", file=sys.stderr)

    for module in sorted(dependents):
        print(module)
    return 0


def cmd_generate_manifest(args: argparse.Namespace) -> int:
    """Handle generate-manifest subcommand.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    from selector.registry.generator import generate_manifest

    print(f"Finding test files under {args.root}...")
    try:
        test_ids = generate_manifest(args.root, args.package, args.output, args.suffix)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not test_ids:
        print(f"Warning: no test classes found under {args.root}", file=sys.stderr)
    print(f"{len(test_ids)} test classes written to {args.output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return 1

    if args.command == "record-build":
        return cmd_record_build(args)
    elif args.command == "priority-status":
        return cmd_priority_status(args)
    elif args.command == "resolve":
        return cmd_resolve(args)
    elif args.command == "generate-manifest":
        return cmd_generate_manifest(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
