"""Change-set collection and mapping of changed paths to module ids."""

from __future__ import annotations

import os
import subprocess


# Default changed-file filter for dependency analysis
DEFAULT_SOURCE_EXTENSIONS = [
    ".py", ".java", ".cc", ".go", ".rs", ".ts", ".js", ".kt", ".scala",
]


def get_changed_files(diff_base: str, repo_root: str = ".") -> list[str]:
    """Get changed files from git diff.

    Args:
        diff_base: Git ref to diff against.
        repo_root: Repository to run git in.

    Returns:
        List of changed file paths.

    Raises:
        RuntimeError: If git is missing or the diff fails.
    """
    try:
        result = subprocess.run(
            ["git", "-C", repo_root, "diff", "--name-only", f"{diff_base}...HEAD"],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except FileNotFoundError:
        raise RuntimeError("git not found")
    except subprocess.TimeoutExpired:
        raise RuntimeError("git diff timed out")

    if result.returncode != 0:
        raise RuntimeError(f"git diff failed: {result.stderr.strip()}")

    return [f.strip() for f in result.stdout.strip().splitlines() if f.strip()]


def parse_changed_files(value: str) -> list[str]:
    """Split a comma-separated ``--changed-files`` value."""
    return [f.strip() for f in value.split(",") if f.strip()]


def changed_module_ids(
    changed_files: list[str],
    source_extensions: list[str] | None = None,
) -> set[str]:
    """Map changed source files to module ids.

    A module id is the file's basename without its extension, so
    ``src/main/java/com/acme/Foo.java`` becomes ``Foo``. Files whose
    extension is not a source extension are dropped.

    Args:
        changed_files: Changed paths relative to the repository root.
        source_extensions: Accepted extensions (defaults to
            DEFAULT_SOURCE_EXTENSIONS).

    Returns:
        Set of module ids.
    """
    if source_extensions is None:
        source_extensions = DEFAULT_SOURCE_EXTENSIONS

    modules: set[str] = set()
    for path in changed_files:
        stem, ext = os.path.splitext(os.path.basename(path))
        if ext in source_extensions and stem:
            modules.add(stem)
    return modules
