"""Generate a suite manifest from the test classes under a source tree.

Test classes are ``*Test.java`` and ``*Tests.java`` files. A file that is
itself a suite (it builds one with ``suite.addTest(`` or is annotated
``@RunWith(Suite.class)``) is not listed. Ids are fully qualified
(``com.acme.FooTest.class``) so they match the ids recorded from JUnit
reports.
"""

from __future__ import annotations

import re
from collections import deque
from pathlib import Path

from selector.registry.manifest import SuiteManifest


TEST_FILE_PATTERN = re.compile(r"^[A-Za-z0-9_]*Tests?\.java$")
SUITE_MARKERS = ("suite.addTest(", "@RunWith(Suite.class)")
_PACKAGE_RE = re.compile(r"^\s*package\s+([\w.]+)\s*;")


def find_test_files(root: Path) -> list[Path]:
    """Walk ``root`` breadth-first and collect test class files.

    Directories are visited in sorted order so the result is stable
    across file systems.
    """
    found: list[Path] = []
    queue: deque[Path] = deque([root])
    while queue:
        directory = queue.popleft()
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                queue.append(entry)
            elif TEST_FILE_PATTERN.match(entry.name):
                found.append(entry)
    return found


def read_test_id(path: Path, suffix: str = ".class") -> str | None:
    """Return the qualified test id of a test class file.

    Returns:
        The id, or None if the file is a suite rather than a test class.
    """
    package = ""
    text = path.read_text(encoding="utf-8", errors="replace")
    for line in text.splitlines():
        if any(marker in line for marker in SUITE_MARKERS):
            return None
        if not package:
            match = _PACKAGE_RE.match(line)
            if match:
                package = match.group(1)
    name = path.name[: -len(".java")]
    qualified = f"{package}.{name}" if package else name
    return f"{qualified}{suffix}"


def build_suite(
    test_ids: list[str], package: str, class_name: str = "AllTests",
) -> SuiteManifest:
    """Build a JUnit 4 suite class listing ``test_ids``."""
    head: list[str] = []
    if package:
        head += [f"package {package};\n", "\n"]
    head += [
        "import org.junit.runner.RunWith;\n",
        "import org.junit.runners.Suite;\n",
        "import org.junit.runners.Suite.SuiteClasses;\n",
        "\n",
        '@SuppressWarnings("deprecation")\n',
        "@RunWith(Suite.class)\n",
        "@SuiteClasses({\n",
    ]
    tail = [
        "})\n",
        "\n",
        f"public class {class_name} {{\n",
        "}\n",
    ]
    return SuiteManifest(head=head, test_ids=list(test_ids), tail=tail, indent="\t")


def generate_manifest(
    root: Path, package: str, output: Path, suffix: str = ".class",
) -> list[str]:
    """Scan ``root`` for test classes and write a suite manifest to ``output``.

    The suite class is named after the output file. The output file
    itself is never listed.

    Args:
        root: Directory holding the test sources.
        package: Java package of the generated suite class ("" for none).
        output: Manifest file to write.
        suffix: Suffix appended to each qualified class name.

    Returns:
        The listed test ids, in walk order.

    Raises:
        FileNotFoundError: If ``root`` is not a directory.
    """
    if not root.is_dir():
        raise FileNotFoundError(f"Test source directory not found: {root}")

    output_resolved = output.resolve()
    test_ids: list[str] = []
    for path in find_test_files(root):
        if path.resolve() == output_resolved:
            continue
        test_id = read_test_id(path, suffix)
        if test_id is not None and test_id not in test_ids:
            test_ids.append(test_id)

    manifest = build_suite(test_ids, package, output.stem)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8", newline="") as f:
        f.write(manifest.render())
    return test_ids
