"""Test-suite manifest reading and rewriting.

The manifest is a source file (typically a JUnit suite class) that lists
test ids between a start marker line such as ``@SuiteClasses({`` and an
end marker line ``})``, one id per line with trailing commas::

    @RunWith(Suite.class)
    @SuiteClasses({
        com.acme.FooTest.class,
        com.acme.BarTest.class
    })
    public class AllTests {}

Only the listed ids are rewritten; every other line is echoed back
byte-for-byte.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


DEFAULT_START_MARKERS = ("@SuiteClasses({", "@Suite.SuiteClasses({")
DEFAULT_END_MARKER = "})"


class ManifestError(ValueError):
    """Raised when a manifest cannot be read or has no test section."""


@dataclass
class SuiteManifest:
    """A parsed manifest split around its test section.

    ``head`` holds every line up to and including the start marker,
    ``tail`` every line from the end marker on. Lines keep their original
    line endings.
    """

    head: list[str]
    test_ids: list[str]
    tail: list[str]
    indent: str = ""
    newline: str = "\n"

    @classmethod
    def parse(
        cls,
        text: str,
        start_markers: tuple[str, ...] | list[str] = DEFAULT_START_MARKERS,
        end_marker: str = DEFAULT_END_MARKER,
    ) -> SuiteManifest:
        """Split manifest text into head, test ids and tail.

        Args:
            text: Full manifest contents.
            start_markers: Accepted start marker lines (compared stripped).
            end_marker: End marker line (compared stripped).

        Returns:
            The parsed manifest.

        Raises:
            ManifestError: If the start or end marker is missing.
        """
        lines = text.splitlines(keepends=True)
        markers = {m.strip() for m in start_markers}

        start = None
        for i, line in enumerate(lines):
            if line.strip() in markers:
                start = i
                break
        if start is None:
            raise ManifestError(
                "Manifest has no test section start marker "
                f"(expected one of: {', '.join(sorted(markers))})"
            )

        end = None
        for i in range(start + 1, len(lines)):
            if lines[i].strip() == end_marker.strip():
                end = i
                break
        if end is None:
            raise ManifestError(
                f"Manifest test section is not closed by '{end_marker}'"
            )

        section = lines[start + 1:end]
        test_ids: list[str] = []
        indent = ""
        for line in section:
            stripped = line.strip()
            if not stripped or stripped.startswith("//"):
                continue
            if not test_ids:
                indent = line[: len(line) - len(line.lstrip())]
            test_id = stripped.rstrip(",").strip()
            if test_id:
                test_ids.append(test_id)

        return cls(
            head=lines[: start + 1],
            test_ids=test_ids,
            tail=lines[end:],
            indent=indent,
            newline=_detect_newline(lines[start]),
        )

    def render(self, test_ids: list[str] | None = None) -> str:
        """Render the manifest with the given ids in the test section.

        Args:
            test_ids: Ordered ids to write; defaults to the parsed ids.

        Returns:
            Full manifest text.
        """
        if test_ids is None:
            test_ids = self.test_ids
        body = [
            f"{self.indent}{test_id}{',' if i < len(test_ids) - 1 else ''}"
            f"{self.newline}"
            for i, test_id in enumerate(test_ids)
        ]
        return "".join(self.head) + "".join(body) + "".join(self.tail)


def _detect_newline(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    return "\n"


def load_manifest(
    path: str | Path,
    start_markers: tuple[str, ...] | list[str] = DEFAULT_START_MARKERS,
    end_marker: str = DEFAULT_END_MARKER,
) -> SuiteManifest:
    """Read and parse a manifest file.

    Raises:
        ManifestError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
    except FileNotFoundError:
        raise ManifestError(f"Manifest file not found: {path}")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}")
    return SuiteManifest.parse(text, start_markers, end_marker)


def write_manifest(
    manifest: SuiteManifest, path: str | Path, test_ids: list[str],
) -> None:
    """Write the manifest with ``test_ids`` as its test section."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the original line endings untouched
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(manifest.render(test_ids))
