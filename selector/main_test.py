"""Tests for the selector command-line entry point."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from selector.history.builds import BuildOutcome, DirectoryBuildHistory
from selector.main import (
    _collect_changed_files,
    _resolve_build_number,
    main,
    parse_args,
)
from selector.registry.manifest import load_manifest


SUITE = (
    "@RunWith(Suite.class)\n"
    "@Suite.SuiteClasses({\n"
    "    com.acme.BarTest.class,\n"
    "    com.acme.BazTest.class,\n"
    "    com.acme.FooTest.class\n"
    "})\n"
    "public class AllTests {}\n"
)


class Project:
    """Temporary project with a manifest, config file and history."""

    def __init__(self, root: Path, **config) -> None:
        self.root = root
        self.manifest = root / "AllTests.java"
        self.manifest.write_text(SUITE)
        self.output = root / "out" / "AllTests.java"
        self.state = root / ".tests" / "priority_state.txt"
        self.history = DirectoryBuildHistory(root / ".tests" / "builds")
        self.config = root / ".selector_config"
        data = {
            "state_file": str(self.state),
            "history_dir": str(self.history.directory),
            "reference_graph": str(root / ".tests" / "reference_graph.json"),
        }
        data.update(config)
        self.config.write_text(json.dumps(data))

    def argv(self, *extra: str) -> list[str]:
        return [
            "--manifest", str(self.manifest),
            "--config-file", str(self.config),
            *extra,
        ]

    def write_graph(self, references: dict[str, list[str]]) -> None:
        path = self.root / ".tests" / "reference_graph.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"references": references}))


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = parse_args(["--manifest", "AllTests.java"])
        assert args.manifest == Path("AllTests.java")
        assert args.build_number is None
        assert args.config_file == Path(".selector_config")
        assert args.dependency_analysis is None
        assert args.dry_run is False

    def test_dependency_flags(self):
        assert parse_args(["--manifest", "m", "--dependency-analysis"]).dependency_analysis is True
        assert parse_args(["--manifest", "m", "--no-dependency-analysis"]).dependency_analysis is False

    def test_manifest_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestHelpers:
    """Tests for build-number and changed-file resolution."""

    def test_build_number_flag_wins(self):
        with patch.dict(os.environ, {"BUILD_NUMBER": "7"}):
            assert _resolve_build_number(3) == 3

    def test_build_number_from_env(self):
        with patch.dict(os.environ, {"BUILD_NUMBER": "7"}):
            assert _resolve_build_number(None) == 7

    def test_build_number_invalid_env(self):
        with patch.dict(os.environ, {"BUILD_NUMBER": "seven"}):
            assert _resolve_build_number(None) is None

    def test_changed_files_flag(self):
        args = parse_args(["--manifest", "m", "--changed-files", "a.java,b.java"])
        assert _collect_changed_files(args) == ["a.java", "b.java"]

    def test_diff_base_failure(self, capsys):
        args = parse_args(["--manifest", "m", "--diff-base", "main"])
        with patch(
            "selector.main.get_changed_files",
            side_effect=RuntimeError("git diff failed: bad ref"),
        ):
            assert _collect_changed_files(args) is None
        assert "bad ref" in capsys.readouterr().err

    def test_no_change_source(self):
        assert _collect_changed_files(parse_args(["--manifest", "m"])) is None


class TestMain:
    """End-to-end runs of main()."""

    def test_reorders_manifest(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir), priority_window=None)
            project.history.record(BuildOutcome(1, "unstable", {
                "com.acme.BarTest.class": 0,
                "com.acme.BazTest.class": 0,
                "com.acme.FooTest.class": 1,
            }))
            rc = main(project.argv("--build-number", "2"))
            assert rc == 0
            assert load_manifest(project.manifest).test_ids == [
                "com.acme.FooTest.class",
                "com.acme.BarTest.class",
                "com.acme.BazTest.class",
            ]
            assert "com.acme.FooTest.class:2" in project.state.read_text()
            out = capsys.readouterr().out
            assert "3 of 3 tests selected, 1 high priority" in out
            assert "[HIGH] com.acme.FooTest.class (recent_failure)" in out

    def test_build_number_required(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir))
            with patch.dict(os.environ, {}, clear=True):
                assert main(project.argv()) == 1
            assert "--build-number is required" in capsys.readouterr().err

    def test_invalid_config(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir), failure_window=-2)
            assert main(project.argv("--build-number", "1")) == 1
            assert "invalid configuration" in capsys.readouterr().err

    def test_missing_manifest(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir))
            project.manifest.unlink()
            assert main(project.argv("--build-number", "1")) == 1
            assert "not found" in capsys.readouterr().err

    def test_dry_run(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir))
            assert main(project.argv("--build-number", "1", "--dry-run")) == 0
            assert project.manifest.read_text() == SUITE
            assert not project.state.exists()

    def test_yaml_report(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir))
            report = Path(tmpdir) / "report.yaml"
            with patch("selector.main._resolve_commit_sha", return_value="abc123"):
                rc = main(project.argv("--build-number", "4", "--report", str(report)))
            assert rc == 0
            data = yaml.safe_load(report.read_text())["report"]
            assert data["commit"] == "abc123"
            assert data["build_number"] == 4
            assert data["summary"]["selected"] == 3

    def test_dependency_analysis_with_graph(self):
        """Only tests reachable from the change are written to the output."""
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir))
            project.write_graph({"Bar": ["Foo"], "BarTest": ["Bar"], "BazTest": ["Baz"]})
            rc = main(project.argv(
                "--build-number", "3",
                "--dependency-analysis",
                "--changed-files", "src/com/acme/Foo.java",
                "--output-manifest", str(project.output),
            ))
            assert rc == 0
            assert load_manifest(project.output).test_ids == ["com.acme.BarTest.class"]
            assert project.manifest.read_text() == SUITE

    def test_dependency_analysis_without_graph(self, capsys):
        """A missing graph falls back to all tests with a warning."""
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir), use_dependency_analysis=True)
            rc = main(project.argv(
                "--build-number", "3",
                "--changed-files", "Foo.java",
                "--output-manifest", str(project.output),
            ))
            assert rc == 0
            assert len(load_manifest(project.output).test_ids) == 3
            captured = capsys.readouterr()
            assert "Warning" in captured.err
            assert "using all tests (no dependency resolver available)" in captured.out

    def test_dependency_analysis_refuses_in_place(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir), use_dependency_analysis=True)
            project.write_graph({"ATest": ["A"]})
            rc = main(project.argv("--build-number", "1", "--changed-files", "A.java"))
            assert rc == 1
            assert "Error during selection" in capsys.readouterr().err
            assert project.manifest.read_text() == SUITE
            assert not project.state.exists()

    def test_output_manifest_from_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "out" / "AllTests.java"
            project = Project(
                Path(tmpdir), use_dependency_analysis=True, output_manifest=str(out),
            )
            project.write_graph({"BazTest": ["Baz"]})
            rc = main(project.argv("--build-number", "2", "--changed-files", "Baz.java"))
            assert rc == 0
            assert load_manifest(out).test_ids == ["com.acme.BazTest.class"]
            assert project.manifest.read_text() == SUITE

    def test_filtered_builds_keep_every_test(self):
        """Repeated filtered builds never drop tests from the manifest or state."""
        ids = ["com.acme.ATest.class", "com.acme.BTest.class", "com.acme.CTest.class"]
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir), priority_window=2)
            project.manifest.write_text(SUITE.replace(
                "com.acme.BarTest", "com.acme.ATest",
            ).replace(
                "com.acme.BazTest", "com.acme.BTest",
            ).replace(
                "com.acme.FooTest", "com.acme.CTest",
            ))
            project.write_graph({"ATest": ["A"], "BTest": ["B"], "CTest": ["C"]})
            for build in range(1, 8):
                rc = main(project.argv(
                    "--build-number", str(build),
                    "--dependency-analysis",
                    "--changed-files", "src/A.java",
                    "--output-manifest", str(project.output),
                ))
                assert rc == 0
                assert load_manifest(project.manifest).test_ids == ids
                state = project.state.read_text()
                for test_id in ids:
                    assert f"{test_id}:" in state
                selected = load_manifest(project.output).test_ids
                assert "com.acme.ATest.class" in selected
                project.history.record(
                    BuildOutcome(build, "success", {t: 0 for t in selected})
                )

    def test_no_dependency_analysis_overrides_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            project = Project(Path(tmpdir), use_dependency_analysis=True)
            project.write_graph({"BarTest": ["Foo"]})
            rc = main(project.argv(
                "--build-number", "3",
                "--no-dependency-analysis",
                "--changed-files", "Foo.java",
            ))
            assert rc == 0
            assert len(load_manifest(project.manifest).test_ids) == 3
