"""Tests for tracing whole projects."""

import tempfile
from pathlib import Path

import pytest

from lobster_rust.config import TracerSettings
from lobster_rust.core.errors import ResolutionError
from lobster_rust.core.lobster import LobsterEncoder
from lobster_rust.core.models import FileReference, NodeKind
from lobster_rust.tracing.project_tracer import ProjectTracer


def write_files(root: Path, files: dict):
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


PROJECT = {
    "main.rs": (
        "mod shapes;\n"
        "mod util;\n"
        "\n"
        "fn main() {\n"
        "    // lobster-trace: App.main\n"
        "}\n"
    ),
    "shapes/mod.rs": (
        "pub mod circle;\n"
        "\n"
        "pub trait Shape {\n"
        "    fn area(&self) -> f64;\n"
        "}\n"
    ),
    "shapes/circle.rs": (
        "pub struct Circle { r: f64 }\n"
        "\n"
        "impl super::Shape for Circle {\n"
        "    fn area(&self) -> f64 {\n"
        "        // lobster-trace: Shapes.circle_area\n"
        "        3.14 * self.r * self.r\n"
        "    }\n"
        "}\n"
    ),
    "util.rs": (
        "pub fn clamp() {\n"
        "    // lobster-exclude: trivial helper\n"
        "}\n"
    ),
}


class TestProjectTracer:
    """Tests for ProjectTracer."""

    def test_single_tagged_function(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {"main.rs": "fn alpha() {\n    // lobster-trace: req.alpha\n}\n"})

            result = ProjectTracer(root, settings=TracerSettings()).trace()

            assert result.ok
            assert len(result.modules) == 1
            assert len(result.roots) == 1
            alpha = result.roots[0].children[0]
            assert alpha.kind is NodeKind.FUNCTION
            assert alpha.name == "main.alpha"
            assert alpha.references == ["req.alpha"]
            assert alpha.children == []

    def test_roots_in_discovery_order(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, PROJECT)

            result = ProjectTracer(root, settings=TracerSettings()).trace()

            assert [node.name for node in result.roots] == ["main", "shapes", "shapes.circle", "util"]
            assert result.warnings == []

    def test_qualified_names_across_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, PROJECT)

            result = ProjectTracer(root, settings=TracerSettings()).trace()
            names = [node.name for node in result.walk()]

            assert "main.main" in names
            assert "shapes.Shape" in names
            assert "shapes.circle.Circle" in names
            assert "util.clamp" in names

            area = [node for node in result.walk() if node.name == "shapes.circle.Circle.area"][0]
            assert area.references == ["Shapes.circle_area"]
            assert area.location == FileReference(str(root / "shapes" / "circle.rs"), 4, 5)

            clamp = [node for node in result.walk() if node.name == "util.clamp"][0]
            assert clamp.justifications == ["trivial helper"]

    def test_parallel_matches_sequential(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, PROJECT)

            tracer = ProjectTracer(root, settings=TracerSettings())
            sequential = LobsterEncoder(include_containers=True).dumps(tracer.trace(jobs=1).roots)
            parallel = LobsterEncoder(include_containers=True).dumps(tracer.trace(jobs=4).roots)

            assert parallel == sequential

    def test_jobs_from_settings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, PROJECT)

            result = ProjectTracer(root, settings=TracerSettings(jobs=3)).trace()

            assert [node.name for node in result.roots] == ["main", "shapes", "shapes.circle", "util"]

    def test_unresolved_declarations_are_warnings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {"main.rs": "mod missing;\nfn main() {}\n"})

            result = ProjectTracer(root, settings=TracerSettings()).trace()

            assert result.ok
            assert [u.name for u in result.unresolved] == ["missing"]
            assert len(result.warnings) == 1
            assert "unresolved module 'missing'" in result.warnings[0]

    def test_custom_markers_from_settings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {"main.rs": "fn alpha() {\n    // implements: req.alpha\n}\n"})

            settings = TracerSettings(trace_marker="implements")
            result = ProjectTracer(root, settings=settings).trace()

            assert result.roots[0].children[0].references == ["req.alpha"]

    def test_strict_syntax_fails_broken_module(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {
                "main.rs": "mod broken;\nfn main() {}\n",
                "broken.rs": "fn broken( {\n",
            })

            result = ProjectTracer(root, settings=TracerSettings(strict_syntax=True)).trace()

            assert result.ok
            assert [node.name for node in result.roots] == ["main"]
            assert [failure.path for failure in result.failures] == [root / "broken.rs"]

    def test_strict_syntax_fails_broken_entry(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {"main.rs": "fn broken( {\n"})

            result = ProjectTracer(root, settings=TracerSettings(strict_syntax=True)).trace()

            assert not result.ok
            assert result.roots == []

    def test_lenient_syntax_traces_broken_module(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {"main.rs": "fn good() {}\nfn broken( {\n"})

            result = ProjectTracer(root, settings=TracerSettings()).trace()

            assert result.ok
            assert result.roots[0].find("main.good") is not None

    def test_missing_entry_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ResolutionError):
                ProjectTracer(tmpdir, settings=TracerSettings()).trace()
