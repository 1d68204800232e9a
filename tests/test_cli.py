"""Tests for the lobster-rust command line."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from lobster_rust import __version__
from lobster_rust.config import TracerSettings, reset_settings
from lobster_rust.main import cli


def write_files(root: Path, files: dict):
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def project(monkeypatch, tmp_path):
    """A small binary crate in <tmp>/src with isolated settings."""
    for name in TracerSettings.model_fields:
        monkeypatch.delenv(f"LOBSTER_RUST_{name.upper()}", raising=False)
    monkeypatch.chdir(tmp_path)
    reset_settings()

    write_files(tmp_path / "src", {
        "main.rs": (
            "mod sub;\n"
            "\n"
            "fn main() {\n"
            "    // lobster-trace: App.main\n"
            "}\n"
        ),
        "sub.rs": (
            "pub struct Config {}\n"
            "\n"
            "impl Config {\n"
            "    pub fn load() {}\n"
            "}\n"
        ),
    })
    yield tmp_path
    reset_settings()


class TestCli:
    """Tests for the cli command."""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"lobster-rust {__version__}" in result.output

    def test_default_arguments(self, project):
        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 0, result.output
        document = json.loads((project / "rust.lobster").read_text(encoding="utf-8"))
        assert [item["name"] for item in document["data"]] == [
            "main.main",
            "sub.Config",
            "sub.Config.load",
        ]
        assert document["data"][0]["refs"] == ["req App.main"]
        assert "Wrote 3 items" in result.output

    def test_explicit_paths(self, project):
        out = project / "out" / "trace.lobster"
        out.parent.mkdir()

        result = CliRunner().invoke(cli, [str(project / "src"), str(out)])

        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text(encoding="utf-8"))["schema"] == "lobster-imp-trace"

    def test_include_containers(self, project):
        result = CliRunner().invoke(cli, ["--include-containers"])

        assert result.exit_code == 0, result.output
        document = json.loads((project / "rust.lobster").read_text(encoding="utf-8"))
        kinds = [item["kind"] for item in document["data"]]
        assert kinds.count("Module") == 2
        assert "Impl" in kinds

    def test_library_crate(self, project):
        write_files(project / "lib", {"lib.rs": "pub fn api() {}\n"})

        result = CliRunner().invoke(cli, ["--lib", "lib", "lib.lobster"])

        assert result.exit_code == 0, result.output
        document = json.loads((project / "lib.lobster").read_text(encoding="utf-8"))
        assert [item["name"] for item in document["data"]] == ["lib.api"]

    def test_parallel_jobs(self, project):
        result = CliRunner().invoke(cli, ["--jobs", "2"])
        assert result.exit_code == 0, result.output

    def test_invalid_jobs(self, project):
        result = CliRunner().invoke(cli, ["--jobs", "0"])
        assert result.exit_code == 2

    def test_missing_entry_file(self, project):
        result = CliRunner().invoke(cli, ["--lib"])

        assert result.exit_code == 1
        assert "lib.rs" in result.output
        assert not (project / "rust.lobster").exists()

    def test_unresolved_module_warning(self, project):
        write_files(project / "src", {"main.rs": "mod missing;\nfn main() {}\n"})

        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 0, result.output
        assert "unresolved module 'missing'" in result.output

    def test_unsupported_flags_are_reported(self, project):
        result = CliRunner().invoke(cli, ["--activity", "--only-tagged-functions"])

        assert result.exit_code == 0, result.output
        assert "--activity" in result.output
        assert "--only-tagged-functions" in result.output

    def test_github_locations(self, project):
        result = CliRunner().invoke(cli, [
            "--github-root", "https://github.com/org/crate",
            "--commit", "abc123",
            "--repo-root", str(project),
        ])

        assert result.exit_code == 0, result.output
        document = json.loads((project / "rust.lobster").read_text(encoding="utf-8"))
        location = document["data"][0]["location"]
        assert location == {
            "kind": "github",
            "gh_root": "https://github.com/org/crate",
            "commit": "abc123",
            "file": "src/main.rs",
            "line": 3,
        }

    def test_github_root_requires_commit(self, project):
        result = CliRunner().invoke(cli, ["--github-root", "https://github.com/org/crate"])
        assert result.exit_code == 2

    def test_strict_syntax_from_environment(self, project, monkeypatch):
        write_files(project / "src", {"main.rs": "fn broken( {\n"})
        monkeypatch.setenv("LOBSTER_RUST_STRICT_SYNTAX", "1")
        reset_settings()

        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 1
        assert "could not be traced" in result.output
