"""Tests for CLI commands."""

from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from slipway import __version__
from slipway.cli import cli
from slipway.config import Project, ServerSettings


class TestCompileCommand:
    """Tests for the compile command."""

    def test_compiles_project(self, project_dir: Path, write_files: Any) -> None:
        """Compile a project into the default output directory."""
        write_files(project_dir, {"index.md": "# Home", "robots.txt": "User-agent: *"})

        runner = CliRunner()
        result = runner.invoke(cli, ["compile", str(project_dir)])

        assert result.exit_code == 0
        assert "Compiled successfully!" in result.output
        assert str(project_dir / "_site") in result.output
        assert (project_dir / "_site" / "index.html").exists()
        assert (project_dir / "_site" / "robots.txt").exists()

    def test_compiles_to_given_output(self, project_dir: Path, write_files: Any) -> None:
        """Write output to the directory given on the command line."""
        write_files(project_dir, {"page.jinja": "Page"})

        runner = CliRunner()
        result = runner.invoke(cli, ["compile", str(project_dir), "_public", "-v"])

        assert result.exit_code == 0
        assert (project_dir / "_public" / "page.html").read_text() == "Page"
        assert f'"version": "{__version__}"' in result.output

    def test_fails_on_invalid_output(self, project_dir: Path, write_files: Any) -> None:
        """Refuse to write into a directory without underscore prefix."""
        write_files(project_dir, {"index.md": "Home"})

        runner = CliRunner()
        result = runner.invoke(cli, ["compile", str(project_dir), "build"])

        assert result.exit_code == 1
        assert "Invalid Output Path" in result.output
        assert not (project_dir / "build").exists()

    def test_fails_on_render_error(self, project_dir: Path, write_files: Any) -> None:
        """Report the failing source and exit non-zero."""
        write_files(project_dir, {"broken.jinja": "{% if %}"})

        runner = CliRunner()
        result = runner.invoke(cli, ["compile", str(project_dir)])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "broken.jinja" in result.output

    def test_fails_on_invalid_config(self, project_dir: Path, write_files: Any) -> None:
        """Report configuration errors."""
        write_files(project_dir, {"slipway.toml": "output = 1", "public/index.md": "Home"})

        runner = CliRunner()
        result = runner.invoke(cli, ["compile", str(project_dir)])

        assert result.exit_code == 1
        assert "output must be a non-empty string" in result.output


class TestServeCommand:
    """Tests for the serve command."""

    @pytest.fixture
    def served(self, monkeypatch: pytest.MonkeyPatch) -> list[tuple[Project, ServerSettings]]:
        """Replace run_server, recording its arguments."""
        calls: list[tuple[Project, ServerSettings]] = []

        def fake_run_server(project: Project, settings: ServerSettings) -> None:
            calls.append((project, settings))

        monkeypatch.setattr("slipway.server.run_server", fake_run_server)
        return calls

    def test_serves_with_config_settings(
        self, project_dir: Path, write_files: Any, served: list[tuple[Project, ServerSettings]]
    ) -> None:
        """Use host and port from slipway.toml."""
        write_files(
            project_dir,
            {"slipway.toml": '[server]\nport = 4000\n', "public/index.md": "Home"},
        )

        runner = CliRunner()
        result = runner.invoke(cli, ["serve", str(project_dir)])

        assert result.exit_code == 0
        assert "Listening on http://127.0.0.1:4000" in result.output
        project, settings = served[0]
        assert project.environment == "development"
        assert project.public_path == project_dir / "public"
        assert settings == ServerSettings(host="127.0.0.1", port=4000)

    def test_command_line_overrides_config(
        self, project_dir: Path, write_files: Any, served: list[tuple[Project, ServerSettings]]
    ) -> None:
        """--host and --port win over configuration."""
        write_files(project_dir, {"slipway.toml": '[server]\nport = 4000\n', "public/a.md": "A"})

        runner = CliRunner()
        result = runner.invoke(
            cli, ["serve", str(project_dir), "--host", "0.0.0.0", "-p", "9000"]
        )

        assert result.exit_code == 0
        assert served[0][1] == ServerSettings(host="0.0.0.0", port=9000)

    def test_fails_without_public_dir(
        self, project_dir: Path, write_files: Any, served: list[tuple[Project, ServerSettings]]
    ) -> None:
        """Fail when the configured public directory is missing."""
        write_files(project_dir, {"slipway.toml": ""})

        runner = CliRunner()
        result = runner.invoke(cli, ["serve", str(project_dir)])

        assert result.exit_code == 1
        assert "Public directory not found" in result.output
        assert served == []

    def test_fails_on_missing_project(self, tmp_path: Path) -> None:
        """Fail when the project directory does not exist."""
        runner = CliRunner()
        result = runner.invoke(cli, ["serve", str(tmp_path / "nope")])

        assert result.exit_code != 0
