"""Shared test fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest
from slipway.core.engine import TemplateEngine

WriteFiles = Callable[[Path, dict[str, str | bytes]], None]


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create an empty project directory without configuration.

    Without slipway.toml the project root is also the public directory.
    """
    project = tmp_path / "site"
    project.mkdir()
    return project.resolve()


@pytest.fixture
def write_files() -> WriteFiles:
    """Return a helper writing a mapping of relative paths to contents."""

    def write(root: Path, files: dict[str, str | bytes]) -> None:
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")

    return write


@pytest.fixture
def engine(project_dir: Path) -> TemplateEngine:
    """Template engine rooted at the project directory."""
    return TemplateEngine(project_dir)
