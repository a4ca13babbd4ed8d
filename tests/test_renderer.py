"""Tests for page renderer."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest
from slipway.core.engine import NO_OUTPUT, Rendered, TemplateEngine
from slipway.core.renderer import PageRenderer
from slipway.errors import RenderError


class _RecordingEngine(TemplateEngine):
    """Engine returning canned output and recording the globals it saw."""

    def __init__(self, public_path: Path, result: Any) -> None:
        super().__init__(public_path)
        self.result = result
        self.seen_globals: list[Mapping[str, Any]] = []

    async def render(self, source_path: Path, globals: Mapping[str, Any]) -> Any:
        self.seen_globals.append(globals)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestPageRendererRender:
    """Tests for PageRenderer.render()."""

    @pytest.mark.asyncio
    async def test__markdown__html_with_charset(
        self, project_dir: Path, engine: TemplateEngine, write_files: Any
    ) -> None:
        """Markdown renders as HTML with UTF-8 charset and byte length."""
        write_files(project_dir, {"index.md": "Grüße"})
        renderer = PageRenderer(engine, {})

        result = await renderer.render(project_dir / "index.md")

        assert result is not None
        assert result.mime_type == "text/html"
        assert result.charset == "utf-8"
        assert result.content_type == "text/html; charset=utf-8"
        assert result.body == "<p>Grüße</p>\n".encode()
        assert result.content_length == len("<p>Grüße</p>\n".encode())
        assert result.content_length > len("<p>Grüße</p>\n")
        assert result.source_path == project_dir / "index.md"

    @pytest.mark.asyncio
    async def test__binary_kind__no_charset(self, project_dir: Path) -> None:
        """Binary output kinds carry no charset."""
        engine = _RecordingEngine(project_dir, Rendered(output_kind="png", body=b"\x89PNG"))
        renderer = PageRenderer(engine, {})

        result = await renderer.render(project_dir / "image.png.jinja")

        assert result is not None
        assert result.content_type == "image/png"
        assert result.charset is None

    @pytest.mark.asyncio
    async def test__no_output__returns_none(self, project_dir: Path) -> None:
        """NO_OUTPUT from the engine becomes None."""
        renderer = PageRenderer(_RecordingEngine(project_dir, NO_OUTPUT), {})

        assert await renderer.render(project_dir / "_partial.jinja") is None

    @pytest.mark.asyncio
    async def test__render_error__propagates(self, project_dir: Path) -> None:
        """Engine errors are not turned into None."""
        error = RenderError("boom", project_dir / "page.jinja")
        renderer = PageRenderer(_RecordingEngine(project_dir, error), {})

        with pytest.raises(RenderError, match="boom"):
            await renderer.render(project_dir / "page.jinja")

    @pytest.mark.asyncio
    async def test__globals__passed_to_engine(self, project_dir: Path) -> None:
        """Project globals reach the engine on every render."""
        engine = _RecordingEngine(project_dir, NO_OUTPUT)
        renderer = PageRenderer(engine, {"title": "Docs"})

        await renderer.render(project_dir / "a.md")
        await renderer.render(project_dir / "b.md")

        assert engine.seen_globals == [{"title": "Docs"}, {"title": "Docs"}]
