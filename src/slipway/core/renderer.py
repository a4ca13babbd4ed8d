"""Page rendering on top of a render engine.

Wraps the engine with the HTTP-facing details: MIME type, charset and
content length of the rendered body.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from slipway.core.engine import NO_OUTPUT, RenderEngine
from slipway.core.mime import charset_for, mime_type


@dataclass(frozen=True)
class RenderResult:
    """Result of rendering a source file."""

    body: bytes
    output_kind: str
    mime_type: str
    charset: str | None
    source_path: Path

    @property
    def content_type(self) -> str:
        """Content-Type header value."""
        if self.charset:
            return f"{self.mime_type}; charset={self.charset}"
        return self.mime_type

    @property
    def content_length(self) -> int:
        """Byte length of the body as sent."""
        return len(self.body)


class PageRenderer:
    """Renders resolved source files through an engine.

    Holds no per-render state, so concurrent renders of different (or the
    same) files are independent.
    """

    def __init__(self, engine: RenderEngine, globals: Mapping[str, Any]) -> None:
        """Initialize renderer.

        Args:
            engine: Transformation engine
            globals: Project globals passed to every render
        """
        self._engine = engine
        self._globals = globals

    @property
    def engine(self) -> RenderEngine:
        """Underlying transformation engine."""
        return self._engine

    async def render(self, source_path: Path) -> RenderResult | None:
        """Render a source file.

        Args:
            source_path: Resolved absolute source path

        Returns:
            RenderResult, or None when the source produces no output

        Raises:
            RenderError: If the engine fails to transform the source
        """
        rendered = await self._engine.render(source_path, self._globals)
        if rendered is NO_OUTPUT:
            return None

        mime = mime_type(rendered.output_kind)
        return RenderResult(
            body=rendered.body,
            output_kind=rendered.output_kind,
            mime_type=mime,
            charset=charset_for(mime),
            source_path=source_path,
        )
