"""Render engine: turns source files into output bytes.

The pipelines only talk to the RenderEngine protocol, so the engine can be
swapped. TemplateEngine is the default, handling Markdown via mistune
and Jinja templates via jinja2.

Source to output mapping (total, by extension):

    about.md, about.markdown    -> about.html
    page.jinja, page.j2         -> page.html
    style.css.jinja             -> style.css
    anything else               -> unchanged (copied, never rendered)
"""

import asyncio
import logging
import posixpath
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Final, Protocol

import jinja2
import mistune
from mistune.toc import add_toc_hook, render_toc_ul

from slipway.errors import RenderError

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = (".md", ".markdown")
TEMPLATE_EXTENSIONS = (".jinja", ".j2")
LAYOUT_NAME = "_layout.jinja"


class _NoOutput(Enum):
    NO_OUTPUT = "no-output"


# Valid source that intentionally produces nothing (partials, empty renders)
NO_OUTPUT: Final = _NoOutput.NO_OUTPUT


@dataclass(frozen=True)
class Rendered:
    """Rendered output of a single source file."""

    output_kind: str
    body: bytes


class RenderEngine(Protocol):
    """Interface between the pipelines and a transformation engine."""

    # Renderable extensions in resolution precedence order
    source_extensions: tuple[str, ...]

    def is_renderable(self, path: str | Path) -> bool: ...

    def should_ignore(self, path: str | Path) -> bool: ...

    def output_kind(self, path: str | Path) -> str: ...

    def output_path(self, path: str) -> str: ...

    async def render(
        self,
        source_path: Path,
        globals: Mapping[str, Any],
    ) -> Rendered | _NoOutput: ...


class TemplateEngine:
    """Markdown and Jinja engine rooted at a project's public directory.

    Templates are resolved relative to the public directory, so sources can
    ``{% extends "_base.jinja" %}`` or ``{% include "_nav.jinja" %}``.
    Markdown is wrapped in the nearest ``_layout.jinja`` found in its own
    directory or any parent up to the public root.
    """

    source_extensions = TEMPLATE_EXTENSIONS + MARKDOWN_EXTENSIONS

    def __init__(
        self,
        public_path: Path,
        *,
        markdown_plugins: tuple[str, ...] = ("table", "strikethrough", "footnotes", "def_list"),
    ) -> None:
        """Initialize engine.

        Args:
            public_path: Root directory of the sources
            markdown_plugins: mistune plugins to enable
        """
        self._public_path = public_path
        self._markdown_plugins = markdown_plugins
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(public_path),
            keep_trailing_newline=True,
            auto_reload=True,
        )

    @property
    def public_path(self) -> Path:
        """Root directory of the sources."""
        return self._public_path

    def is_renderable(self, path: str | Path) -> bool:
        """Whether the file needs transformation before it is served."""
        return _extension(path) in self.source_extensions

    def should_ignore(self, path: str | Path) -> bool:
        """Whether a path relative to the public directory is private.

        Any path segment starting with ``_`` (partials, layouts, build
        output) or ``.`` (editor and system files) hides the file from
        serving, compiling and copying.
        """
        parts = PurePosixPath(Path(path).as_posix()).parts
        return any(part.startswith(("_", ".")) for part in parts)

    def output_kind(self, path: str | Path) -> str:
        """Logical output type of a file, as an extension without dot."""
        name = PurePosixPath(Path(path).as_posix()).name
        stem, ext = posixpath.splitext(name)
        ext = ext.lower()
        if ext in MARKDOWN_EXTENSIONS:
            return "html"
        if ext in TEMPLATE_EXTENSIONS:
            inner = posixpath.splitext(stem)[1]
            return inner[1:].lower() if inner else "html"
        return ext[1:]

    def output_path(self, path: str) -> str:
        """Map a relative source path to its relative output path."""
        stem, ext = posixpath.splitext(path)
        ext = ext.lower()
        if ext in MARKDOWN_EXTENSIONS:
            return f"{stem}.html"
        if ext in TEMPLATE_EXTENSIONS:
            return stem if posixpath.splitext(stem)[1] else f"{stem}.html"
        return path

    async def render(
        self,
        source_path: Path,
        globals: Mapping[str, Any],
    ) -> Rendered | _NoOutput:
        """Render a source file.

        Args:
            source_path: Absolute path of a file under the public directory
            globals: Project globals exposed to templates

        Returns:
            Rendered output, or NO_OUTPUT for partials, non-renderable files
            and sources that render to nothing but whitespace

        Raises:
            RenderError: If the source cannot be transformed
        """
        if not self.is_renderable(source_path) or source_path.name.startswith("_"):
            return NO_OUTPUT

        text = await asyncio.to_thread(self._render_sync, source_path, dict(globals))
        if not text.strip():
            logger.debug(f"{source_path} rendered to empty output")
            return NO_OUTPUT

        return Rendered(
            output_kind=self.output_kind(source_path),
            body=text.encode("utf-8"),
        )

    def _render_sync(self, source_path: Path, globals: dict[str, Any]) -> str:
        try:
            relative = source_path.relative_to(self._public_path).as_posix()
        except ValueError as e:
            raise RenderError("source is outside the public directory", source_path) from e

        context = {
            **globals,
            "current": {"path": "/" + self.output_path(relative), "source": relative},
        }

        try:
            if _extension(relative) in MARKDOWN_EXTENSIONS:
                return self._render_markdown(source_path, relative, context)
            return self._env.get_template(relative).render(context)
        except jinja2.TemplateSyntaxError as e:
            where = e.name or relative
            raise RenderError(f"{e.message} ({where}, line {e.lineno})", source_path) from e
        except jinja2.TemplateError as e:
            raise RenderError(str(e), source_path) from e
        except UnicodeDecodeError as e:
            raise RenderError(f"source is not valid UTF-8: {e}", source_path) from e
        except OSError:
            raise
        except Exception as e:
            raise RenderError(f"{type(e).__name__}: {e}", source_path) from e

    def _render_markdown(
        self,
        source_path: Path,
        relative: str,
        context: dict[str, Any],
    ) -> str:
        """Convert markdown and wrap it in the nearest layout, if any."""
        text = source_path.read_text(encoding="utf-8")
        converter = mistune.create_markdown(escape=False, plugins=list(self._markdown_plugins))
        add_toc_hook(converter, min_level=1, max_level=3)
        html, state = converter.parse(text)

        layout = self._find_layout(relative)
        if layout is None:
            return html

        toc = render_toc_ul(state.env.get("toc_items", []))
        return self._env.get_template(layout).render({**context, "content": html, "toc": toc})

    def _find_layout(self, relative: str) -> str | None:
        """Find the closest layout template for a source.

        Args:
            relative: Source path relative to the public directory

        Returns:
            Template name of the layout, or None
        """
        parent = PurePosixPath(relative).parent
        while True:
            candidate = (parent / LAYOUT_NAME).as_posix()
            if (self._public_path / candidate).is_file():
                return candidate
            if parent == PurePosixPath("."):
                return None
            parent = parent.parent


def _extension(path: str | Path) -> str:
    return posixpath.splitext(str(path))[1].lower()
