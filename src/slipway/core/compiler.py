"""Static site compilation.

Renders every renderable source of a project into an output directory and
copies everything else verbatim. The output is byte-identical to what the
development server returns for the same sources.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from slipway import __version__
from slipway.config import ConfigLoader, Project
from slipway.core.engine import RenderEngine, TemplateEngine
from slipway.core.fs import copy_file, list_files, prime, write_file
from slipway.core.paths import build_priority_list
from slipway.core.renderer import PageRenderer
from slipway.errors import InvalidOutputPathError

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 32


def will_allow(project_path: Path, output_path: Path) -> bool:
    """Check whether compiling into output_path is safe for the project.

    The output directory must start with an underscore, must not be the
    project or one of its ancestors, and may sit at most one level above
    the project root.

    Args:
        project_path: Absolute project root
        output_path: Absolute output directory

    Returns:
        True if the output path is allowed
    """
    if output_path == project_path or output_path in project_path.parents:
        return False
    if not output_path.name.startswith("_"):
        return False

    relative = Path(os.path.relpath(output_path, project_path))
    levels_up = sum(1 for part in relative.parts if part == "..")
    return levels_up <= 1


def select_sources(files: list[str], engine: RenderEngine) -> list[str]:
    """Pick one source per output path.

    Several sources may compile to the same file (``about.html``,
    ``about.jinja`` and ``about.md`` all produce ``about.html``). The one
    the server would answer ``/about.html`` with wins, following the
    priority list of that output path; the others are skipped.

    Args:
        files: Relative source paths
        engine: Render engine providing the output path mapping

    Returns:
        Selected sources, in input order
    """
    claims: dict[str, list[str]] = {}
    for relative in files:
        claims.setdefault(engine.output_path(relative), []).append(relative)

    winners: set[str] = set()
    for destination, sources in claims.items():
        if len(sources) > 1:
            priority = build_priority_list("/" + destination, engine.source_extensions)
            rank = {candidate: i for i, candidate in enumerate(priority)}
            sources = sorted(sources, key=lambda s: rank.get(s, len(rank)))
            skipped = ", ".join(sources[1:])
            logger.warning(f"{destination}: using {sources[0]}, skipping {skipped}")
        winners.add(sources[0])

    return [f for f in files if f in winners]


async def compile_project(
    project_path: Path,
    output_path: Path | str | None = None,
    *,
    loader: ConfigLoader | None = None,
    engine: RenderEngine | None = None,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> dict[str, Any]:
    """Compile a project into a static output tree.

    Args:
        project_path: Project root directory
        output_path: Output directory, relative to the project root
                     (default: the configured output, "_site")
        loader: Configuration source (default: slipway.toml)
        engine: Render engine (default: TemplateEngine over the public dir)
        concurrency: Maximum renders or copies in flight

    Returns:
        Project configuration without globals, plus the tool version

    Raises:
        InvalidOutputPathError: If the output path could damage the project
        RenderError: If any source fails to render; output already written
                     is left in place
        OSError: If writing or copying fails
    """
    project = Project.load(project_path, "production", loader)
    output = (project.path / (output_path or project.config.output)).resolve()

    if not will_allow(project.path, output):
        raise InvalidOutputPathError(project.path, output)

    engine = engine or TemplateEngine(project.public_path)
    renderer = PageRenderer(engine, project.globals)

    logger.info(f"Compiling {project.public_path} to {output}")
    await asyncio.to_thread(prime, output, ignore=project.path)

    files = await asyncio.to_thread(list_files, project.public_path, engine.should_ignore)
    selected = select_sources(files, engine)
    renderable = [f for f in selected if engine.is_renderable(f)]
    copyable = [f for f in selected if not engine.is_renderable(f)]

    limit = asyncio.Semaphore(concurrency)

    async def compile_file(relative: str) -> None:
        result = await renderer.render(project.public_path / relative)
        if result is None:
            logger.debug(f"{relative}: no output")
            return
        destination = output / engine.output_path(relative)
        await write_file(destination, result.body)
        logger.debug(f"{relative} -> {destination}")

    async def copy(relative: str) -> None:
        await copy_file(project.public_path / relative, output / relative)

    await _run_all(compile_file, renderable, limit)
    await _run_all(copy, copyable, limit)

    logger.info(f"Compiled {len(renderable)} sources and copied {len(copyable)} files")

    result = project.config.to_dict()
    result["version"] = __version__
    return result


async def _run_all(
    action: Callable[[str], Awaitable[None]],
    files: list[str],
    limit: asyncio.Semaphore,
) -> None:
    """Run action over all files concurrently, raising the first failure."""

    async def bounded(relative: str) -> None:
        async with limit:
            await action(relative)

    await asyncio.gather(*(bounded(f) for f in files))
