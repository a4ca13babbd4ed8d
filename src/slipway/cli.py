"""CLI interface for Slipway.

Serve a project with on-the-fly rendering, or compile it to static files.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from slipway import __version__
from slipway.config import Project
from slipway.errors import InvalidOutputPathError, SlipwayError


@click.group()
@click.version_option(__version__, prog_name="slipway")
def cli() -> None:
    """Slipway - serve and compile static sites."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


@cli.command()
@click.argument(
    "project_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
def serve(project_path: Path, host: str | None, port: int | None, verbose: bool) -> None:
    """Serve a project, rendering sources on request."""
    from slipway.server import run_server

    _configure_logging(verbose)
    try:
        project = Project.load(project_path, "development")
    except (ValueError, OSError) as e:
        _fail(str(e))
        return

    settings = project.config.server.with_overrides(host=host, port=port)

    click.echo(f"Serving {project.public_path}")
    click.echo(f"Listening on http://{settings.host}:{settings.port}")

    run_server(project, settings)


@cli.command(name="compile")
@click.argument(
    "project_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.argument("output_path", type=click.Path(path_type=Path), required=False)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
def compile_command(project_path: Path, output_path: Path | None, verbose: bool) -> None:
    """Compile a project to static files.

    OUTPUT_PATH is relative to the project (default: config "output" or _site).
    """
    from slipway.core.compiler import compile_project

    _configure_logging(verbose)
    try:
        result = asyncio.run(compile_project(project_path, output_path))
    except InvalidOutputPathError as e:
        _fail(f"{e.message}\n{json.dumps(e.to_dict(), indent=2)}")
        return
    except (SlipwayError, ValueError, OSError) as e:
        _fail(str(e))
        return

    click.echo(click.style("Compiled successfully!", fg="green", bold=True))
    output = output_path or Path(result["output"])
    click.echo(f"Output: {project_path.resolve() / output}")
    if verbose:
        click.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    cli()
