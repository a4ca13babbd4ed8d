"""Exception types raised by the rendering and compile pipelines.

"Not found" and "no output" are ordinary outcomes and are never raised.
"""

from pathlib import Path


class SlipwayError(Exception):
    """Base class for all Slipway errors."""


class RenderError(SlipwayError):
    """A source file failed to transform into output.

    Raised for template syntax errors, undefined includes, undecodable
    sources and similar engine failures.
    """

    def __init__(self, message: str, source_path: Path) -> None:
        super().__init__(f"{source_path}: {message}")
        self.message = message
        self.source_path = source_path


class InvalidOutputPathError(SlipwayError):
    """Compile output would overlap or endanger the project's own sources."""

    type = "Invalid Output Path"
    message = (
        "Output path cannot be greater than one level up from project path "
        "and must be in a directory starting with `_` (underscore)."
    )

    def __init__(self, project_path: Path, output_path: Path) -> None:
        super().__init__(self.message)
        self.project_path = project_path
        self.output_path = output_path

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type,
            "message": self.message,
            "projectPath": str(self.project_path),
            "outputPath": str(self.output_path),
        }
