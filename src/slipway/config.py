"""Configuration management for Slipway.

A project may carry a ``slipway.toml`` at its root. When it does, sources live
in the ``public/`` subdirectory; otherwise the project root itself is the
public tree and defaults apply.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Protocol

CONFIG_FILENAME = "slipway.toml"
DEFAULT_PUBLIC_DIR = "public"
DEFAULT_OUTPUT = "_site"


@dataclass(frozen=True)
class ServerSettings:
    """Development server settings."""

    host: str = "127.0.0.1"
    port: int = 8080

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
    ) -> "ServerSettings":
        """Create new settings with CLI overrides applied.

        Only non-None values override the existing settings.

        Args:
            host: Override host
            port: Override port

        Returns:
            New ServerSettings instance
        """
        return replace(
            self,
            host=host if host is not None else self.host,
            port=port if port is not None else self.port,
        )


@dataclass(frozen=True)
class ProjectConfig:
    """Per-project settings, immutable once loaded."""

    globals: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    output: str = DEFAULT_OUTPUT
    public_dir: str | None = None
    server: ServerSettings = field(default_factory=ServerSettings)
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    config_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return configuration keys, leaving out the render globals."""
        data: dict[str, Any] = dict(self.extra)
        data["output"] = self.output
        if self.public_dir is not None:
            data["public_dir"] = self.public_dir
        data["server"] = {"host": self.server.host, "port": self.server.port}
        return data


class ConfigLoader(Protocol):
    """Produces the configuration of a project directory."""

    def load(self, project_path: Path) -> ProjectConfig: ...


class TomlConfigLoader:
    """Loads ``slipway.toml`` from the project root."""

    def load(self, project_path: Path) -> ProjectConfig:
        """Load configuration for a project.

        Args:
            project_path: Project root directory

        Returns:
            ProjectConfig; defaults when the project has no config file

        Raises:
            ValueError: If configuration is invalid
        """
        config_path = project_path / CONFIG_FILENAME
        if not config_path.is_file():
            return ProjectConfig()
        return self._load_from_file(config_path)

    def _load_from_file(self, path: Path) -> ProjectConfig:
        with path.open("rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid {CONFIG_FILENAME}: {e}") from e

        output = data.pop("output", DEFAULT_OUTPUT)
        if not isinstance(output, str) or not output:
            raise ValueError("output must be a non-empty string")

        public_dir = data.pop("public_dir", DEFAULT_PUBLIC_DIR)
        if not isinstance(public_dir, str):
            raise ValueError("public_dir must be a string")

        globals_ = data.pop("globals", {})
        if not isinstance(globals_, dict):
            raise ValueError("globals section must be a table")

        server = self._parse_server(data.pop("server", None))

        return ProjectConfig(
            globals=MappingProxyType(globals_),
            output=output,
            public_dir=public_dir,
            server=server,
            extra=MappingProxyType(data),
            config_path=path,
        )

    def _parse_server(self, data: object) -> ServerSettings:
        """Parse server configuration section.

        Args:
            data: Raw server section data

        Returns:
            ServerSettings instance
        """
        if data is None:
            return ServerSettings()

        if not isinstance(data, dict):
            raise ValueError("server section must be a table")

        host = data.get("host", "127.0.0.1")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", 8080)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")

        return ServerSettings(host=host, port=port)


@dataclass(frozen=True)
class Project:
    """A single servable and compilable project.

    Constructed once per server or compile run and passed by reference to
    every pipeline stage.
    """

    path: Path
    public_path: Path
    environment: str
    config: ProjectConfig

    @property
    def globals(self) -> Mapping[str, Any]:
        """Variables exposed to every rendered source."""
        return self.config.globals

    @classmethod
    def load(
        cls,
        project_path: Path,
        environment: str = "development",
        loader: ConfigLoader | None = None,
    ) -> "Project":
        """Load a project from its root directory.

        Args:
            project_path: Project root directory
            environment: "development" when serving, "production" when compiling
            loader: Configuration source (default: TomlConfigLoader)

        Returns:
            Project with resolved paths and frozen configuration

        Raises:
            FileNotFoundError: If the project or its public directory is missing
            ValueError: If configuration is invalid
        """
        root = project_path.resolve()
        if not root.is_dir():
            raise FileNotFoundError(f"Project directory not found: {root}")

        config = (loader or TomlConfigLoader()).load(root)

        public_path = root / config.public_dir if config.public_dir else root
        if not public_path.is_dir():
            raise FileNotFoundError(f"Public directory not found: {public_path}")

        globals_ = {"environment": environment, **config.globals}
        config = replace(config, globals=MappingProxyType(globals_))

        return cls(
            path=root,
            public_path=public_path.resolve(),
            environment=environment,
            config=config,
        )
