"""Runtime execution context for the build pipeline."""

from __future__ import annotations

import dataclasses
import os
import platform as _host
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .settings import Settings

if TYPE_CHECKING:
    from .library import LibrarySpec
    from .platform import PlatformConfig


@dataclass
class BuildContext:
    """State for one (platform, configuration, library) execution.

    A context is created once per platform run. ``for_configuration`` and
    ``for_library`` return narrowed copies, so nothing a library does to its
    context is visible to the next one.
    """

    platform: PlatformConfig
    root_dir: Path
    settings: Settings = field(default_factory=Settings)
    dry_run: bool = False
    configuration: str | None = None
    library: LibrarySpec | None = None
    search_path: list[str] = field(default_factory=list)
    base_env: dict[str, str] = field(default_factory=lambda: dict(os.environ))

    def for_configuration(self, configuration: str) -> BuildContext:
        return dataclasses.replace(
            self,
            configuration=configuration,
            library=None,
            search_path=list(self.search_path),
        )

    def for_library(self, library: LibrarySpec) -> BuildContext:
        return dataclasses.replace(self, library=library, search_path=list(self.search_path))

    # -- platform scope --

    @property
    def platform_name(self) -> str:
        return self.platform.name

    @property
    def scripts_dir(self) -> Path:
        return self.root_dir / "scripts" / self.platform.name

    @property
    def generator(self) -> str | None:
        return self.settings.generator or self.platform.generator

    @property
    def generator_arch(self) -> str | None:
        return self.settings.generator_arch or self.platform.generator_arch

    @property
    def arch(self) -> str:
        return (
            self.settings.generator_arch
            or self.platform.arch
            or self.platform.generator_arch
            or _host.machine().lower()
            or "unknown"
        )

    @property
    def threads(self) -> int:
        return self.settings.threads

    @property
    def tools_dir(self) -> Path:
        return self._rooted(self.settings.tools_dir, "tools")

    @property
    def install_root(self) -> Path:
        return self._rooted(self.settings.install_dir, "dependencies")

    @property
    def build_root(self) -> Path:
        return self.root_dir / "build" / self.platform.name

    @property
    def download_base_url(self) -> str | None:
        return self.settings.download_base_url or self.platform.download_base_url

    # -- configuration scope --

    @property
    def install_dir(self) -> Path:
        if self.configuration is None:
            raise RuntimeError("install_dir requires a target configuration")
        return self.install_root / self.platform.name / self.arch / self.configuration

    # -- library scope --

    @property
    def library_name(self) -> str:
        return self._require_library().name

    @property
    def config_path(self) -> Path:
        return self.scripts_dir / f"{self.platform.name}-{self.library_name}.config"

    @property
    def build_dir(self) -> Path:
        return self.build_root / self.library_name

    @property
    def staging_dir(self) -> Path:
        return self.build_root / self.settings.staging_name / self.library_name

    @property
    def source_dir(self) -> Path:
        return self.build_dir / self._require_library().cmake_directory

    @property
    def cmake_build_dir(self) -> Path:
        return self.build_dir / self._require_library().cmake_build_subdir

    @property
    def env(self) -> dict[str, str]:
        """Environment for child processes, with the search path applied."""
        env = dict(self.base_env)
        env.update(self.platform.env)
        extra_path = list(self.search_path) + list(self.platform.path)
        if self.library is not None:
            env.update(self.library.env)
            extra_path = list(self.library.path) + extra_path
        if extra_path:
            current = env.get("PATH", "")
            env["PATH"] = os.pathsep.join(extra_path + ([current] if current else []))
        return env

    def prepend_path(self, directory: str | Path) -> None:
        directory = str(directory)
        if directory not in self.search_path:
            self.search_path.insert(0, directory)

    def variables(self) -> dict[str, Any]:
        """Values available to ``${...}`` references in library settings."""
        values: dict[str, Any] = {
            "platform": self.platform.name,
            "arch": self.arch,
            "root_dir": str(self.root_dir),
            "tools_dir": str(self.tools_dir),
            "threads": self.threads,
            "generator": self.generator or "",
            "env": self.env,
        }
        if self.configuration is not None:
            values["configuration"] = self.configuration
            values["install_dir"] = str(self.install_dir)
        if self.library is not None:
            values["library"] = self.library.name
            values["build_dir"] = str(self.build_dir)
            values["staging_dir"] = str(self.staging_dir)
            values["source_dir"] = str(self.source_dir)
        return values

    def _rooted(self, value: str | None, default: str) -> Path:
        path = Path(value) if value else Path(default)
        return path if path.is_absolute() else self.root_dir / path

    def _require_library(self) -> LibrarySpec:
        if self.library is None:
            raise RuntimeError("no library selected for this context")
        return self.library
