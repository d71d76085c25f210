"""Workspace — the scripts tree of one platform and the configs it holds."""

from __future__ import annotations

import logging
from pathlib import Path

from . import hcl
from .context import BuildContext
from .errors import ConfigNotFound, NothingToBuild
from .library import LibrarySpec
from .platform import PlatformConfig
from .settings import DEFAULT_CONFIGURATIONS, Settings

logger = logging.getLogger(__name__)

PLATFORM_CONFIG = "{platform}.config"
BUILD_CONFIG = "build.config"
LIBRARY_CONFIG = "{platform}-{library}.config"


class Workspace:
    """Locates and loads platform, build-order and library configs.

    Libraries are loaded on access and never cached, so every lookup yields a
    LibrarySpec built from defaults.
    """

    def __init__(
        self,
        root: str | Path,
        platform: str,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.root = Path(root)
        self.platform_name = platform
        self.settings = settings if settings is not None else Settings()
        self._platform: PlatformConfig | None = None

    @property
    def scripts_dir(self) -> Path:
        return self.root / "scripts" / self.platform_name

    @property
    def platform_config_path(self) -> Path:
        return self.scripts_dir / PLATFORM_CONFIG.format(platform=self.platform_name)

    @property
    def build_config_path(self) -> Path:
        return self.scripts_dir / BUILD_CONFIG

    def library_config_path(self, library: str) -> Path:
        return self.scripts_dir / LIBRARY_CONFIG.format(platform=self.platform_name, library=library)

    @property
    def platform(self) -> PlatformConfig:
        """The platform config, loaded once per workspace."""
        if self._platform is None:
            path = self.platform_config_path
            if not path.is_file():
                raise ConfigNotFound(path, "platform config")
            logger.info("Loading platform config %s", path)
            self._platform = hcl.load_platform(path, self.platform_name)
        return self._platform

    def context(self, *, dry_run: bool = False) -> BuildContext:
        """Create the platform-scope BuildContext for a run."""
        return BuildContext(
            platform=self.platform,
            root_dir=self.root,
            settings=self.settings,
            dry_run=dry_run,
        )

    def configurations(self) -> list[str]:
        """Target configurations, in build order."""
        return list(
            self.settings.configurations
            or self.platform.configurations
            or DEFAULT_CONFIGURATIONS
        )

    def build_order(self, library: str | None = None) -> list[str]:
        """Return the libraries to build: just ``library``, or build.config's list."""
        if library:
            order = [library]
        else:
            path = self.build_config_path
            if not path.is_file():
                raise ConfigNotFound(path, "build order")
            order = hcl.load_build_order(path, self.platform_name)
        if not order:
            raise NothingToBuild(f"No libraries to build for platform '{self.platform_name}'")
        logger.debug("Build order: %s", " ".join(order))
        return order

    def load_library(self, library: str, *, arch: str) -> LibrarySpec:
        """Load a fresh LibrarySpec for ``library``."""
        path = self.library_config_path(library)
        if not path.is_file():
            raise ConfigNotFound(path, "library config")
        logger.debug("Loading library config %s", path)
        return hcl.load_library(path, self.platform, library, arch=arch)

    def __repr__(self) -> str:
        return f"Workspace(root={str(self.root)!r}, platform={self.platform_name!r})"
