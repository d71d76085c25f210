"""Error taxonomy for the build pipeline."""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Base class for every fatal condition in a build run."""


class ConfigError(BuildError, ValueError):
    """A configuration file could not be understood."""


class ConfigNotFound(BuildError):
    """A platform, build order or library config file is missing."""

    def __init__(self, path: Path, what: str = "config") -> None:
        super().__init__(f"Missing {what}: {path}")
        self.path = path


class NothingToBuild(BuildError):
    """The build order is empty."""


class ToolUnavailable(BuildError):
    """A required tool could not be downloaded or unpacked."""


class StageFailed(BuildError):
    """A pipeline stage failed; subclasses name the stage."""

    stage = ""


class DownloadFailed(StageFailed):
    stage = "download"


class ExtractFailed(StageFailed):
    stage = "extract"


class PrepareFailed(StageFailed):
    stage = "prepare"


class BuildFailed(StageFailed):
    stage = "build"


class InstallFailed(StageFailed):
    stage = "install"


_STAGE_ERRORS: dict[str, type[StageFailed]] = {
    cls.stage: cls
    for cls in (DownloadFailed, ExtractFailed, PrepareFailed, BuildFailed, InstallFailed)
}


def stage_error(stage: str) -> type[StageFailed]:
    """Return the error class reported when ``stage`` fails."""
    return _STAGE_ERRORS.get(stage, StageFailed)
