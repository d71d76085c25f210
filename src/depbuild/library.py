"""Library model — declarative settings for one library's build."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .archive import DEFAULT_SUFFIX, archive_suffix
from .step import Step
from .stepset import STAGES, StepSet

logger = logging.getLogger(__name__)


class LibrarySpec(BaseModel):
    """Settings for one library; a fresh instance is built for every iteration."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    name: str
    use_cmake: bool = False
    download_url: str | None = None
    archive_name: str | None = None
    configure_options: str = ""
    cmake_options: str = ""
    cmake_directory: str = "."
    cmake_build_subdir: str = "buildtemp"
    make_options: str = ""
    env: dict[str, str] = Field(default_factory=dict)
    path: list[str] = Field(default_factory=list)
    overrides: dict[str, list[Step]] = Field(default_factory=dict)

    @field_validator("overrides")
    @classmethod
    def check_stages(cls, value: dict[str, list[Step]]) -> dict[str, list[Step]]:
        for stage in value:
            if stage not in STAGES:
                raise ValueError(f"unknown stage '{stage}'")
        return value

    @property
    def archive_file(self) -> str | None:
        """File name of the downloaded archive inside the staging directory."""
        if not self.archive_name:
            return None
        if archive_suffix(self.archive_name):
            return self.archive_name
        suffix = archive_suffix(self.download_url or "") or DEFAULT_SUFFIX
        return f"{self.archive_name}{suffix}"

    def resolve_url(self, base: str | None) -> str | None:
        """Return the explicit download URL or the conventional templated one."""
        if self.download_url:
            return self.download_url
        if not base or not self.archive_name:
            return None
        return f"{base.rstrip('/')}/{self.name}/{self.archive_name}.tar.gz"

    def steps(self) -> StepSet:
        """Build this library's StepSet: engine defaults plus its overrides."""
        steps = StepSet.defaults()
        if self.overrides:
            logger.debug("Library '%s' overrides %s", self.name, ", ".join(self.overrides))
            steps = steps.with_overrides(self.overrides)
        return steps
