"""Platform model — settings shared by every library built for one platform."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ToolSpec(BaseModel):
    """A tool that must be on the search path, with a fallback archive."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    url: str


class PlatformConfig(BaseModel):
    """Read-only platform settings (toolchain, generator, flags)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    arch: str | None = None
    generator: str | None = None
    generator_arch: str | None = None
    cmake_options: str = ""
    configure_options: str = ""
    make_options: str = ""
    download_base_url: str | None = None
    configurations: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    path: list[str] = Field(default_factory=list)
    tools: list[ToolSpec] = Field(default_factory=list)
