"""Environment overrides for a build run."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIGURATIONS = ["RelWithDebInfo", "Release", "Debug"]

_TRUTHY = {"1", "true", "yes", "on"}

# environment variable -> settings field
_ENV_FIELDS = {
    "INSTALL_DIR": "install_dir",
    "BUILD_CONFIGURATION": "configurations",
    "TOOLS_DIR": "tools_dir",
    "GENERATOR": "generator",
    "GENERATOR_ARCH": "generator_arch",
    "X_DIR": "staging_name",
    "NO_REMOVE_BUILD_DIR": "no_remove_build_dir",
    "NO_EXTRACT": "no_extract",
    "THREADS": "threads",
    "DOWNLOAD_BASE_URL": "download_base_url",
}


def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


class Settings(BaseModel):
    """Optional overrides; unset values fall back to platform config or defaults."""

    install_dir: str | None = None
    configurations: list[str] | None = None
    tools_dir: str | None = None
    generator: str | None = None
    generator_arch: str | None = None
    staging_name: str = "X"
    no_remove_build_dir: bool = False
    no_extract: bool = False
    threads: int = Field(default_factory=lambda: os.cpu_count() or 1)
    download_base_url: str | None = None

    @field_validator("configurations", mode="before")
    @classmethod
    def split_configurations(cls, value):
        if isinstance(value, str):
            return value.split() or None
        return value

    @field_validator("no_remove_build_dir", "no_extract", mode="before")
    @classmethod
    def parse_flag(cls, value):
        if isinstance(value, str):
            return _flag(value)
        return value

    @field_validator("threads")
    @classmethod
    def check_threads(cls, value: int) -> int:
        if value < 1:
            raise ValueError("threads must be at least 1")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables, ignoring empty values."""
        environ = os.environ if environ is None else environ
        values = {}
        for var, field in _ENV_FIELDS.items():
            raw = environ.get(var)
            if raw:
                logger.debug("Using %s=%s", var, raw)
                values[field] = raw
        return cls(**values)
