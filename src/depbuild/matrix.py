"""Build matrix driver — every configuration x every library, fail fast."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .context import BuildContext
from .errors import NothingToBuild
from .pipeline import run_pipeline
from .tools import ensure_tool
from .workspace import Workspace

logger = logging.getLogger(__name__)


@contextmanager
def preserved_process_state() -> Iterator[None]:
    """Restore the working directory and PATH on exit, success or failure."""
    saved_cwd = os.getcwd()
    saved_path = os.environ.get("PATH")
    try:
        yield
    finally:
        os.chdir(saved_cwd)
        if saved_path is None:
            os.environ.pop("PATH", None)
        else:
            os.environ["PATH"] = saved_path


@dataclass
class BuildMatrix:
    """Ordered configurations x ordered build order; the order is the schedule."""

    workspace: Workspace
    configurations: list[str]
    libraries: list[str]
    dry_run: bool = False
    completed: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_workspace(
        cls,
        workspace: Workspace,
        library: str | None = None,
        *,
        dry_run: bool = False,
    ) -> BuildMatrix:
        return cls(
            workspace=workspace,
            configurations=workspace.configurations(),
            libraries=workspace.build_order(library),
            dry_run=dry_run,
        )

    def run(self) -> list[tuple[str, str]]:
        """Build everything; the first error aborts the whole matrix."""
        if not self.libraries:
            raise NothingToBuild(f"No libraries to build for platform '{self.workspace.platform_name}'")

        ctx = self.workspace.context(dry_run=self.dry_run)
        logger.info(
            "Building %d librar%s x %d configuration(s) for %s",
            len(self.libraries),
            "y" if len(self.libraries) == 1 else "ies",
            len(self.configurations),
            ctx.platform_name,
        )

        with preserved_process_state():
            for tool in ctx.platform.tools:
                ensure_tool(ctx, tool)

            for configuration in self.configurations:
                self._run_configuration(ctx.for_configuration(configuration))

        return self.completed

    def _run_configuration(self, ctx: BuildContext) -> None:
        logger.info("Configuration %s -> %s", ctx.configuration, ctx.install_dir)
        if not ctx.dry_run:
            ctx.install_dir.mkdir(parents=True, exist_ok=True)
        for library in self.libraries:
            with preserved_process_state():
                self.build_library(ctx, library)
            self.completed.append((ctx.configuration, library))

    def build_library(self, ctx: BuildContext, name: str) -> None:
        """Load a fresh spec for ``name`` and run its pipeline."""
        spec = self.workspace.load_library(name, arch=ctx.arch)
        run_pipeline(ctx.for_library(spec), spec.steps())
