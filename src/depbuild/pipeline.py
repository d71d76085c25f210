"""Pipeline executor — run one library's stages for one configuration."""

from __future__ import annotations

import logging
import shutil

from .context import BuildContext
from .stepset import StepSet

logger = logging.getLogger(__name__)


def prepare_directories(ctx: BuildContext) -> None:
    """Ensure the staging directory exists and reset the build directory.

    The build directory is removed and recreated unless NO_REMOVE_BUILD_DIR
    is set; stale CMake caches must not survive into a new build.
    """
    if ctx.dry_run:
        logger.info("[DRY RUN] Would prepare %s and %s", ctx.staging_dir, ctx.build_dir)
        return

    ctx.staging_dir.mkdir(parents=True, exist_ok=True)
    if ctx.settings.no_remove_build_dir:
        logger.debug("NO_REMOVE_BUILD_DIR is set; keeping %s", ctx.build_dir)
    elif ctx.build_dir.exists():
        logger.info("Removing %s", ctx.build_dir)
        shutil.rmtree(ctx.build_dir)
    ctx.build_dir.mkdir(parents=True, exist_ok=True)


def run_pipeline(ctx: BuildContext, steps: StepSet | None = None) -> None:
    """Run every stage for ``ctx.library``; any failure propagates immediately."""
    if steps is None:
        steps = ctx.library.steps()
    logger.info(
        "Building %s for %s [%s]",
        ctx.library_name,
        ctx.platform_name,
        ctx.configuration,
    )
    prepare_directories(ctx)
    steps.run(ctx)
    logger.info("Finished %s [%s]", ctx.library_name, ctx.configuration)
