"""Stage — a named pipeline slot wrapping one or more steps."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from .context import BuildContext
from .errors import BuildError, StageFailed, stage_error
from .step import Step

logger = logging.getLogger(__name__)


class Stage:
    """Runs its steps in order, skipping those already satisfied."""

    def __init__(self, name: str, steps: Sequence[Step] = ()) -> None:
        self.name = name
        self.steps = tuple(steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __repr__(self) -> str:
        return f"Stage({self.name!r}, {list(self.steps)!r})"

    def _banner(self, ctx: BuildContext) -> str:
        return f"{ctx.platform_name}/{ctx.library_name} [{ctx.configuration}] {self.name}"

    def __call__(self, ctx: BuildContext) -> None:
        banner = self._banner(ctx)
        logger.info("==== %s ====", banner)
        try:
            for step in self:
                if step.satisfied(ctx):
                    logger.info("Skipping %r", step)
                elif ctx.dry_run:
                    logger.info("[DRY RUN] Would run %r", step)
                else:
                    logger.debug("Running %r", step)
                    step.run(ctx)
        except BuildError as exc:
            logger.error("%s failed: %s", banner, exc)
            # plain StageFailed comes from generic steps such as "command"
            error = stage_error(self.name)
            if type(exc) is StageFailed and error is not StageFailed:
                raise error(str(exc)) from exc
            raise
        logger.info("%s succeeded", banner)
