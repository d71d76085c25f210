"""StepSet model — the nine pipeline stages of one library build."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, model_validator

from .context import BuildContext
from .stage import Stage
from .step import Step
from .steps import Build, Download, Extract, Install, Prepare

logger = logging.getLogger(__name__)

STAGES = (
    "download",
    "extract",
    "patch_prepare",
    "prepare",
    "patch_build",
    "build",
    "patch_install",
    "install",
    "post_install",
)

_DEFAULT_STEPS: dict[str, type[Step]] = {
    "download": Download,
    "extract": Extract,
    "prepare": Prepare,
    "build": Build,
    "install": Install,
}


class StepSet(BaseModel):
    """An immutable mapping of every stage name to its Stage."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    stages: dict[str, Stage]

    @model_validator(mode="after")
    def check_complete(self) -> StepSet:
        names = set(self.stages)
        if names != set(STAGES):
            unknown = sorted(names - set(STAGES))
            missing = [s for s in STAGES if s not in names]
            raise ValueError(f"invalid stages (unknown: {unknown}, missing: {missing})")
        return self

    @classmethod
    def defaults(cls) -> StepSet:
        """Return a new StepSet with the engine's default implementations."""
        stages = {}
        for name in STAGES:
            default = _DEFAULT_STEPS.get(name)
            stages[name] = Stage(name, [default()] if default else [])
        return cls(stages=stages)

    def with_overrides(self, overrides: Mapping[str, Sequence[Step]]) -> StepSet:
        """Return a copy with the named stages replaced; self is unchanged."""
        stages = dict(self.stages)
        for name, steps in overrides.items():
            if name not in stages:
                raise ValueError(f"unknown stage '{name}'")
            stages[name] = Stage(name, steps)
        return StepSet(stages=stages)

    def __getitem__(self, name: str) -> Stage:
        return self.stages[name]

    def __iter__(self) -> Iterator[Stage]:  # type: ignore[override]
        return (self.stages[name] for name in STAGES)

    def run(self, ctx: BuildContext) -> None:
        """Execute every stage in order; the first failure propagates."""
        logger.debug("Running %d stage(s) for '%s'", len(STAGES), ctx.library_name)
        for stage in self:
            stage(ctx)
