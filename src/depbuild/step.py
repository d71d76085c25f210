"""Step ABC and step-kind registration."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .context import BuildContext

_step_registry: dict[str, type[Step]] = {}


def step(name: str):
    """Register a Step class as a config block decoder."""

    def decorator(cls):
        _step_registry[name] = cls
        return cls

    return decorator


def lookup(name: str) -> type[Step]:
    """Return the Step class registered under ``name``."""
    if name not in _step_registry:
        raise KeyError(name)
    return _step_registry[name]


class Step(ABC):
    """Base class for all pipeline steps."""

    def satisfied(self, ctx: BuildContext) -> bool:
        """Work is already done (defaults to never)."""
        return False

    @abstractmethod
    def run(self, ctx: BuildContext) -> None:
        """Perform the step."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
