"""Resolver — expand ${...} references in library settings and step attributes."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from .errors import ConfigError

if TYPE_CHECKING:
    from .context import BuildContext

logger = logging.getLogger(__name__)

_INTERP_PATTERN = re.compile(r"\$\$\{|(\$\{([^{}]+)\})")
_FULL_PATTERN = re.compile(r"\$\{([^{}]+)\}")


class Resolver:
    """Resolve ${...} references against a variables dict.

    References are resolved when a step runs, not when the config is loaded,
    because values such as ``install_dir`` change with each configuration.
    """

    def __init__(self, variables: dict[str, Any] | None = None) -> None:
        self._variables = variables or {}

    @classmethod
    def for_context(cls, ctx: BuildContext) -> Resolver:
        return cls(ctx.variables())

    def _lookup(self, ref: str) -> Any:
        """Resolve a dotted reference (e.g., 'env.HOME')."""
        current: Any = self._variables
        for part in ref.split("."):
            try:
                current = current[part]
            except (KeyError, TypeError):
                try:
                    current = getattr(current, part)
                except AttributeError:
                    raise ConfigError(f"undefined variable '{ref}'") from None
        return current

    def resolve(self, value: Any) -> Any:
        """Resolve references in a string, list or dict value.

        A string that is exactly one ``${ref}`` resolves to the referenced
        object itself; embedded references are stringified. ``$${`` yields a
        literal ``${``.
        """
        if isinstance(value, dict):
            return {k: self.resolve(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.resolve(item) for item in value]
        if not isinstance(value, str) or "${" not in value:
            return value

        match = _FULL_PATTERN.fullmatch(value)
        if match:
            return self._lookup(match.group(1).strip())

        def _replace(m: re.Match) -> str:  # type: ignore[type-arg]
            if m.group(0) == "$${":
                return "${"
            return str(self._lookup(m.group(2).strip()))

        return _INTERP_PATTERN.sub(_replace, value)

    def text(self, value: str) -> str:
        """Resolve a string value, always returning a string."""
        resolved = self.resolve(value)
        return resolved if isinstance(resolved, str) else str(resolved)
