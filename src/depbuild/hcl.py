"""HCL loading engine — parse .config files into platform and library models."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import hcl2
import jinja2
from pydantic import ValidationError

from .errors import ConfigError, ConfigNotFound
from .library import LibrarySpec
from .platform import PlatformConfig
from .step import Step, lookup
from .stepset import STAGES

logger = logging.getLogger(__name__)


def load(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Load and parse a single HCL file, rendering Jinja2 templates with context."""
    if not file.is_file():
        raise ConfigNotFound(file)
    logger.debug("Loading %s", file)
    text = file.read_text()
    ctx = context if context is not None else {}
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        text = env.from_string(text).render(ctx)
    except jinja2.TemplateError as exc:
        raise ConfigError(f"{file}: {exc}") from exc
    try:
        return hcl2.loads(text)
    except Exception as exc:  # lark raises several unrelated exception types
        raise ConfigError(f"{file}: {exc}") from exc


def _single_block(file: Path, data: dict[str, Any], kind: str, name: str) -> dict[str, Any]:
    """Return the body of the one ``kind "<name>" { ... }`` block in a file."""
    blocks = [
        (label, body)
        for block in data.get(kind, [])
        for label, body in block.items()
    ]
    if len(blocks) != 1:
        raise ConfigError(f"{file}: expected exactly one '{kind}' block, found {len(blocks)}")
    label, body = blocks[0]
    if label != name:
        raise ConfigError(f"{file}: {kind} block is labelled '{label}', expected '{name}'")
    return dict(body)


def _decode_step(file: Path, kind: str, attrs: dict[str, Any]) -> Step:
    """Decode one override block into a Step instance using the registry."""
    try:
        step_cls = lookup(kind)
    except KeyError:
        raise ConfigError(f"{file}: unknown step type '{kind}'") from None
    logger.debug("Decoding step '%s' -> %s", kind, step_cls.__name__)
    try:
        return step_cls(**attrs)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{file}: step '{kind}': {exc}") from exc


def _parse_overrides(file: Path, body: dict[str, Any]) -> dict[str, list[Step]]:
    """Pull stage override blocks out of a library body.

    Structure for override blocks:
        {"prepare": [{"command": {"args": [...]}}, ...], ...}
    """
    overrides: dict[str, list[Step]] = {}
    for stage in STAGES:
        blocks = body.pop(stage, None)
        if blocks is None:
            continue
        if not isinstance(blocks, list):
            raise ConfigError(f"{file}: '{stage}' must be a block, not an attribute")
        steps: list[Step] = []
        for block in blocks:
            # Each block is {"kind": {attrs}}
            for kind, attrs in block.items():
                steps.append(_decode_step(file, kind, dict(attrs)))
        overrides[stage] = steps
    return overrides


def load_platform(file: Path, platform: str) -> PlatformConfig:
    """Load ``<platform>.config`` into a PlatformConfig."""
    data = load(file, context={"platform": platform, "env": dict(os.environ)})
    body = _single_block(file, data, "platform", platform)
    tools = [
        {"name": name, **attrs}
        for block in body.pop("tool", [])
        for name, attrs in block.items()
    ]
    try:
        return PlatformConfig(name=platform, tools=tools, **body)
    except (ValidationError, TypeError) as exc:
        raise ConfigError(f"{file}: {exc}") from exc


def load_build_order(file: Path, platform: str) -> list[str]:
    """Load the ``build_order`` list from ``build.config``."""
    data = load(file, context={"platform": platform, "env": dict(os.environ)})
    order = data.get("build_order", [])
    if isinstance(order, str):
        order = order.split()
    if not isinstance(order, list) or not all(isinstance(n, str) for n in order):
        raise ConfigError(f"{file}: build_order must be a list of library names")
    return order


def load_library(file: Path, platform: PlatformConfig, library: str, *, arch: str) -> LibrarySpec:
    """Load ``<platform>-<library>.config`` into a new LibrarySpec."""
    data = load(
        file,
        context={
            "platform": platform.name,
            "library": library,
            "arch": arch,
            "env": dict(os.environ),
        },
    )
    body = _single_block(file, data, "library", library)
    overrides = _parse_overrides(file, body)
    try:
        return LibrarySpec(name=library, overrides=overrides, **body)
    except (ValidationError, TypeError) as exc:
        raise ConfigError(f"{file}: {exc}") from exc
