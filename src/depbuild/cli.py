"""Command line entry point: ``depbuild <platform> [library]``."""

from __future__ import annotations

import argparse
import importlib
import importlib.metadata
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from .errors import BuildError, ConfigError
from .matrix import BuildMatrix
from .settings import Settings
from .workspace import Workspace

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _version() -> str:
    try:
        return importlib.metadata.version("depbuild")
    except importlib.metadata.PackageNotFoundError:
        return "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depbuild",
        description="Download, build and install third-party libraries for a platform.",
    )
    parser.add_argument("platform", help="platform name; configs live in scripts/<platform>/")
    parser.add_argument("library", nargs="?", help="build only this library")
    parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="directory holding scripts/ (default: current directory)",
    )
    parser.add_argument(
        "--plugin",
        action="append",
        default=[],
        metavar="MODULE",
        help="import MODULE to register extra step types (repeatable)",
    )
    parser.add_argument("--dry-run", action="store_true", help="log actions without running them")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    return parser


def load_plugins(modules: Sequence[str]) -> None:
    """Import plugin modules so their @step registrations take effect."""
    for name in modules:
        logger.debug("Loading plugin %s", name)
        try:
            importlib.import_module(name)
        except ImportError as exc:
            raise ConfigError(f"Cannot load plugin '{name}': {exc}") from exc


def run(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and run the build matrix; returns the exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        try:
            settings = Settings.from_env()
        except ValidationError as exc:
            raise ConfigError(f"Invalid environment settings: {exc}") from exc
        load_plugins(args.plugin)
        workspace = Workspace(args.root.resolve(), args.platform, settings=settings)
        matrix = BuildMatrix.from_workspace(workspace, args.library, dry_run=args.dry_run)
        completed = matrix.run()
    except BuildError as exc:
        logger.error("%s", exc)
        logger.error("Build of platform '%s' FAILED", args.platform)
        return 1

    logger.info("Built %d library configuration(s) for '%s'", len(completed), args.platform)
    return 0


def main() -> None:
    sys.exit(run())
