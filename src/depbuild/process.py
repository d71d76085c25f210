"""Child process execution for pipeline steps."""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from .context import BuildContext
from .errors import StageFailed

logger = logging.getLogger(__name__)


def split_options(*options: str) -> list[str]:
    """Split option strings into argv entries, dropping empty ones."""
    args: list[str] = []
    for value in options:
        if value:
            args.extend(shlex.split(value))
    return args


def run_command(
    ctx: BuildContext,
    args: Sequence[str],
    *,
    cwd: Path,
    error: type[StageFailed] = StageFailed,
    env: Mapping[str, str] | None = None,
) -> None:
    """Run a command with the context environment; non-zero exit raises ``error``."""
    argv = [str(a) for a in args]
    cmdline = shlex.join(argv)
    child_env = ctx.env
    if env:
        child_env.update(env)

    logger.info("Running in %s: %s", cwd, cmdline)
    try:
        result = subprocess.run(argv, cwd=cwd, env=child_env, check=False)
    except OSError as exc:
        raise error(f"{argv[0]}: {exc}") from exc

    if result.returncode != 0:
        raise error(f"'{cmdline}' exited with status {result.returncode}")
