"""Tool bootstrap — make sure external tools are on the search path."""

from __future__ import annotations

import logging
import shutil

from .archive import DEFAULT_SUFFIX, archive_suffix, download, extract
from .context import BuildContext
from .errors import ExtractFailed, StageFailed, ToolUnavailable
from .platform import ToolSpec

logger = logging.getLogger(__name__)


def find_tool(ctx: BuildContext, name: str) -> str | None:
    """Resolve ``name`` against the context search path."""
    return shutil.which(name, path=ctx.env.get("PATH"))


def ensure_tool(ctx: BuildContext, tool: ToolSpec) -> bool:
    """Make ``tool`` resolvable, installing its archive into the tools dir if needed.

    Returns False (with a warning) when the archive unpacked fine but the tool
    still cannot be found; some tools are only usable through a known path.
    """
    bin_dir = ctx.tools_dir / "bin"
    if bin_dir.is_dir():
        ctx.prepend_path(bin_dir)

    found = find_tool(ctx, tool.name)
    if found:
        logger.debug("Found %s at %s", tool.name, found)
        return True

    if ctx.dry_run:
        logger.info("[DRY RUN] Would install %s from %s", tool.name, tool.url)
        return False

    logger.info("%s not found; installing into %s", tool.name, ctx.tools_dir)
    archive = ctx.tools_dir / f"{tool.name}{archive_suffix(tool.url) or DEFAULT_SUFFIX}"
    try:
        if not archive.is_file():
            download(tool.url, archive)
        extract(archive, ctx.tools_dir)
    except ExtractFailed as exc:
        archive.unlink(missing_ok=True)
        raise ToolUnavailable(f"Could not unpack {tool.name}: {exc}") from exc
    except StageFailed as exc:
        raise ToolUnavailable(f"Could not download {tool.name}: {exc}") from exc

    ctx.prepend_path(bin_dir)
    found = find_tool(ctx, tool.name)
    if found:
        logger.info("Installed %s at %s", tool.name, found)
        return True

    logger.warning("%s is still not on the search path after unpacking %s", tool.name, archive)
    return False
