"""Built-in step kinds, including the engine's default stage implementations."""

from __future__ import annotations

import logging
from pathlib import Path

from .archive import download, extract, tail
from .context import BuildContext
from .errors import (
    BuildFailed,
    ConfigError,
    DownloadFailed,
    ExtractFailed,
    InstallFailed,
    PrepareFailed,
    StageFailed,
)
from .process import run_command, split_options
from .resolve import Resolver
from .step import Step, step

logger = logging.getLogger(__name__)

# lines of a broken archive shown to the user; often an HTML error page
TAIL_LINES = 10


def _archive_path(ctx: BuildContext, error: type[StageFailed]) -> Path:
    lib = ctx.library
    if lib is None or not lib.archive_file:
        raise error(f"{ctx.library_name}: archive_name is not set")
    return ctx.staging_dir / lib.archive_file


@step("noop")
class Noop(Step):
    def run(self, ctx: BuildContext) -> None:
        pass


@step("command")
class Command(Step):
    """Run one command; ``cwd`` is relative to the library build directory."""

    def __init__(
        self,
        args: list[str] | str,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> None:
        if isinstance(args, str):
            args = split_options(args)
        if not args:
            raise ValueError("command step requires a non-empty 'args'")
        self.args = list(args)
        self.cwd = cwd
        self.env = dict(env or {})

    def __repr__(self) -> str:
        return f"Command({self.args!r})"

    def run(self, ctx: BuildContext) -> None:
        resolver = Resolver.for_context(ctx)
        args = [resolver.text(arg) for arg in self.args]
        env = {key: resolver.text(value) for key, value in self.env.items()}
        run_command(ctx, args, cwd=ctx.build_dir / resolver.text(self.cwd), env=env)


@step("download")
class Download(Step):
    """Fetch the library archive into the staging directory, once."""

    def satisfied(self, ctx: BuildContext) -> bool:
        archive = _archive_path(ctx, DownloadFailed)
        if archive.is_file():
            logger.info("Archive %s already present; not downloading", archive)
            return True
        return False

    def run(self, ctx: BuildContext) -> None:
        archive = _archive_path(ctx, DownloadFailed)
        url = ctx.library.resolve_url(ctx.download_base_url)
        if url is None:
            raise ConfigError(
                f"{ctx.library_name}: no download_url set and no download base URL configured"
            )
        download(Resolver.for_context(ctx).text(url), archive)


@step("extract")
class Extract(Step):
    """Unpack the archive into the build directory, stripping its top folder."""

    def satisfied(self, ctx: BuildContext) -> bool:
        if ctx.settings.no_extract:
            logger.info("NO_EXTRACT is set; leaving %s as is", ctx.build_dir)
            return True
        return False

    def run(self, ctx: BuildContext) -> None:
        archive = _archive_path(ctx, ExtractFailed)
        try:
            extract(archive, ctx.build_dir)
        except ExtractFailed:
            lines = tail(archive, TAIL_LINES)
            if lines:
                logger.error("Last %d line(s) of %s:\n%s", len(lines), archive, "\n".join(lines))
            archive.unlink(missing_ok=True)
            logger.warning("Removed %s; it will be downloaded again next run", archive)
            raise


def cmake_configure_args(ctx: BuildContext) -> list[str]:
    """Return the CMake configure command line for the current library."""
    install = ctx.install_dir.as_posix()
    args = ["cmake", ctx.source_dir.as_posix()]
    if ctx.generator:
        args += ["-G", ctx.generator]
    if ctx.generator_arch:
        args += ["-A", ctx.generator_arch]
    args += [
        f"-DCMAKE_BUILD_TYPE={ctx.configuration}",
        f"-DCMAKE_PREFIX_PATH={install}",
        f"-DCMAKE_FIND_ROOT_PATH={install}",
        f"-DCMAKE_INSTALL_PREFIX={install}",
        f"-DCMAKE_INSTALL_RPATH={install}/lib",
    ]
    args += _options(ctx, ctx.platform.cmake_options, ctx.library.cmake_options)
    return args


def _options(ctx: BuildContext, *options: str) -> list[str]:
    """Split option strings, then resolve references inside each argument."""
    resolver = Resolver.for_context(ctx)
    return [resolver.text(arg) for arg in split_options(*options)]


def _make_options(ctx: BuildContext) -> list[str]:
    return _options(ctx, ctx.platform.make_options, ctx.library.make_options)


@step("prepare")
class Prepare(Step):
    """Configure the build: CMake when ``use_cmake``, else ./configure."""

    def run(self, ctx: BuildContext) -> None:
        if ctx.library.use_cmake:
            ctx.cmake_build_dir.mkdir(parents=True, exist_ok=True)
            run_command(ctx, cmake_configure_args(ctx), cwd=ctx.cmake_build_dir, error=PrepareFailed)
            return

        args = ["./configure", f"--prefix={ctx.install_dir.as_posix()}"]
        args += _options(ctx, ctx.platform.configure_options, ctx.library.configure_options)
        run_command(ctx, args, cwd=ctx.source_dir, error=PrepareFailed)


@step("build")
class Build(Step):
    def run(self, ctx: BuildContext) -> None:
        options = _make_options(ctx)
        if ctx.library.use_cmake:
            args = ["cmake", "--build", ".", "--config", ctx.configuration]
            args += ["--parallel", str(ctx.threads)]
            if options:
                args += ["--", *options]
            run_command(ctx, args, cwd=ctx.cmake_build_dir, error=BuildFailed)
        else:
            run_command(ctx, ["make", f"-j{ctx.threads}", *options], cwd=ctx.source_dir, error=BuildFailed)


@step("install")
class Install(Step):
    def run(self, ctx: BuildContext) -> None:
        if ctx.library.use_cmake:
            args = ["cmake", "--build", ".", "--config", ctx.configuration, "--target", "install"]
            run_command(ctx, args, cwd=ctx.cmake_build_dir, error=InstallFailed)
        else:
            run_command(ctx, ["make", "install", *_make_options(ctx)], cwd=ctx.source_dir, error=InstallFailed)
