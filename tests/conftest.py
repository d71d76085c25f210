"""Shared fixtures for depbuild tests."""

from __future__ import annotations

import io
import subprocess
import tarfile
import zipfile
from pathlib import Path

import pytest

from depbuild.context import BuildContext
from depbuild.library import LibrarySpec
from depbuild.platform import PlatformConfig
from depbuild.settings import Settings
from depbuild.step import _step_registry


@pytest.fixture(autouse=True)
def _clean_registry():
    """Snapshot the step registry so tests can register kinds freely."""
    saved = _step_registry.copy()
    yield
    _step_registry.clear()
    _step_registry.update(saved)


class CommandRecorder:
    """Stand-in for subprocess.run that records every command."""

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], Path, dict[str, str]]] = []
        self._failing: list[str] = []
        self.on_call = None

    def fail_on(self, fragment: str) -> None:
        """Return a non-zero status for commands containing ``fragment``."""
        self._failing.append(fragment)

    @property
    def argvs(self) -> list[list[str]]:
        return [argv for argv, _, _ in self.calls]

    def __call__(self, argv, cwd=None, env=None, check=False):
        argv = list(argv)
        self.calls.append((argv, Path(cwd), dict(env or {})))
        if self.on_call is not None:
            self.on_call(argv, Path(cwd))
        cmdline = " ".join(argv)
        code = 2 if any(f in cmdline for f in self._failing) else 0
        return subprocess.CompletedProcess(argv, code)


@pytest.fixture
def commands(monkeypatch) -> CommandRecorder:
    recorder = CommandRecorder()
    monkeypatch.setattr("depbuild.process.subprocess.run", recorder)
    return recorder


@pytest.fixture
def make_ctx(tmp_path):
    """Factory for BuildContexts rooted in tmp_path."""

    def _make(
        library: LibrarySpec | None = None,
        *,
        configuration: str | None = "Release",
        platform: PlatformConfig | None = None,
        settings: Settings | None = None,
        dry_run: bool = False,
    ) -> BuildContext:
        ctx = BuildContext(
            platform=platform or PlatformConfig(name="linux", arch="x86_64"),
            root_dir=tmp_path,
            settings=settings or Settings(threads=4),
            dry_run=dry_run,
            base_env={"PATH": "/usr/bin"},
        )
        if configuration is not None:
            ctx = ctx.for_configuration(configuration)
        if library is not None:
            ctx = ctx.for_library(library)
        return ctx

    return _make


@pytest.fixture
def make_tarball():
    """Factory writing a .tar.gz whose members live under ``top``."""

    def _make(path: Path, top: str, files: dict[str, str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(path, "w:gz") as tar:
            for name, content in files.items():
                data = content.encode()
                info = tarfile.TarInfo(f"{top}/{name}")
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return path

    return _make


@pytest.fixture
def make_zip():
    """Factory writing a .zip whose members live under ``top``."""

    def _make(path: Path, top: str, files: dict[str, str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            for name, content in files.items():
                zf.writestr(f"{top}/{name}", content)
        return path

    return _make
