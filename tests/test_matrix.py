"""Tests for depbuild.matrix."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from depbuild import matrix as matrix_mod
from depbuild.errors import BuildFailed, ConfigNotFound, NothingToBuild
from depbuild.matrix import BuildMatrix, preserved_process_state
from depbuild.settings import Settings
from depbuild.workspace import Workspace


def _write_config(root: Path, filename: str, content: str) -> None:
    d = root / "scripts" / "linux"
    d.mkdir(parents=True, exist_ok=True)
    (d / filename).write_text(content)


@pytest.fixture
def workspace(tmp_path):
    _write_config(tmp_path, "linux.config", 'platform "linux" {\n  arch = "x86_64"\n}\n')
    for name in ("zlib", "png", "freetype"):
        _write_config(
            tmp_path,
            f"linux-{name}.config",
            f'library "{name}" {{\n  use_cmake = true\n  archive_name = "{name}-1.0"\n}}\n',
        )
    return Workspace(tmp_path, "linux", settings=Settings(threads=2))


@pytest.fixture
def pipelines(monkeypatch):
    """Record (configuration, library) instead of running pipelines."""
    calls: list[tuple[str, str]] = []

    def fake_run_pipeline(ctx, steps=None):
        calls.append((ctx.configuration, ctx.library_name))

    monkeypatch.setattr(matrix_mod, "run_pipeline", fake_run_pipeline)
    return calls


class TestPreservedProcessState:
    def test_restores_path_and_cwd(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        start = os.getcwd()
        with preserved_process_state():
            os.environ["PATH"] = "/tmp/tool/bin:/usr/bin"
            os.chdir(tmp_path)
        assert os.environ["PATH"] == "/usr/bin"
        assert os.getcwd() == start

    def test_restores_on_failure(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        start = os.getcwd()
        with pytest.raises(RuntimeError), preserved_process_state():
            os.environ["PATH"] = "/leak"
            os.chdir(tmp_path)
            raise RuntimeError("fail")
        assert os.environ["PATH"] == "/usr/bin"
        assert os.getcwd() == start

    def test_removes_path_that_did_not_exist(self, monkeypatch):
        monkeypatch.delenv("PATH", raising=False)
        with preserved_process_state():
            os.environ["PATH"] = "/leak"
        assert "PATH" not in os.environ


class TestBuildMatrix:
    def test_from_workspace(self, workspace):
        _write_config(workspace.root, "build.config", 'build_order = ["zlib", "png"]')
        m = BuildMatrix.from_workspace(workspace)
        assert m.configurations == ["RelWithDebInfo", "Release", "Debug"]
        assert m.libraries == ["zlib", "png"]

    def test_order_is_configuration_then_library(self, workspace, pipelines):
        m = BuildMatrix(workspace, ["Release", "Debug"], ["zlib", "png"])
        completed = m.run()
        expected = [("Release", "zlib"), ("Release", "png"), ("Debug", "zlib"), ("Debug", "png")]
        assert pipelines == expected
        assert completed == expected

    def test_creates_install_dirs(self, workspace, pipelines):
        BuildMatrix(workspace, ["Release", "Debug"], ["zlib"]).run()
        base = workspace.root / "dependencies" / "linux" / "x86_64"
        assert (base / "Release").is_dir()
        assert (base / "Debug").is_dir()

    def test_dry_run_creates_no_install_dirs(self, workspace, pipelines):
        BuildMatrix(workspace, ["Release"], ["zlib"], dry_run=True).run()
        assert not (workspace.root / "dependencies").exists()
        assert pipelines == [("Release", "zlib")]

    def test_empty_build_order(self, workspace, pipelines):
        with pytest.raises(NothingToBuild):
            BuildMatrix(workspace, ["Release"], []).run()
        assert pipelines == []

    def test_fail_fast(self, workspace, monkeypatch):
        attempted: list[str] = []

        def fake_run_pipeline(ctx, steps=None):
            attempted.append(ctx.library_name)
            if ctx.library_name == "png":
                raise BuildFailed("png broke")

        monkeypatch.setattr(matrix_mod, "run_pipeline", fake_run_pipeline)
        m = BuildMatrix(workspace, ["Release", "Debug"], ["zlib", "png", "freetype"])
        with pytest.raises(BuildFailed):
            m.run()
        assert attempted == ["zlib", "png"]
        assert m.completed == [("Release", "zlib")]

    def test_missing_library_config_aborts(self, workspace, pipelines):
        m = BuildMatrix(workspace, ["Release"], ["zlib", "missinglib", "png"])
        with pytest.raises(ConfigNotFound, match="linux-missinglib.config"):
            m.run()
        assert pipelines == [("Release", "zlib")]
        assert not (workspace.root / "build" / "linux" / "missinglib").exists()

    def test_each_library_gets_a_fresh_spec(self, workspace, monkeypatch):
        seen = []

        def fake_run_pipeline(ctx, steps=None):
            seen.append((ctx.library, dict(ctx.library.overrides)))
            ctx.library.overrides["prepare"] = []

        monkeypatch.setattr(matrix_mod, "run_pipeline", fake_run_pipeline)
        BuildMatrix(workspace, ["Release", "Debug"], ["zlib"]).run()
        (first, _), (second, overrides) = seen
        assert first is not second
        assert overrides == {}

    def test_path_restored_between_libraries(self, workspace, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        observed = []

        def fake_run_pipeline(ctx, steps=None):
            observed.append(os.environ["PATH"])
            os.environ["PATH"] = f"/{ctx.library_name}/bin:" + os.environ["PATH"]

        monkeypatch.setattr(matrix_mod, "run_pipeline", fake_run_pipeline)
        BuildMatrix(workspace, ["Release"], ["zlib", "png"]).run()
        assert observed == ["/usr/bin", "/usr/bin"]
        assert os.environ["PATH"] == "/usr/bin"

    def test_tools_bootstrapped_once(self, tmp_path, pipelines, monkeypatch):
        _write_config(
            tmp_path,
            "linux.config",
            'platform "linux" {\n  tool "cmake" {\n    url = "https://mirror.test/cmake.tar.gz"\n  }\n}\n',
        )
        _write_config(tmp_path, "linux-zlib.config", 'library "zlib" {}')
        ensured = []
        monkeypatch.setattr(matrix_mod, "ensure_tool", lambda ctx, tool: ensured.append(tool.name))
        BuildMatrix(Workspace(tmp_path, "linux"), ["Release", "Debug"], ["zlib"]).run()
        assert ensured == ["cmake"]
