"""Unit tests for the linker."""

import pytest

from kiln.build.diagnostics import DiagnosticAggregator
from kiln.build.linker import Linker, LinkerError, split_library_flags
from kiln.build.toolchain import Toolchain
from kiln.console import Console


def test_split_library_flags():
    dirs, names = split_library_flags(["-L/opt/fmt/lib", "-lfmt", "-L/usr/lib", "-lz"])

    assert dirs == ["-L/opt/fmt/lib", "-L/usr/lib"]
    assert names == ["-lfmt", "-lz"]


class TestLinker:
    """Test suite for Linker."""

    @pytest.fixture
    def project(self, tmp_path):
        project = tmp_path / "project"
        objects = project / "build" / "debug" / "obj"
        objects.mkdir(parents=True)
        (objects / "util.o").write_text("object\n")
        (objects / "main.o").write_text("object\n")
        (project / "build" / "debug" / "bin").mkdir()
        return project

    @pytest.fixture
    def linker(self, project, fake_compiler):
        return Linker(Toolchain(str(fake_compiler), project), DiagnosticAggregator(Console(use_color=False)))

    def test_collect_objects_sorted(self, linker):
        assert linker.collect_objects("build/debug/obj") == [
            "build/debug/obj/main.o",
            "build/debug/obj/util.o",
        ]

    def test_missing_object_dir(self, linker):
        with pytest.raises(LinkerError, match="was not found"):
            linker.collect_objects("build/release/obj")

    def test_empty_object_dir(self, linker, project):
        (project / "empty").mkdir()

        with pytest.raises(LinkerError, match="No object files to link"):
            linker.link("empty", "build/debug/bin/hello", [])

    def test_link(self, linker, project, compiler_log, capsys):
        result = linker.link("build/debug/obj", "build/debug/bin/hello", ["-s"])

        assert result.binary_path == project / "build/debug/bin/hello"
        assert result.binary_path.exists()
        assert result.libraries == []
        assert compiler_log.read_text().strip() == (
            "build/debug/obj/main.o build/debug/obj/util.o -o build/debug/bin/hello -s"
        )
        out = capsys.readouterr().out
        assert "main.o + util.o -> hello" in out
        assert "libraries:" not in out

    def test_link_with_libraries(self, linker, compiler_log, capsys):
        result = linker.link("build/debug/obj", "build/debug/bin/hello", [], ["-lfmt", "-L/opt/fmt"])

        assert result.libraries == ["-lfmt"]
        assert compiler_log.read_text().strip().endswith("-o build/debug/bin/hello -L/opt/fmt -lfmt")
        out = capsys.readouterr().out
        assert "libraries:" in out
        assert "+ -lfmt" in out

    def test_link_failure(self, project):
        broken = project / "brokencc"
        broken.write_text("#!/bin/sh\necho 'undefined reference to foo' >&2\nexit 1\n")
        broken.chmod(0o755)
        linker = Linker(Toolchain(str(broken), project), DiagnosticAggregator(Console(use_color=False)))

        with pytest.raises(LinkerError, match="linking build/debug/bin/hello failed"):
            linker.link("build/debug/obj", "build/debug/bin/hello", [])
