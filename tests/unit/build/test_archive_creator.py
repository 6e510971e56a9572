"""Unit tests for static and shared library packaging."""

import pytest

from kiln.build.archive_creator import ArchiveCreator, ArchiveError
from kiln.build.diagnostics import DiagnosticAggregator
from kiln.build.toolchain import Toolchain
from kiln.console import Console


class TestArchiveCreator:
    """Test suite for ArchiveCreator."""

    @pytest.fixture
    def project(self, tmp_path):
        project = tmp_path / "project"
        objects = project / "build" / "lib" / "static" / "obj"
        objects.mkdir(parents=True)
        (objects / "net.o").write_text("net object\n")
        (objects / "util.o").write_text("util object\n")
        return project

    @pytest.fixture
    def creator(self, project, fake_compiler):
        return ArchiveCreator(Toolchain(str(fake_compiler), project), DiagnosticAggregator(Console(use_color=False)))

    def test_static_libraries_per_object(self, creator, project, fake_archiver, capsys):
        libraries = creator.create_static_libraries("build/lib/static/obj", "build/lib/static")

        assert libraries == [
            project / "build/lib/static/libnet.a",
            project / "build/lib/static/libutil.a",
        ]
        assert (project / "build/lib/static/libnet.a").read_text() == "net object\n"
        assert "+ build/lib/static/libutil.a" in capsys.readouterr().out

    def test_shared_libraries_per_object(self, creator, project, compiler_log):
        libraries = creator.create_shared_libraries("build/lib/static/obj", "build/lib/static")

        assert [lib.name for lib in libraries] == ["libnet.so", "libutil.so"]
        assert "-shared build/lib/static/obj/net.o -o build/lib/static/libnet.so" in compiler_log.read_text()

    def test_no_objects(self, creator, project):
        (project / "empty").mkdir()

        with pytest.raises(ArchiveError, match="No object files"):
            creator.create_shared_libraries("empty", "out")

    def test_missing_object_dir(self, creator):
        with pytest.raises(ArchiveError, match="was not found"):
            creator.create_shared_libraries("missing", "out")
