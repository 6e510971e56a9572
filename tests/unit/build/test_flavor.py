"""Unit tests for build flavors."""

import pytest

from kiln.build.flavor import BuildFlavor, BuildTarget


class TestBuildFlavor:
    """Test suite for BuildFlavor."""

    def test_debug_flags(self):
        assert BuildFlavor.DEBUG.compile_flags == ["-g", "-O0", "-Wall", "-Wextra", "-pedantic"]
        assert BuildFlavor.DEBUG.link_flags == []

    def test_release_strips_at_link_time(self):
        assert BuildFlavor.RELEASE.compile_flags == ["-O2", "-flto"]
        assert "-s" in BuildFlavor.RELEASE.link_flags
        assert "-s" not in BuildFlavor.RELEASE.compile_flags

    def test_library_flavors(self):
        assert BuildFlavor.STATIC.compile_flags == []
        assert BuildFlavor.DYNAMIC.compile_flags == ["-fPIC"]
        assert BuildFlavor.STATIC.is_library
        assert BuildFlavor.DYNAMIC.is_library
        assert not BuildFlavor.DEBUG.is_library

    def test_from_name(self):
        assert BuildFlavor.from_name("Release") is BuildFlavor.RELEASE
        assert BuildFlavor.from_name(" static ") is BuildFlavor.STATIC

    def test_from_name_unknown(self):
        with pytest.raises(ValueError, match="Unknown build flavor"):
            BuildFlavor.from_name("profile")


class TestBuildTarget:
    """Test suite for BuildTarget."""

    def test_module_target(self):
        target = BuildTarget(BuildFlavor.RELEASE, "net")
        assert target.label == "net (release)"

    def test_plain_target_label(self):
        assert BuildTarget(BuildFlavor.DEBUG).label == "debug"

    def test_library_flavor_rejects_module(self):
        with pytest.raises(ValueError):
            BuildTarget(BuildFlavor.STATIC, "net")
