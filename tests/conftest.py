"""Shared fixtures: a fake compiler driver, a fake archiver and project factories."""

import os
import stat
import sys
from pathlib import Path
from typing import Dict, Optional

import pytest

# Stand-in for gcc/g++. Understands --version, -MM, -c, -shared and -o.
# A source containing FAIL_COMPILE fails to compile, FAIL_DEPS fails -MM and
# WARN_ME produces a warning on stderr. Every invocation is appended to
# $FAKECC_LOG when it is set.
FAKE_COMPILER = """#!/bin/sh
if [ -n "$FAKECC_LOG" ]; then
    echo "$*" >> "$FAKECC_LOG"
fi
mode=link
out=""
src=""
expect_out=0
for arg in "$@"; do
    if [ "$expect_out" = 1 ]; then
        out="$arg"
        expect_out=0
        continue
    fi
    case "$arg" in
        --version) echo "fakecc 1.0"; exit 0 ;;
        -MM) mode=deps ;;
        -c) mode=compile ;;
        -o) expect_out=1 ;;
        -*) ;;
        *.c|*.cpp) src="$arg" ;;
    esac
done
case "$mode" in
    deps)
        if grep -q FAIL_DEPS "$src"; then
            echo "$src:1:1: fatal error: missing.hpp: No such file or directory" >&2
            exit 1
        fi
        base=$(basename "$src")
        echo "${base%.*}.o: $src"
        ;;
    compile)
        if grep -q FAIL_COMPILE "$src"; then
            echo "$src:2:5: error: 'boom' was not declared in this scope" >&2
            exit 1
        fi
        if grep -q WARN_ME "$src"; then
            echo "$src: In function 'int main()':" >&2
            echo "$src:3:9: warning: unused variable 'x' [-Wunused-variable]" >&2
        fi
        echo "object $src" > "$out"
        ;;
    link)
        echo "binary" > "$out"
        ;;
esac
exit 0
"""

FAKE_ARCHIVER = """#!/bin/sh
shift
out="$1"
shift
cat "$@" > "$out"
"""


def _write_script(path: Path, content: str) -> Path:
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_config(
    project_dir: Path,
    compiler: str,
    lang: str = "c++",
    name: str = "hello",
    files: Optional[Dict[str, str]] = None,
    library_paths=(),
    extra: str = "",
) -> Path:
    """Write a kiln.ini for tests."""
    lines = [
        "[project]",
        f"name = {name}",
        "version = 0.1.0",
        "created = 2025",
        "",
        "[settings]",
        f"lang = {lang}",
        f"compiler = {compiler}",
        "source_dir = src",
        "header_dir = include",
        "",
        "[files]",
    ]
    for path, state in (files or {}).items():
        lines.append(f"{path} = {state}")
    lines += ["", "[libraries]", "path ="]
    lines += [f"    {p}" for p in library_paths]
    config = project_dir / "kiln.ini"
    config.write_text("\n".join(lines) + "\n" + extra)
    return config


@pytest.fixture
def fake_compiler(tmp_path):
    """Path to the fake compiler script."""
    if sys.platform.startswith("win"):
        pytest.skip("fake compiler is a POSIX shell script")
    tools = tmp_path / "tools"
    tools.mkdir(exist_ok=True)
    return _write_script(tools / "fakecc", FAKE_COMPILER)


@pytest.fixture
def fake_archiver(tmp_path, monkeypatch):
    """Put a fake 'ar' first on PATH."""
    if sys.platform.startswith("win"):
        pytest.skip("fake archiver is a POSIX shell script")
    tools = tmp_path / "tools"
    tools.mkdir(exist_ok=True)
    _write_script(tools / "ar", FAKE_ARCHIVER)
    monkeypatch.setenv("PATH", f"{tools}{os.pathsep}{os.environ.get('PATH', '')}")
    return tools / "ar"


@pytest.fixture
def compiler_log(tmp_path, monkeypatch):
    """File collecting every fake compiler command line."""
    log = tmp_path / "fakecc.log"
    monkeypatch.setenv("FAKECC_LOG", str(log))
    return log


@pytest.fixture
def make_project(tmp_path, fake_compiler):
    """Factory creating a project tree with a kiln.ini using the fake compiler."""

    def factory(sources: Dict[str, str], **config) -> Path:
        project = tmp_path / "project"
        project.mkdir(exist_ok=True)
        for relative, content in sources.items():
            path = project / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        write_config(project, str(fake_compiler), **config)
        return project

    return factory


@pytest.fixture
def config_writer():
    """The write_config() helper, for tests that lay out projects by hand."""
    return write_config
