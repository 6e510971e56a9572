"""Unit tests for dependency listing and record parsing."""

import pytest

from kiln.build.dependency_extractor import (
    DependencyExtractionError,
    DependencyExtractor,
    DependencyRule,
    join_continuations,
    parse_rule,
    parse_rules,
)
from kiln.build.diagnostics import DiagnosticAggregator
from kiln.build.parallel import ParallelRunner
from kiln.build.toolchain import Toolchain
from kiln.console import Console


class TestParseRule:
    """Test rule parsing."""

    def test_first_source_prerequisite(self):
        rule = parse_rule("main.o: main.cpp util.hpp other.hpp", ".cpp")

        assert rule == DependencyRule(object_name="main.o", source_path="main.cpp")
        assert rule.is_compilation_unit

    def test_source_not_first(self):
        rule = parse_rule("a.o: include/a.hpp src/a.cpp", ".cpp")

        assert rule.source_path == "src/a.cpp"

    def test_no_source(self):
        rule = parse_rule("a.o: include/a.hpp", ".cpp")

        assert rule.source_path == ""
        assert not rule.is_compilation_unit

    def test_non_object_target(self):
        rule = parse_rule("stamp: src/a.c", ".c")

        assert not rule.is_compilation_unit

    def test_c_extension_does_not_match_cpp(self):
        assert parse_rule("a.o: src/a.cpp", ".c").source_path == ""


class TestParseRules:
    """Test whole record parsing."""

    def test_continuations(self):
        text = "main.o: src/main.cpp \\\n include/a.hpp \\\n include/b.hpp\n"

        assert join_continuations(text).count("\n") == 1
        assert parse_rules(text, ".cpp") == [DependencyRule("main.o", "src/main.cpp")]

    def test_duplicates_are_collapsed(self):
        text = "a.o: src/a.cpp\nb.o: src/b.cpp\na.o: src/a.cpp x.hpp\n"

        assert parse_rules(text, ".cpp") == [
            DependencyRule("a.o", "src/a.cpp"),
            DependencyRule("b.o", "src/b.cpp"),
        ]

    def test_same_basename_conflict_names_both_sources(self):
        text = "util.o: src/a/util.cpp\nutil.o: src/b/util.cpp\n"

        with pytest.raises(DependencyExtractionError) as exc_info:
            parse_rules(text, ".cpp")

        message = str(exc_info.value)
        assert "src/a/util.cpp" in message
        assert "src/b/util.cpp" in message
        assert "util.o" in message

    def test_same_basename_conflict_between_active_sources(self):
        text = "util.o: src/a/util.cpp\nutil.o: src/b/util.cpp\n"

        with pytest.raises(DependencyExtractionError, match="both compile to util.o"):
            parse_rules(text, ".cpp", active_sources={"src/a/util.cpp", "src/b/util.cpp"})

    def test_stale_rule_yields_to_active_source(self):
        text = "util.o: src/old/util.cpp\nmain.o: src/main.cpp\nutil.o: src/new/util.cpp\n"
        active = {"src/main.cpp", "src/new/util.cpp"}

        assert parse_rules(text, ".cpp", active_sources=active) == [
            DependencyRule("util.o", "src/new/util.cpp"),
            DependencyRule("main.o", "src/main.cpp"),
        ]

    def test_later_stale_rule_is_skipped(self):
        text = "util.o: src/new/util.cpp\nutil.o: src/old/util.cpp\n"

        assert parse_rules(text, ".cpp", active_sources=["src/new/util.cpp"]) == [
            DependencyRule("util.o", "src/new/util.cpp"),
        ]

    def test_header_only_rule_does_not_conflict(self):
        text = "util.o: include/util.hpp\nutil.o: src/util.cpp\n"

        assert parse_rules(text, ".cpp") == [DependencyRule("util.o", "src/util.cpp")]

    def test_blank_lines_ignored(self):
        assert parse_rules("\n\n", ".c") == []


class TestDependencyExtractor:
    """Test suite for DependencyExtractor."""

    @pytest.fixture
    def project(self, tmp_path):
        project = tmp_path / "project"
        (project / "src").mkdir(parents=True)
        (project / "src" / "main.cpp").write_text("int main() { return 0; }\n")
        (project / "src" / "util.cpp").write_text("int util() { return 1; }\n")
        return project

    @pytest.fixture
    def extractor(self, project, fake_compiler):
        console = Console(use_color=False)
        return DependencyExtractor(
            Toolchain(str(fake_compiler), project),
            ParallelRunner(max_workers=2, show_progress=False),
            DiagnosticAggregator(console),
            ".cpp",
        )

    def test_extract_appends_rules(self, extractor, project, compiler_log):
        record = project / "build" / "debug" / "dependencies.d"

        extractor.extract(["src/main.cpp", "src/util.cpp"], record, ["-Iinclude"])

        assert record.read_text() == "main.o: src/main.cpp\nutil.o: src/util.cpp\n"
        assert "-MM src/main.cpp -Iinclude" in compiler_log.read_text()

    def test_record_accumulates_but_parses_once(self, extractor, project):
        record = project / "dependencies.d"

        extractor.extract(["src/main.cpp"], record)
        extractor.extract(["src/main.cpp"], record)

        assert record.read_text().count("main.o:") == 2
        assert extractor.read_rules(record) == [DependencyRule("main.o", "src/main.cpp")]

    def test_failure_is_fatal(self, extractor, project, capsys):
        (project / "src" / "bad.cpp").write_text("// FAIL_DEPS\n")
        record = project / "dependencies.d"

        with pytest.raises(DependencyExtractionError) as exc_info:
            extractor.extract(["src/main.cpp", "src/bad.cpp"], record)

        assert str(exc_info.value) == "Dependency listing failed for src/bad.cpp"
        assert "missing.hpp" in capsys.readouterr().out
        assert not record.exists()

    def test_read_rules_rejects_clashing_sources(self, extractor, project):
        (project / "src" / "a").mkdir()
        (project / "src" / "b").mkdir()
        (project / "src" / "a" / "util.cpp").write_text("int a() { return 0; }\n")
        (project / "src" / "b" / "util.cpp").write_text("int b() { return 0; }\n")
        sources = ["src/a/util.cpp", "src/b/util.cpp"]
        record = project / "dependencies.d"
        extractor.extract(sources, record)

        with pytest.raises(DependencyExtractionError, match="src/a/util.cpp and src/b/util.cpp"):
            extractor.read_rules(record, sources)

    def test_missing_record(self, extractor, project):
        with pytest.raises(DependencyExtractionError, match="The dependency file was not found"):
            extractor.read_rules(project / "nope.d")
