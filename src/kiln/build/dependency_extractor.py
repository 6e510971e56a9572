"""Dependency Extractor.

Asks the compiler for make-style dependency rules (``-MM``) for every source
of a build, appends them to the flavor's Dependency Record and parses the
record back into object/source pairs.

Design:
    - One "-MM" invocation per source, run in parallel; any failure is fatal
    - The record is appended to, never truncated, so it accumulates duplicate
      rules across builds; parsing collapses repeats and rejects two sources
      that compile to the same object file
    - Continuation lines ("\\" + newline) are joined before parsing
    - Each rule is reduced to a DependencyRule naming the object file and the
      single source file it is compiled from; headers are dropped
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Dict, List, Optional

from .diagnostics import DiagnosticAggregator
from .parallel import ParallelRunner
from .toolchain import Toolchain

logger = logging.getLogger(__name__)

OBJECT_SUFFIX = ".o"


class DependencyExtractionError(Exception):
    """Raised when dependency listing fails or the record is missing."""
    pass


@dataclass(frozen=True)
class DependencyRule:
    """One parsed ``<object>: <prerequisites...>`` rule."""

    object_name: str
    source_path: str

    @property
    def is_compilation_unit(self) -> bool:
        """True when the target is an object file built from a known source."""
        return self.object_name.endswith(OBJECT_SUFFIX) and bool(self.source_path)


def join_continuations(text: str) -> str:
    """Fold backslash-newline continuations into single logical lines."""
    return text.replace("\\\r\n", " ").replace("\\\n", " ")


def parse_rule(line: str, source_extension: str) -> DependencyRule:
    """Split one logical rule line.

    Args:
        line: e.g. "main.o: src/main.cpp include/util.hpp"
        source_extension: Extension of compilable units (".c" or ".cpp")

    Returns:
        DependencyRule; ``source_path`` is empty when no prerequisite has the
        source extension

    Example:
        parse_rule("main.o: main.cpp util.hpp", ".cpp")
        # Returns: DependencyRule(object_name='main.o', source_path='main.cpp')
    """
    target, _, prerequisites = line.strip().partition(":")
    source = ""
    for token in prerequisites.split():
        if token.endswith(source_extension):
            source = token
            break
    return DependencyRule(object_name=target.strip(), source_path=source)


def parse_rules(
    text: str,
    source_extension: str,
    active_sources: Optional[Collection[str]] = None,
) -> List[DependencyRule]:
    """Parse a whole Dependency Record.

    Repeated rules for the same object and source collapse into one. When two
    different sources map to the same object name (``a/util.cpp`` and
    ``b/util.cpp`` both produce ``util.o``) the record is ambiguous and parsing
    fails, unless ``active_sources`` is given and only one of them is still
    part of the build; a rule left behind by a moved or deleted source then
    yields to the current one.

    Args:
        text: Dependency Record contents
        source_extension: Extension of compilable units
        active_sources: Sources of the current build, if known

    Raises:
        DependencyExtractionError: If one object name maps to two sources
    """
    rules: Dict[str, DependencyRule] = {}
    for line in join_continuations(text).splitlines():
        if not line.strip():
            continue
        rule = parse_rule(line, source_extension)
        existing = rules.get(rule.object_name)
        if existing is None or not existing.source_path:
            rules[rule.object_name] = rule
            continue
        if not rule.source_path or rule.source_path == existing.source_path:
            continue
        if active_sources is not None and existing.source_path not in active_sources:
            rules[rule.object_name] = rule
            continue
        if active_sources is not None and rule.source_path not in active_sources:
            continue
        raise DependencyExtractionError(
            f"{existing.source_path} and {rule.source_path} both compile to {rule.object_name}; "
            f"rename one of them"
        )
    return list(rules.values())


class DependencyExtractor:
    """Runs ``-MM`` over a source set and maintains the Dependency Record."""

    def __init__(
        self,
        toolchain: Toolchain,
        runner: ParallelRunner,
        aggregator: DiagnosticAggregator,
        source_extension: str,
    ):
        self.toolchain = toolchain
        self.runner = runner
        self.aggregator = aggregator
        self.source_extension = source_extension

    def extract(
        self,
        sources: List[str],
        record_path: Path,
        include_flags: Optional[List[str]] = None,
    ) -> List[str]:
        """List dependencies of ``sources`` and append them to ``record_path``.

        Args:
            sources: Project-relative source paths
            record_path: Dependency Record to append to (created if absent)
            include_flags: Extra ``-I`` flags so quoted project headers resolve

        Returns:
            The raw rule text produced for each source, in source order

        Raises:
            DependencyExtractionError: If any invocation exits non-zero
        """
        flags = list(include_flags or [])

        def list_dependencies(source: str) -> str:
            cmd = self.toolchain.compiler_command(["-MM", source] + flags)
            result = self.toolchain.run(cmd)
            if result.returncode != 0:
                self.aggregator.report(result)
                raise DependencyExtractionError(
                    f"Dependency listing failed for {source}"
                )
            return result.stdout

        outputs = self.runner.map(list_dependencies, sources, description="Dependencies")

        record_path.parent.mkdir(parents=True, exist_ok=True)
        with open(record_path, "a", encoding="utf-8") as f:
            for output in outputs:
                f.write(output if output.endswith("\n") else output + "\n")

        logger.info(f"Appended {len(outputs)} dependency rules to {record_path}")
        return outputs

    def read_rules(
        self, record_path: Path, active_sources: Optional[Collection[str]] = None
    ) -> List[DependencyRule]:
        """Parse the Dependency Record.

        Args:
            record_path: Dependency Record of the flavor
            active_sources: Sources of the current build; stale rules for other
                sources give way to them on object name clashes

        Raises:
            DependencyExtractionError: If the record does not exist or two
                sources compile to the same object file
        """
        if not record_path.exists():
            raise DependencyExtractionError(f"The dependency file was not found: {record_path}")

        with open(record_path, "r", encoding="utf-8") as f:
            rules = parse_rules(f.read(), self.source_extension, active_sources)
        logger.info(f"Parsed {len(rules)} dependency rules from {record_path}")
        return rules
