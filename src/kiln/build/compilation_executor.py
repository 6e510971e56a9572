"""Compilation Executor.

This module compiles the object files named by a build's dependency rules.

Design:
    - One "-c" invocation per compilation unit, run in parallel
    - Sources outside the gate set (the changed set for incremental builds)
      are reported as skipped and not compiled
    - Rules are unique per object name, so no two workers write the same file
    - Output of every invocation goes through the Diagnostic Aggregator; the
      first non-zero exit fails the whole pass
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, List, Optional

from ..console import Color, Console
from .dependency_extractor import DependencyRule
from .diagnostics import CODE_ERROR_MESSAGE, DiagnosticAggregator
from .parallel import ParallelRunner
from .toolchain import Toolchain

logger = logging.getLogger(__name__)


class CompilationError(Exception):
    """Raised when compilation operations fail."""
    pass


@dataclass
class CompilationSummary:
    """What a compilation pass did."""

    compiled: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    warnings: int = 0


class CompilationExecutor:
    """Compiles dependency rules to object files.

    This class handles:
    - Gating rules on the changed set
    - Building each compiler command line
    - Running compilations in parallel and failing fast
    """

    def __init__(
        self,
        toolchain: Toolchain,
        runner: ParallelRunner,
        aggregator: DiagnosticAggregator,
        console: Optional[Console] = None,
    ):
        """Initialize compilation executor.

        Args:
            toolchain: Compiler access
            runner: Worker pool
            aggregator: Diagnostic Aggregator for compiler output
            console: Terminal writer
        """
        self.toolchain = toolchain
        self.runner = runner
        self.aggregator = aggregator
        self.console = console or aggregator.console

    def build_command(
        self,
        rule: DependencyRule,
        object_path: str,
        compile_flags: List[str],
        include_flags: List[str],
    ) -> List[str]:
        """Compiler command for one rule.

        Example:
            ["g++", "-c", "src/main.cpp", "-o", "build/debug/obj/main.o",
             "-Iinclude", "-g", "-O0", "-Wall", "-Wextra", "-pedantic"]
        """
        args = ["-c", rule.source_path, "-o", object_path]
        args.extend(include_flags)
        args.extend(compile_flags)
        return self.toolchain.compiler_command(args)

    def compile_rules(
        self,
        rules: List[DependencyRule],
        object_dir: str,
        compile_flags: List[str],
        include_flags: List[str],
        gate: Optional[Collection[str]] = None,
        skip_reason: str = "Has not been changed",
    ) -> CompilationSummary:
        """Compile every eligible rule.

        Args:
            rules: Parsed Dependency Record
            object_dir: Object directory, project-relative
            compile_flags: Flavor flags
            include_flags: "-I" flags (header directory and third-party)
            gate: Sources allowed to compile; None compiles every rule
            skip_reason: Text shown for gated-out sources

        Returns:
            CompilationSummary

        Raises:
            CompilationError: If any compilation fails
        """
        summary = CompilationSummary()
        jobs: List[DependencyRule] = []

        for rule in rules:
            if not rule.is_compilation_unit:
                logger.info(f"Not a compilation unit: {rule.object_name}")
                continue
            if gate is not None and rule.source_path not in gate:
                self.console.print(f"Skipping: {rule.source_path} ({skip_reason})", Color.PURPLE)
                logger.info(f"Skipping file: {rule.source_path}")
                summary.skipped.append(rule.source_path)
                continue
            jobs.append(rule)

        Path(self.toolchain.project_dir, object_dir).mkdir(parents=True, exist_ok=True)

        def compile_one(rule: DependencyRule) -> int:
            object_path = f"{object_dir}/{rule.object_name}"
            self.console.print(f"{rule.source_path} -> {object_path}", Color.BLUE)
            cmd = self.build_command(rule, object_path, compile_flags, include_flags)
            report = self.aggregator.report(self.toolchain.run(cmd))
            if not report.success:
                raise CompilationError(f"{CODE_ERROR_MESSAGE}: {rule.source_path}")
            return report.warning_count

        warnings = self.runner.map(compile_one, jobs, description="Compiling")

        summary.compiled = [rule.source_path for rule in jobs]
        summary.warnings = sum(warnings)
        logger.info(f"Compiled {len(summary.compiled)} files, skipped {len(summary.skipped)}")
        return summary
