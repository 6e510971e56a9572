"""Diagnostic Aggregator.

Classifies the captured output of one compiler/archiver invocation.

Design:
    - stdout is echoed verbatim
    - On success, "file:line:col: warning|error: msg" lines are grouped per
      file (files sorted) and printed after any other stderr text; known
      context noise ("In constructor" and friends) is dropped
    - Russian-locale compilers report warnings as "предупреждение"; those lines
      are grouped the same way
    - On failure, every stderr line is echoed in red and the caller turns the
      report into its own error
    - Each report is printed as one atomic console block
"""

import logging
import re
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..console import Color, Console

logger = logging.getLogger(__name__)

DIAGNOSTIC_PATTERN = re.compile(r"^(.*?):(\d+):(\d+):\s+(предупреждение|warning|error):\s+(.*)$")

NOISE_MARKERS = (
    "In constructor",
    "In member function",
    "In file included from",
)

CODE_ERROR_MESSAGE = "Error in the code"


@dataclass
class Diagnostic:
    """One parsed compiler message."""

    file: str
    line: int
    column: int
    severity: str
    message: str

    def format(self) -> str:
        return f"{self.line:>5}:{self.column:<3}  {self.message}"


@dataclass
class DiagnosticReport:
    """Classified output of a single process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    diagnostics: Dict[str, List[Diagnostic]] = field(default_factory=dict)
    other_lines: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def warning_count(self) -> int:
        return sum(len(items) for items in self.diagnostics.values())


def parse_diagnostic(line: str) -> Optional[Diagnostic]:
    """Parse a "file:line:col: severity: message" line, or return None."""
    match = DIAGNOSTIC_PATTERN.match(line)
    if not match:
        return None
    return Diagnostic(
        file=match.group(1),
        line=int(match.group(2)),
        column=int(match.group(3)),
        severity=match.group(4),
        message=match.group(5),
    )


def is_noise(line: str) -> bool:
    return any(marker in line for marker in NOISE_MARKERS)


class DiagnosticAggregator:
    """Classifies process output and echoes it to the console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def classify(self, result: subprocess.CompletedProcess) -> DiagnosticReport:
        report = DiagnosticReport(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
        if not report.success:
            return report

        for line in report.stderr.splitlines():
            diagnostic = parse_diagnostic(line)
            if diagnostic is not None:
                report.diagnostics.setdefault(diagnostic.file, []).append(diagnostic)
            elif line.strip() and not is_noise(line):
                report.other_lines.append(line)
        return report

    def report(self, result: subprocess.CompletedProcess) -> DiagnosticReport:
        """Classify ``result`` and print it.

        Args:
            result: Completed process with text stdout/stderr captured

        Returns:
            The classified report; check ``success`` before continuing
        """
        report = self.classify(result)

        if not report.success:
            with self.console.hold():
                if report.stdout:
                    self.console.print(report.stdout.rstrip("\n"))
                self.console.print_block(report.stderr.splitlines(), Color.RED)
            logger.error(f"Process exited with {report.returncode}: {report.stderr.strip()}")
            return report

        lines: List[str] = list(report.other_lines)
        for file in sorted(report.diagnostics):
            lines.append(f"⚠ {file}")
            lines.extend(f"    {d.format()}" for d in report.diagnostics[file])

        with self.console.hold():
            if report.stdout:
                self.console.print(report.stdout.rstrip("\n"))
            self.console.print_block(lines, Color.YELLOW)

        if report.warning_count:
            logger.warning(f"{report.warning_count} compiler warnings")
        return report
