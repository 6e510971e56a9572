"""Linker.

Links every object file of a flavor into the final executable, using the
configured compiler as the linker driver.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..console import Color, Console
from .diagnostics import CODE_ERROR_MESSAGE, DiagnosticAggregator
from .toolchain import Toolchain

logger = logging.getLogger(__name__)


class LinkerError(Exception):
    """Raised when linking operations fail."""
    pass


@dataclass
class LinkResult:
    """Result of linking."""

    binary_path: Path
    object_files: List[str]
    libraries: List[str]


def split_library_flags(flags: List[str]) -> Tuple[List[str], List[str]]:
    """Separate "-L" search dirs from "-l" names, keeping order."""
    dirs = [flag for flag in flags if flag.startswith("-L")]
    names = [flag for flag in flags if flag.startswith("-l")]
    return dirs, names


class Linker:
    """Links object files with the compiler driver."""

    def __init__(self, toolchain: Toolchain, aggregator: DiagnosticAggregator, console: Optional[Console] = None):
        self.toolchain = toolchain
        self.aggregator = aggregator
        self.console = console or aggregator.console

    def collect_objects(self, object_dir: str) -> List[str]:
        """List the regular files in a project-relative object directory.

        Raises:
            LinkerError: If the directory does not exist
        """
        directory = self.toolchain.project_dir / object_dir
        if not directory.is_dir():
            raise LinkerError(f"The directory with the object files was not found: {object_dir}")
        return sorted(
            f"{object_dir}/{entry.name}" for entry in directory.iterdir() if entry.is_file()
        )

    def link(
        self,
        object_dir: str,
        output_path: str,
        link_flags: List[str],
        library_flags: Optional[List[str]] = None,
    ) -> LinkResult:
        """Link all objects in ``object_dir`` into ``output_path``.

        Args:
            object_dir: Project-relative object directory
            output_path: Project-relative executable path
            link_flags: Flavor link flags (release adds "-s")
            library_flags: Resolved "-L"/"-l" flags, if the project uses
                third-party libraries

        Returns:
            LinkResult

        Raises:
            LinkerError: If there is nothing to link or the link fails
        """
        objects = self.collect_objects(object_dir)
        if not objects:
            raise LinkerError(f"No object files to link in {object_dir}")

        dirs, names = split_library_flags(library_flags or [])

        cmd = self.toolchain.compiler_command(objects + ["-o", output_path] + list(link_flags) + dirs + names)

        if names:
            lines = ["libraries:"] + [f"+ {name}" for name in names]
            self.console.print_block(lines, Color.GREEN)
            logger.info(f"Linking with third-party libraries: {names}")
        else:
            logger.info("Linking without third-party libraries")

        report = self.aggregator.report(self.toolchain.run(cmd))
        if not report.success:
            raise LinkerError(f"{CODE_ERROR_MESSAGE}: linking {output_path} failed")

        binary_name = Path(output_path).name
        summary = " + ".join(Path(obj).name for obj in objects)
        self.console.print(f"{summary} -> {binary_name}", Color.CYAN)

        return LinkResult(
            binary_path=self.toolchain.project_dir / output_path,
            object_files=objects,
            libraries=names,
        )
