"""Archive Creator.

This module packages compiled object files as libraries.

Design:
    - Static: one "ar rcs lib{stem}.a {stem}.o" per object file
    - Dynamic: one "{compiler} -shared {stem}.o -o lib{stem}.so" per object
      file (objects must be built with -fPIC)
    - One library per translation unit, not one combined library
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

from ..console import Color, Console
from .diagnostics import DiagnosticAggregator
from .toolchain import Toolchain

logger = logging.getLogger(__name__)


class ArchiveError(Exception):
    """Raised when archive creation operations fail."""
    pass


class ArchiveCreator:
    """Creates static archives and shared objects from object files.

    This class handles:
    - Running the archiver (ar) for static libraries
    - Running the compiler with -shared for shared libraries
    - Reporting each produced library
    """

    def __init__(self, toolchain: Toolchain, aggregator: DiagnosticAggregator, console: Optional[Console] = None):
        """Initialize archive creator.

        Args:
            toolchain: Compiler and archiver access
            aggregator: Diagnostic Aggregator for tool output
            console: Terminal writer
        """
        self.toolchain = toolchain
        self.aggregator = aggregator
        self.console = console or aggregator.console

    def _object_files(self, object_dir: str) -> List[str]:
        directory = self.toolchain.project_dir / object_dir
        if not directory.is_dir():
            raise ArchiveError(f"The directory with the object files was not found: {object_dir}")
        objects = sorted(
            f"{object_dir}/{entry.name}" for entry in directory.iterdir() if entry.is_file()
        )
        if not objects:
            raise ArchiveError(f"No object files provided for archive in {object_dir}")
        return objects

    def _package(
        self,
        object_dir: str,
        output_dir: str,
        suffix: str,
        command: Callable[[str, str], List[str]],
    ) -> List[Path]:
        produced = []
        for obj in self._object_files(object_dir):
            library = f"{output_dir}/lib{Path(obj).stem}{suffix}"
            report = self.aggregator.report(self.toolchain.run(command(obj, library)))
            if not report.success:
                raise ArchiveError(f"Library creation failed for {library}")
            self.console.print(f"+ {library}", Color.GREEN)
            produced.append(self.toolchain.project_dir / library)

        logger.info(f"Created {len(produced)} '{suffix}' libraries in {output_dir}")
        return produced

    def create_static_libraries(self, object_dir: str, output_dir: str) -> List[Path]:
        """Archive each object file into its own ``lib{stem}.a``.

        Args:
            object_dir: Project-relative object directory
            output_dir: Project-relative directory for the archives

        Returns:
            Paths of the created archives

        Raises:
            ArchiveError: If there are no objects or the archiver fails
            ToolchainError: If no archiver is installed
        """
        archiver = self.toolchain.find_archiver()

        # 'rcs' flags: r=insert/replace, c=create, s=index (ranlib)
        return self._package(
            object_dir,
            output_dir,
            ".a",
            lambda obj, library: [archiver, "rcs", library, obj],
        )

    def create_shared_libraries(self, object_dir: str, output_dir: str) -> List[Path]:
        """Link each object file into its own ``lib{stem}.so``.

        Raises:
            ArchiveError: If there are no objects or the link fails
        """
        return self._package(
            object_dir,
            output_dir,
            ".so",
            lambda obj, library: self.toolchain.compiler_command(["-shared", obj, "-o", library]),
        )
