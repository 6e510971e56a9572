"""Toolchain access.

Locates and health-checks the external programs Kiln drives: the configured
C/C++ compiler (used for dependency listing, compilation and linking) and the
system archiver.

Design:
    - The compiler is checked with "--version" before any build step
    - All invocations run with the project directory as cwd so that the
      project-relative paths in commands and dependency records resolve
    - No timeout: a hung compiler hangs the build
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

ARCHIVER = "ar"


class ToolchainError(Exception):
    """Raised when the compiler or archiver is missing or broken."""
    pass


class Toolchain:
    """Compiler and archiver for one project.

    Example usage:
        toolchain = Toolchain("g++", project_dir=Path("."))
        toolchain.check_compiler()
        result = toolchain.run(toolchain.compiler_command(["-MM", "src/main.cpp"]))
    """

    def __init__(self, compiler: str, project_dir: Path, archiver: Optional[str] = None):
        """Initialize toolchain.

        Args:
            compiler: Compiler binary name or path (e.g., "g++")
            project_dir: Working directory for every invocation
            archiver: Archiver override (default: "ar" from PATH)
        """
        self.compiler = (compiler or "").strip()
        self.project_dir = Path(project_dir)
        self._archiver = archiver

    def check_compiler(self) -> None:
        """Verify that the compiler runs.

        Raises:
            ToolchainError: If no compiler is configured or it cannot report its version
        """
        logger.info(f"Checking the compiler: {self.compiler!r}")
        if not self.compiler:
            raise ToolchainError("The compiler is missing: set 'compiler' in [settings]")

        try:
            result = subprocess.run(
                [self.compiler, "--version"],
                capture_output=True,
                text=True,
                cwd=self.project_dir,
            )
        except OSError as e:
            raise ToolchainError(
                f"Incorrect compiler name or missing compiler: {self.compiler} ({e})"
            ) from e

        if result.returncode != 0:
            raise ToolchainError(f"Incorrect compiler name or missing compiler: {self.compiler}")

        version = result.stdout.splitlines()[0] if result.stdout else "unknown version"
        logger.info(f"Compiler OK: {version}")

    def find_archiver(self) -> str:
        """Locate the archiver used for static libraries.

        Returns:
            Path to the archiver executable

        Raises:
            ToolchainError: If no archiver is available
        """
        name = self._archiver or ARCHIVER
        path = shutil.which(name)
        if path is None:
            raise ToolchainError(f"Archiver not found: {name}. Ensure binutils is installed.")
        return path

    def compiler_command(self, args: List[str]) -> List[str]:
        return [self.compiler] + list(args)

    def run(self, cmd: List[str]) -> subprocess.CompletedProcess:
        """Run a command in the project directory, capturing text output.

        Raises:
            OSError: If the program cannot be started
        """
        logger.info(f"Running: {' '.join(cmd)}")
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=self.project_dir,
        )
