"""
Source file discovery.

This module handles:
- Recursively scanning a directory for files with a given extension
- Skipping excluded subtrees (the build directory) by path, not by name
- Reporting paths as project-relative POSIX strings
- Failing with ELOOP when a directory symlink leads back into the walk
"""

import errno
import logging
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)


class SourceScannerError(Exception):
    """Raised when no source files are left to build."""
    pass


class SourceScanner:
    """
    Scans project directories for source and header files.

    The scanner never descends into a directory listed in ``excluded``; the
    comparison is done on resolved paths so a ``build`` directory nested
    somewhere under ``src`` is still scanned.
    """

    def __init__(self, project_dir: Path, excluded: Optional[Iterable[Path]] = None):
        """
        Initialize source scanner.

        Args:
            project_dir: Root project directory (paths are reported relative to it)
            excluded: Directories that must not be entered
        """
        self.project_dir = Path(project_dir).resolve()
        self.excluded: Set[Path] = set()
        for path in excluded or []:
            self.exclude(path)

    def exclude(self, path: Path) -> None:
        path = Path(path)
        if not path.is_absolute():
            path = self.project_dir / path
        self.excluded.add(path.resolve())

    def collect(self, root: str, extension: str) -> List[str]:
        """
        Find every file under ``root`` whose suffix equals ``extension``.

        Args:
            root: Directory to scan, relative to the project (or absolute)
            extension: Suffix including the dot (e.g., ".cpp")

        Returns:
            Sorted project-relative POSIX paths; empty if ``root`` is missing

        Raises:
            OSError: If a directory cannot be read, or a directory symlink
                loops back to one of its ancestors (errno ELOOP)
        """
        root_path = Path(root)
        if not root_path.is_absolute():
            root_path = self.project_dir / root_path

        if not root_path.is_dir():
            logger.info(f"Source root does not exist: {root_path}")
            return []

        found: List[str] = []
        self._walk(root_path, extension, found, frozenset())
        found.sort()
        logger.info(f"Collected {len(found)} '{extension}' files under {root}")
        return found

    def collect_many(self, root: str, extensions: Iterable[str]) -> List[str]:
        """Collect files for several extensions under one root."""
        found: List[str] = []
        for extension in extensions:
            found.extend(self.collect(root, extension))
        return sorted(set(found))

    def _walk(self, directory: Path, extension: str, found: List[str], ancestors: FrozenSet[Path]) -> None:
        resolved = directory.resolve()
        if resolved in self.excluded:
            return
        if resolved in ancestors:
            raise OSError(errno.ELOOP, "Directory symlink loop", str(directory))
        ancestors = ancestors | {resolved}

        for entry in directory.iterdir():
            if entry.is_dir():
                self._walk(entry, extension, found, ancestors)
            elif entry.suffix == extension:
                found.append(self._relative(entry))

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.project_dir).as_posix()
        except ValueError:
            return path.as_posix()
