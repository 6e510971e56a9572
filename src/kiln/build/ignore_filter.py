"""Ignore filter.

Cross-references discovered sources against the ``[files]`` registry of
kiln.ini: unknown files are registered as "on", files marked "off" are dropped
from the current build and reported.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..config.project_config import ProjectConfig
from ..console import Color, Console
from .source_scanner import SourceScannerError

logger = logging.getLogger(__name__)


@dataclass
class IgnoreResult:
    """Outcome of filtering one source set."""

    included: List[str]
    ignored: List[str] = field(default_factory=list)
    registered: List[str] = field(default_factory=list)


class IgnoreFilter:
    """Applies the per-file on/off flags from the project configuration."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def apply(self, sources: List[str], config: ProjectConfig) -> IgnoreResult:
        """Filter ``sources`` through the file registry.

        Args:
            sources: Discovered source paths
            config: Working copy of the project configuration (mutated:
                unknown paths are registered as "on")

        Returns:
            IgnoreResult with the paths left to build

        Raises:
            SourceScannerError: If nothing is left after filtering
        """
        registered = config.register_files(sources)
        if registered:
            logger.info(f"Registered new files: {registered}")

        included = []
        ignored = []
        for path in sources:
            if config.is_enabled(path):
                included.append(path)
            else:
                ignored.append(path)

        if ignored:
            self.console.print_block([f"ignore: {path}" for path in ignored], Color.RED)
            logger.info(f"Ignored files: {ignored}")
        else:
            self.console.print("None", Color.RED)
            logger.info("There are no ignored files")

        if not included:
            raise SourceScannerError("There are no files to build!")

        return IgnoreResult(included=included, ignored=ignored, registered=registered)
