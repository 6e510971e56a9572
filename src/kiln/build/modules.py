"""Module registry operations.

A module is a sub-directory of the source tree that is built on its own, into
``build/module/<name>/``, with its own Change and Dependency Records.
"""

import errno
import logging
import shutil
import time
from pathlib import Path
from typing import FrozenSet, Optional

from ..config.layout import BuildLayout
from ..config.project_config import ModuleDefinition, ProjectConfigError, ProjectConfigStore
from ..console import Color, Console
from .flavor import BuildFlavor
from .orchestrator import BuildOrchestrator, BuildResult
from .source_scanner import SourceScanner

logger = logging.getLogger(__name__)


class ModuleError(Exception):
    """Raised for unknown, duplicate or missing modules."""
    pass


class ModuleManager:
    """Adds, removes and builds modules declared in kiln.ini."""

    def __init__(
        self,
        project_dir: Path,
        orchestrator: Optional[BuildOrchestrator] = None,
        console: Optional[Console] = None,
    ):
        self.console = console or Console()
        self.orchestrator = orchestrator or BuildOrchestrator(Path(project_dir), console=self.console)
        self.layout: BuildLayout = self.orchestrator.layout
        self.store = ProjectConfigStore(self.layout.config_path)

    def _scanner(self) -> SourceScanner:
        return SourceScanner(self.layout.project_dir, excluded=[self.layout.build_root])

    def find_module_dir(self, source_dir: str, name: str) -> Optional[str]:
        """First directory called ``name`` under ``source_dir`` (depth-first, sorted).

        Returns:
            Project-relative POSIX path, or None

        Raises:
            OSError: If a directory symlink loops back to one of its ancestors
        """
        root = self.layout.project_dir / source_dir
        if not root.is_dir():
            return None

        build_root = self.layout.build_root.resolve()

        def search(directory: Path, ancestors: FrozenSet[Path]) -> Optional[Path]:
            for entry in sorted(directory.iterdir()):
                if not entry.is_dir() or entry.resolve() == build_root:
                    continue
                if entry.name == name:
                    return entry
                if entry.resolve() in ancestors:
                    raise OSError(errno.ELOOP, "Directory symlink loop", str(entry))
                found = search(entry, ancestors | {entry.resolve()})
                if found is not None:
                    return found
            return None

        found = search(root, frozenset([root.resolve()]))
        if found is None:
            return None
        return found.relative_to(self.layout.project_dir).as_posix()

    def add(self, name: str) -> ModuleDefinition:
        """Register a module for the directory named ``name`` under the source dir.

        Raises:
            ModuleError: If the module exists or no such directory is found
        """
        config = self.store.load()
        if name in config.modules:
            raise ModuleError(f"Module {name} already exists")

        path = self.find_module_dir(config.settings.source_dir, name)
        if path is None:
            raise ModuleError(f"The directory was not found: {name}")

        module = ModuleDefinition(
            path=path,
            dependencies=self._scanner().collect(path, config.settings.source_extension),
            output_name=name,
        )
        config.modules[name] = module
        self.store.save(config)

        self.console.print(f"+ module.{name}", Color.GREEN)
        logger.info(f"The {name} module has been created at {path}")
        return module

    def remove(self, name: str) -> None:
        """Delete a module's registry entry and its build subtree.

        Raises:
            ModuleError: If the module is not registered
        """
        config = self.store.load()
        if name not in config.modules:
            raise ModuleError(f"Module {name} not found")

        del config.modules[name]
        self.store.save(config)

        module_root = self.layout.module_root(name)
        if module_root.exists():
            logger.info(f"Deleting module build directory: {module_root}")
            shutil.rmtree(module_root)

        self.console.print(f"- module.{name}", Color.RED)
        logger.info(f"The removal of the {name} module has been completed")

    def build(self, name: str, release: bool = False) -> BuildResult:
        """Refresh a module's source list and build it.

        Args:
            name: Module name
            release: Build the release flavor instead of debug

        Returns:
            BuildResult of the module build
        """
        start_time = time.time()
        try:
            config = self.store.load()
            if name not in config.modules:
                raise ModuleError(f"Module {name} not found")

            module = config.modules[name]
            module.dependencies = self._scanner().collect(module.path, config.settings.source_extension)
            self.store.save(config)
            logger.info(f"Refreshed module {name}: {module.dependencies}")
        except (ModuleError, ProjectConfigError, OSError) as e:
            return BuildResult(success=False, build_time=time.time() - start_time, message=str(e))

        flavor = BuildFlavor.RELEASE if release else BuildFlavor.DEBUG
        return self.orchestrator.build(flavor, module=name, binary_name=module.output_name or name)
