"""
Build orchestration for Kiln projects.

This module coordinates the incremental build from kiln.ini to the final
executable or libraries. It integrates all engine components:
- Configuration (kiln.ini) and build layout
- Compiler health check
- Source collection and ignore filtering
- Dependency extraction (-MM) and third-party library resolution
- Change tracking and parallel compilation
- Linking, or packaging as static/shared libraries
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config.layout import BuildLayout
from ..config.project_config import ProjectConfig, ProjectConfigError, ProjectConfigStore
from ..console import Console
from ..packages.library_resolver import LibraryResolutionError, LibraryResolver, ResolvedLibraries
from .archive_creator import ArchiveCreator, ArchiveError
from .change_tracker import ChangeTracker
from .compilation_executor import CompilationError, CompilationExecutor
from .dependency_extractor import DependencyExtractionError, DependencyExtractor
from .diagnostics import DiagnosticAggregator
from .flavor import BuildFlavor, BuildTarget
from .ignore_filter import IgnoreFilter
from .linker import LinkerError, Linker
from .parallel import ParallelRunner
from .source_scanner import SourceScanner, SourceScannerError
from .toolchain import Toolchain, ToolchainError

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a complete build operation."""

    success: bool
    build_time: float
    message: str
    binary_path: Optional[Path] = None
    libraries: List[Path] = field(default_factory=list)
    compiled: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class BuildOrchestratorError(Exception):
    """Exception raised for build orchestration errors."""
    pass


BUILD_ERRORS = (
    BuildOrchestratorError,
    ToolchainError,
    ProjectConfigError,
    SourceScannerError,
    DependencyExtractionError,
    CompilationError,
    LinkerError,
    ArchiveError,
    LibraryResolutionError,
    OSError,
)


@dataclass
class _Engine:
    """Components wired for one build invocation."""

    config: ProjectConfig
    toolchain: Toolchain
    aggregator: DiagnosticAggregator
    extractor: DependencyExtractor
    executor: CompilationExecutor


class BuildOrchestrator:
    """
    Orchestrates incremental builds of one C/C++ project.

    Program build (debug/release, optionally for one module):
    1. Load kiln.ini and health-check the compiler
    2. Create the flavor directories
    3. Collect sources (or take the module's dependency list)
    4. Register new files as "on", persist, apply the ignore filter
    5. Append "-MM" dependency rules to the flavor's Dependency Record
    6. Resolve third-party libraries (cached)
    7. Compute the changed set and compile only changed sources
    8. Link every object into the executable

    Library build (static/dynamic) follows the same first five steps, then
    recompiles every tracked source and packages one library per object.

    Example usage:
        orchestrator = BuildOrchestrator(Path("."))
        result = orchestrator.build(BuildFlavor.DEBUG)
        if result.success:
            print(f"Binary: {result.binary_path}")
    """

    def __init__(
        self,
        project_dir: Path,
        layout: Optional[BuildLayout] = None,
        console: Optional[Console] = None,
        show_progress: bool = True,
        max_workers: Optional[int] = None,
        resolver_factory=None,
    ):
        """
        Initialize build orchestrator.

        Args:
            project_dir: Project root containing kiln.ini
            layout: Build layout (default: standard layout under project_dir)
            console: Terminal writer
            show_progress: Show progress bars for parallel stages
            max_workers: Worker pool size (default: KILN_JOBS or CPU count)
            resolver_factory: Callable(layout, settings, library_paths, console)
                returning a LibraryResolver; used to point resolution at
                alternate system directories
        """
        self.project_dir = Path(project_dir)
        self.layout = layout or BuildLayout(self.project_dir)
        self.console = console or Console()
        self.runner = ParallelRunner(max_workers=max_workers, show_progress=show_progress)
        self.store = ProjectConfigStore(self.layout.config_path)
        self.resolver_factory = resolver_factory or LibraryResolver

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.layout.project_dir).as_posix()

    def _prepare(self) -> _Engine:
        config = self.store.load()
        toolchain = Toolchain(config.settings.compiler, self.layout.project_dir)
        toolchain.check_compiler()

        aggregator = DiagnosticAggregator(self.console)
        return _Engine(
            config=config,
            toolchain=toolchain,
            aggregator=aggregator,
            extractor=DependencyExtractor(
                toolchain, self.runner, aggregator, config.settings.source_extension
            ),
            executor=CompilationExecutor(toolchain, self.runner, aggregator, self.console),
        )

    def _header_flags(self, config: ProjectConfig) -> List[str]:
        """``-I<header_dir>`` when the header directory exists and is not empty."""
        header_dir = self.layout.project_dir / config.settings.header_dir
        if header_dir.is_dir() and any(header_dir.iterdir()):
            return [f"-I{config.settings.header_dir}"]
        return []

    def _collect_sources(self, engine: _Engine, target: BuildTarget) -> List[str]:
        """Collect, register and filter the sources of a build.

        Raises:
            SourceScannerError: If no sources are left
            ProjectConfigError: If the module is not defined
        """
        config = engine.config
        self.console.step("collecting files:")

        if target.module is not None:
            sources = list(config.get_module(target.module).dependencies)
            if not sources:
                raise SourceScannerError(f"No files in module {target.module}!")
        else:
            scanner = SourceScanner(self.layout.project_dir, excluded=[self.layout.build_root])
            sources = scanner.collect(config.settings.source_dir, config.settings.source_extension)
            if not sources:
                raise SourceScannerError("There are no files to build!")

        self.console.print_block(sources)

        self.console.step("checking ignored files:")
        result = IgnoreFilter(self.console).apply(sources, config)
        if result.registered:
            self.store.save(config)
        return result.included

    def _failure(self, start_time: float, error: BaseException) -> BuildResult:
        message = str(error) or type(error).__name__
        logger.error(f"Build failed: {message}")
        return BuildResult(
            success=False,
            build_time=time.time() - start_time,
            message=message,
        )

    def build(
        self,
        flavor: BuildFlavor = BuildFlavor.DEBUG,
        module: Optional[str] = None,
        binary_name: Optional[str] = None,
    ) -> BuildResult:
        """
        Execute an incremental program build.

        Args:
            flavor: DEBUG or RELEASE
            module: Build only this module's sources into its own subtree
            binary_name: Executable name (default: project name)

        Returns:
            BuildResult with build status and output path
        """
        start_time = time.time()
        try:
            if flavor.is_library:
                raise BuildOrchestratorError(
                    f"Use build_library() for {flavor.value} builds"
                )
            target = BuildTarget(flavor, module)
            return self._build_program(target, binary_name, start_time)
        except BUILD_ERRORS as e:
            return self._failure(start_time, e)

    def _build_program(self, target: BuildTarget, binary_name: Optional[str], start_time: float) -> BuildResult:
        engine = self._prepare()
        config = engine.config
        flavor, module = target.flavor, target.module

        self.console.header(f"{flavor.value.upper()} BUILDING: {target.label}")
        logger.info(f"Start {target.label} build of {config.project.name}")

        self.layout.ensure_flavor_directories(flavor, module)
        sources = self._collect_sources(engine, target)

        header_flags = self._header_flags(config)
        dependencies_path = self.layout.dependencies_path(flavor, module)
        engine.extractor.extract(sources, dependencies_path, include_flags=header_flags)

        scan_root = config.get_module(module).path if module is not None else "."
        libraries: ResolvedLibraries = self.resolver_factory(
            self.layout, config.settings, config.library_paths, self.console
        ).resolve(scan_root)

        self.console.step("compiling to an object file:")
        rules = engine.extractor.read_rules(dependencies_path, sources)
        changed = ChangeTracker(self.layout.project_dir).changed_files(
            self.layout.changes_path(flavor, module), sources
        )

        include_flags = list(header_flags)
        if libraries.in_use:
            include_flags.extend(libraries.include_flags)

        summary = engine.executor.compile_rules(
            rules,
            self._relative(self.layout.object_dir_for(flavor, module)),
            flavor.compile_flags,
            include_flags,
            gate=set(changed),
        )

        self.console.step("linking:")
        name = binary_name or config.project.name
        output_path = f"{self._relative(self.layout.binary_dir_for(flavor, module))}/{name}"
        link = Linker(engine.toolchain, engine.aggregator, self.console).link(
            self._relative(self.layout.object_dir_for(flavor, module)),
            output_path,
            flavor.link_flags,
            libraries.link_flags if libraries.in_use else None,
        )

        build_time = time.time() - start_time
        self.console.print()
        self.console.success(f"Done! ({build_time:.2f} sec)")
        logger.info(f"End of the {target.label} build ({build_time:.2f} sec)")

        return BuildResult(
            success=True,
            build_time=build_time,
            message="Build successful",
            binary_path=link.binary_path,
            compiled=summary.compiled,
            skipped=summary.skipped,
        )

    def build_library(self, flavor: BuildFlavor) -> BuildResult:
        """
        Build static archives or shared objects from every project source.

        Args:
            flavor: STATIC or DYNAMIC

        Returns:
            BuildResult listing the produced libraries
        """
        start_time = time.time()
        try:
            if not flavor.is_library:
                raise BuildOrchestratorError(f"{flavor.value} is not a library flavor")
            return self._build_library(flavor, start_time)
        except BUILD_ERRORS as e:
            return self._failure(start_time, e)

    def _build_library(self, flavor: BuildFlavor, start_time: float) -> BuildResult:
        engine = self._prepare()
        config = engine.config
        target = BuildTarget(flavor)

        self.console.header(f"{flavor.value.upper()} LIBRARY BUILDING:")
        logger.info(f"Start {flavor.value} library build of {config.project.name}")

        self.layout.ensure_flavor_directories(flavor)
        sources = self._collect_sources(engine, target)

        header_flags = self._header_flags(config)
        dependencies_path = self.layout.dependencies_path(flavor)
        engine.extractor.extract(sources, dependencies_path, include_flags=header_flags)

        self.console.step("compiling to an object file:")
        object_dir = self._relative(self.layout.object_dir_for(flavor))
        rules = engine.extractor.read_rules(dependencies_path, sources)
        # Library builds recompile everything; only sources no longer in the
        # build (ignored or deleted) are gated out.
        summary = engine.executor.compile_rules(
            rules,
            object_dir,
            flavor.compile_flags,
            header_flags,
            gate=set(sources),
            skip_reason="Not part of this build",
        )

        self.console.step(f"create {flavor.value} library:")
        output_dir = self._relative(self.layout.binary_dir_for(flavor))
        creator = ArchiveCreator(engine.toolchain, engine.aggregator, self.console)
        if flavor is BuildFlavor.STATIC:
            libraries = creator.create_static_libraries(object_dir, output_dir)
        else:
            libraries = creator.create_shared_libraries(object_dir, output_dir)

        build_time = time.time() - start_time
        self.console.print()
        self.console.success(f"Done! ({build_time:.2f} sec)")
        logger.info(f"End of the {flavor.value} library build ({build_time:.2f} sec)")

        return BuildResult(
            success=True,
            build_time=build_time,
            message="Library build successful",
            libraries=libraries,
            compiled=summary.compiled,
            skipped=summary.skipped,
        )
