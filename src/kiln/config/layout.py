"""Build directory layout for Kiln projects.

Layout:
    build/
    ├── kiln.log                    # Diagnostic log
    ├── data/
    │   ├── include_paths.txt       # Cached third-party include dirs
    │   └── libraries.txt           # Cached third-party link flags
    ├── debug/
    │   ├── dependencies.d          # Raw `-MM` output, appended per build
    │   ├── changes.json            # source path -> last seen mtime
    │   ├── obj/
    │   └── bin/
    ├── release/                    # Same shape as debug/
    ├── module/
    │   └── {name}/
    │       ├── debug/              # Same shape as debug/
    │       └── release/
    └── lib/
        ├── static/                 # lib{stem}.a + obj/ + records
        └── dynamic/                # lib{stem}.so + obj/ + records

A ``BuildLayout`` is built once per invocation and handed to every component
so tests can point the whole engine at a temporary directory.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from ..build.flavor import BuildFlavor


@dataclass(frozen=True)
class BuildLayout:
    """Immutable description of where Kiln keeps its build state."""

    project_dir: Path
    config_file: str = "kiln.ini"
    build_dir: str = "build"
    debug_dir: str = "debug"
    release_dir: str = "release"
    module_dir: str = "module"
    library_dir: str = "lib"
    static_dir: str = "static"
    dynamic_dir: str = "dynamic"
    object_dir: str = "obj"
    binary_dir: str = "bin"
    data_dir: str = "data"
    dependencies_file: str = "dependencies.d"
    changes_file: str = "changes.json"
    include_cache_file: str = "include_paths.txt"
    library_cache_file: str = "libraries.txt"
    log_file: str = "kiln.log"

    def __post_init__(self) -> None:
        object.__setattr__(self, "project_dir", Path(self.project_dir))

    def _flavor_parts(self, flavor: BuildFlavor) -> Tuple[str, ...]:
        if flavor is BuildFlavor.DEBUG:
            return (self.debug_dir,)
        if flavor is BuildFlavor.RELEASE:
            return (self.release_dir,)
        if flavor is BuildFlavor.STATIC:
            return (self.library_dir, self.static_dir)
        if flavor is BuildFlavor.DYNAMIC:
            return (self.library_dir, self.dynamic_dir)
        raise ValueError(f"Unknown build flavor: {flavor!r}")

    @property
    def config_path(self) -> Path:
        """Path to the project configuration file."""
        return self.project_dir / self.config_file

    @property
    def build_root(self) -> Path:
        """Root of all build output."""
        return self.project_dir / self.build_dir

    @property
    def data_root(self) -> Path:
        """Directory shared by all flavors for cached library resolution."""
        return self.build_root / self.data_dir

    @property
    def include_cache_path(self) -> Path:
        return self.data_root / self.include_cache_file

    @property
    def library_cache_path(self) -> Path:
        return self.data_root / self.library_cache_file

    @property
    def log_path(self) -> Path:
        return self.build_root / self.log_file

    def module_root(self, module: str) -> Path:
        """Build subtree owned by a single module."""
        return self.build_root / self.module_dir / module

    def flavor_dir(self, flavor: BuildFlavor, module: Optional[str] = None) -> Path:
        """Get the directory holding all state for one flavor.

        Args:
            flavor: Build flavor
            module: Optional module name (debug/release only)

        Returns:
            Path to the flavor directory
        """
        if module is not None:
            if not flavor.supports_modules:
                raise ValueError(f"Flavor {flavor.value} cannot be built per module")
            return self.module_root(module).joinpath(*self._flavor_parts(flavor))
        return self.build_root.joinpath(*self._flavor_parts(flavor))

    def object_dir_for(self, flavor: BuildFlavor, module: Optional[str] = None) -> Path:
        return self.flavor_dir(flavor, module) / self.object_dir

    def binary_dir_for(self, flavor: BuildFlavor, module: Optional[str] = None) -> Path:
        # Libraries land directly in their flavor directory.
        if flavor.is_library:
            return self.flavor_dir(flavor, module)
        return self.flavor_dir(flavor, module) / self.binary_dir

    def dependencies_path(self, flavor: BuildFlavor, module: Optional[str] = None) -> Path:
        return self.flavor_dir(flavor, module) / self.dependencies_file

    def changes_path(self, flavor: BuildFlavor, module: Optional[str] = None) -> Path:
        return self.flavor_dir(flavor, module) / self.changes_file

    def ensure_flavor_directories(self, flavor: BuildFlavor, module: Optional[str] = None) -> None:
        """Create the object/binary directories and an empty dependency record.

        Args:
            flavor: Build flavor
            module: Optional module name
        """
        for directory in [
            self.object_dir_for(flavor, module),
            self.binary_dir_for(flavor, module),
        ]:
            directory.mkdir(parents=True, exist_ok=True)

        self.dependencies_path(flavor, module).touch(exist_ok=True)
