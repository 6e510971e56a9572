"""Third-party library resolution.

This module finds the include directories and link flags needed by the
third-party headers a project includes with angle brackets.

Resolution steps:
    1. Reuse the cached result if both cache files exist and are non-empty
    2. Scan sources and headers for ``#include <...>`` (bounded window, not a
       preprocessor) and drop every standard library header
    3. With manual library roots configured: search them for the first
       third-party header and its libraries; fail if nothing is found
    4. Otherwise: look up every third-party header in conventional include
       directories and CPATH, and its library in conventional library
       directories; misses become a literal "None" include entry
    5. Write the cache: include_paths.txt (one directory per line) and
       libraries.txt (one "-L<dir>" / "-l<name>" flag per line)
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from ..build.source_scanner import SourceScanner
from ..config.layout import BuildLayout
from ..config.project_config import Settings
from ..console import Console

logger = logging.getLogger(__name__)

UNRESOLVED = "None"

INCLUDE_SCAN_WINDOW = 10

INCLUDE_PATTERN = re.compile(r"^\s*#\s*include\s*<([^>]+)>")
ANY_INCLUDE_PATTERN = re.compile(r"^\s*#\s*include\b")

DEFAULT_INCLUDE_DIRS = ("./include", "/usr/include", "/usr/local/include")
DEFAULT_LIBRARY_DIRS = ("/usr/lib", "/usr/local/lib", "./lib", "/usr/lib64")
LIBRARY_PREFIXES = ("lib", "")
LIBRARY_EXTENSIONS = (".a", ".so")

STANDARD_HEADERS = frozenset([
    # C++ standard library
    "algorithm", "array", "atomic", "bit", "bitset", "charconv", "chrono",
    "codecvt", "complex", "condition_variable", "coroutine", "deque",
    "exception", "execution", "filesystem", "forward_list", "fstream",
    "functional", "future", "initializer_list", "iomanip", "ios", "iosfwd",
    "iostream", "istream", "iterator", "limits", "list", "locale", "map",
    "memory", "memory_resource", "mutex", "new", "numeric", "optional",
    "ostream", "queue", "random", "ranges", "ratio", "regex", "set",
    "shared_mutex", "span", "sstream", "stack", "stdexcept", "streambuf",
    "string", "string_view", "syncstream", "thread", "tuple", "type_traits",
    "typeindex", "typeinfo", "unordered_map", "unordered_set", "utility",
    "valarray", "variant", "vector",
    # C headers in their C++ form
    "cassert", "cctype", "cerrno", "cfenv", "cfloat", "cinttypes", "climits",
    "clocale", "cmath", "csetjmp", "csignal", "cstdarg", "cstddef", "cstdint",
    "cstdio", "cstdlib", "cstring", "ctime", "cuchar", "cwchar", "cwctype",
    # C headers
    "assert.h", "ctype.h", "errno.h", "fenv.h", "float.h", "inttypes.h",
    "limits.h", "locale.h", "math.h", "setjmp.h", "signal.h", "stdarg.h",
    "stddef.h", "stdint.h", "stdio.h", "stdlib.h", "string.h", "time.h",
    "uchar.h", "wchar.h", "wctype.h",
])


class LibraryResolutionError(Exception):
    """Raised when manual library roots yield neither headers nor libraries."""
    pass


@dataclass
class ResolvedLibraries:
    """Include directories and link flags for third-party libraries."""

    include_dirs: List[str] = field(default_factory=list)
    link_flags: List[str] = field(default_factory=list)
    in_use: bool = False

    @property
    def include_flags(self) -> List[str]:
        """``-I`` flags; unresolved entries are skipped."""
        return [f"-I{d}" for d in self.include_dirs if d and d != UNRESOLVED]


def scan_file_includes(path: Path, window: int = INCLUDE_SCAN_WINDOW) -> List[str]:
    """Collect angle-bracket include targets near the top of a file.

    Scanning stops once more than ``window`` lines pass without any
    ``#include``.
    """
    found: List[str] = []
    since_include = 0
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            match = INCLUDE_PATTERN.match(line)
            if match:
                target = match.group(1).replace(" ", "")
                if target not in found:
                    found.append(target)
                since_include = 0
            elif ANY_INCLUDE_PATTERN.match(line):
                since_include = 0
            else:
                since_include += 1
                if since_include > window:
                    break
    return found


def remove_standard_headers(includes: Iterable[str]) -> List[str]:
    return [include for include in includes if include not in STANDARD_HEADERS]


def library_base_name(include: str) -> str:
    """Lower-cased leading path segment: "SFML/Graphics.hpp" -> "sfml"."""
    return include.split("/", 1)[0].lower()


def library_flags_for(library: Path) -> List[str]:
    """``-L``/``-l`` flags for a library file: /x/libfoo.so -> -L/x, -lfoo."""
    name = library.name
    for extension in LIBRARY_EXTENSIONS:
        if name.endswith(extension):
            name = name[: -len(extension)]
            break
    if name.startswith("lib"):
        name = name[3:]
    return [f"-L{library.parent.as_posix()}", f"-l{name}"]


def _unique(items: Iterable[str]) -> List[str]:
    result: List[str] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


class LibraryResolver:
    """
    Resolves third-party headers to include directories and link flags.

    Example usage:
        resolver = LibraryResolver(layout, settings, config.library_paths)
        libraries = resolver.resolve(".")
        if libraries.in_use:
            flags = libraries.include_flags
    """

    def __init__(
        self,
        layout: BuildLayout,
        settings: Settings,
        library_paths: Sequence[str],
        console: Optional[Console] = None,
        include_search_dirs: Sequence[str] = DEFAULT_INCLUDE_DIRS,
        library_search_dirs: Sequence[str] = DEFAULT_LIBRARY_DIRS,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize library resolver.

        Args:
            layout: Build layout (cache file locations, excluded build dir)
            settings: Project settings (language decides scanned extensions)
            library_paths: Manual library roots from [libraries]
            console: Terminal writer for warnings
            include_search_dirs: Conventional header directories
            library_search_dirs: Conventional library directories
            environ: Environment to read CPATH from (default: os.environ)
        """
        self.layout = layout
        self.project_dir = layout.project_dir
        self.settings = settings
        self.library_paths = list(library_paths)
        self.console = console or Console()
        self.include_search_dirs = list(include_search_dirs)
        self.library_search_dirs = list(library_search_dirs)
        self.environ = os.environ if environ is None else environ
        self.scanner = SourceScanner(self.project_dir, excluded=[layout.build_root])

    # Cache

    def cache_is_valid(self) -> bool:
        """Both cache files exist and are non-empty."""
        for path in (self.layout.include_cache_path, self.layout.library_cache_path):
            if not path.is_file() or path.stat().st_size == 0:
                return False
        return True

    def load_cache(self) -> ResolvedLibraries:
        return ResolvedLibraries(
            include_dirs=self._read_lines(self.layout.include_cache_path),
            link_flags=self._read_lines(self.layout.library_cache_path),
            in_use=True,
        )

    def write_cache(self, libraries: ResolvedLibraries) -> None:
        self.layout.data_root.mkdir(parents=True, exist_ok=True)
        self._write_lines(self.layout.include_cache_path, libraries.include_dirs)
        self._write_lines(self.layout.library_cache_path, libraries.link_flags)
        logger.info(
            f"Cached third-party libraries: includes={libraries.include_dirs}, "
            f"links={libraries.link_flags}"
        )

    @staticmethod
    def _read_lines(path: Path) -> List[str]:
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]

    @staticmethod
    def _write_lines(path: Path, lines: List[str]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            for line in lines:
                f.write(f"{line}\n")

    # Scanning

    def scan_includes(self, root: str) -> List[str]:
        """Third-party angle-bracket includes used under ``root``.

        Args:
            root: Directory to scan ("." for the whole project or a module path)

        Returns:
            Unique include targets in discovery order, standard headers removed
        """
        files = self.scanner.collect_many(
            root, [self.settings.source_extension, self.settings.header_extension]
        )

        includes: List[str] = []
        for file in files:
            for include in scan_file_includes(self.project_dir / file):
                if include not in includes:
                    logger.info(f"System or third-party header: {include}")
                    includes.append(include)

        third_party = remove_standard_headers(includes)
        logger.info(f"Third-party headers: {third_party}")
        return third_party

    # Resolution

    def resolve(self, root: str = ".") -> ResolvedLibraries:
        """Resolve third-party libraries for the sources under ``root``.

        Returns:
            ResolvedLibraries; ``in_use`` is False when the project includes no
            third-party headers and no cache exists

        Raises:
            LibraryResolutionError: If manual roots yield nothing
            OSError: If a source or search directory cannot be read
        """
        if self.cache_is_valid():
            logger.info("Using cached third-party library resolution")
            return self.load_cache()

        includes = self.scan_includes(root)
        if not includes:
            return ResolvedLibraries(in_use=False)

        if self.library_paths:
            libraries = self.resolve_manual(includes)
        else:
            libraries = self.resolve_system(includes)

        self.write_cache(libraries)
        return libraries

    def _absolute(self, path: str) -> Path:
        candidate = Path(os.path.expanduser(path))
        if not candidate.is_absolute():
            candidate = self.project_dir / candidate
        return candidate

    def resolve_manual(self, includes: List[str]) -> ResolvedLibraries:
        """Search the manual library roots for the first third-party include.

        Raises:
            LibraryResolutionError: If no root yields an include dir or a library
        """
        include = includes[0]
        base_name = library_base_name(include)
        logger.info(f"Searching manual library roots for <{include}> (library '{base_name}')")

        include_dirs: List[str] = []
        link_flags: List[str] = []
        for root in self.library_paths:
            root_path = self._absolute(root)
            if not root_path.exists():
                logger.warning(f"Manual lib path not found: {root}")
                self.console.warning(f"⚠ Warning: manual lib path not found: {root}")
                continue

            include_dir = self._find_include_dir(root_path, include)
            if include_dir is not None:
                include_dirs.append(include_dir.as_posix())

            for library in self._find_libraries(root_path, base_name, recursive=True):
                link_flags.extend(library_flags_for(library))

        if not include_dirs and not link_flags:
            raise LibraryResolutionError(
                f"Couldn't find includes or libs for <{include}> in provided paths: {self.library_paths}"
            )

        return ResolvedLibraries(
            include_dirs=_unique(include_dirs),
            link_flags=_unique(link_flags),
            in_use=True,
        )

    def resolve_system(self, includes: List[str]) -> ResolvedLibraries:
        """Look up every include in the conventional system locations."""
        include_dirs: List[str] = []
        link_flags: List[str] = []

        for include in includes:
            include_dirs.append(self.find_header(include))
            for directory in self.library_search_dirs:
                path = self._absolute(directory)
                if not path.is_dir():
                    continue
                for library in self._find_libraries(path, library_base_name(include), recursive=False):
                    link_flags.extend(library_flags_for(library))

        return ResolvedLibraries(
            include_dirs=include_dirs,
            link_flags=_unique(link_flags),
            in_use=True,
        )

    def header_search_dirs(self) -> List[str]:
        """Conventional include directories followed by CPATH entries."""
        dirs = list(self.include_search_dirs)
        cpath = self.environ.get("CPATH", "")
        dirs.extend(entry for entry in cpath.split(":") if entry)
        return dirs

    def find_header(self, include: str) -> str:
        """Directory that makes ``#include <include>`` resolve, or "None"."""
        for directory in self.header_search_dirs():
            if (self._absolute(directory) / include).exists():
                return directory
        logger.info(f"Header not found in system directories: {include}")
        return UNRESOLVED

    def _find_include_dir(self, root: Path, include: str) -> Optional[Path]:
        """Directory under ``root`` from which ``include`` resolves.

        A file matching the whole include path wins; otherwise the parent of
        the first file with the same name is used.
        """
        parts = include.split("/")
        fallback: Optional[Path] = None
        for candidate in sorted(root.rglob(parts[-1])):
            if not candidate.is_file():
                continue
            if candidate.as_posix().endswith("/" + include):
                return candidate.parents[len(parts) - 1]
            if fallback is None:
                fallback = candidate.parent
        return fallback

    @staticmethod
    def _find_libraries(directory: Path, base_name: str, recursive: bool) -> List[Path]:
        entries = directory.rglob("*") if recursive else directory.iterdir()
        found = []
        for entry in sorted(entries):
            if not entry.is_file():
                continue
            name = entry.name.lower()
            if not name.endswith(LIBRARY_EXTENSIONS):
                continue
            if any(name.startswith(prefix + base_name) for prefix in LIBRARY_PREFIXES):
                found.append(entry)
        return found
