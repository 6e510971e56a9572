"""Third-party library discovery for Kiln."""

from .library_resolver import LibraryResolutionError, LibraryResolver, ResolvedLibraries

__all__ = [
    "LibraryResolutionError",
    "LibraryResolver",
    "ResolvedLibraries",
]
