"""Build flavors.

A flavor decides which directory a build writes into, which compiler and
linker flags it uses and which Change/Dependency Records it consults.

Design:
    - Closed enumeration instead of "debug"/"release" string tags
    - Flags live on the enum so callers never branch on the flavor name
    - BuildTarget pairs a flavor with an optional module name
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class BuildFlavor(Enum):
    """Named build configuration."""

    DEBUG = "debug"
    RELEASE = "release"
    STATIC = "static"
    DYNAMIC = "dynamic"

    @property
    def compile_flags(self) -> List[str]:
        """Flags appended to every ``-c`` invocation for this flavor."""
        if self is BuildFlavor.DEBUG:
            return ["-g", "-O0", "-Wall", "-Wextra", "-pedantic"]
        if self is BuildFlavor.RELEASE:
            return ["-O2", "-flto"]
        if self is BuildFlavor.DYNAMIC:
            return ["-fPIC"]
        return []

    @property
    def link_flags(self) -> List[str]:
        """Flags appended to the final link (release strips the binary)."""
        if self is BuildFlavor.RELEASE:
            return ["-O2", "-flto", "-s"]
        return []

    @property
    def is_library(self) -> bool:
        return self in (BuildFlavor.STATIC, BuildFlavor.DYNAMIC)

    @property
    def supports_modules(self) -> bool:
        return self in (BuildFlavor.DEBUG, BuildFlavor.RELEASE)

    @classmethod
    def from_name(cls, name: str) -> "BuildFlavor":
        """Look up a flavor by its lower-case name.

        Args:
            name: Flavor name (e.g., "debug")

        Returns:
            Matching BuildFlavor

        Raises:
            ValueError: If the name is not a known flavor
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown build flavor '{name}' (expected one of: {valid})") from None


@dataclass(frozen=True)
class BuildTarget:
    """A flavor, optionally scoped to a named module."""

    flavor: BuildFlavor
    module: Optional[str] = None

    def __post_init__(self) -> None:
        if self.module is not None and not self.flavor.supports_modules:
            raise ValueError(f"Flavor {self.flavor.value} cannot be built per module")

    @property
    def label(self) -> str:
        if self.module:
            return f"{self.module} ({self.flavor.value})"
        return self.flavor.value
