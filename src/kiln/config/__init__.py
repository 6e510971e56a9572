"""Configuration modules for Kiln."""

from .layout import BuildLayout
from .project_config import (
    ModuleDefinition,
    ProjectConfig,
    ProjectConfigError,
    ProjectConfigStore,
    ProjectInfo,
    Settings,
)

__all__ = [
    "BuildLayout",
    "ModuleDefinition",
    "ProjectConfig",
    "ProjectConfigError",
    "ProjectConfigStore",
    "ProjectInfo",
    "Settings",
]
