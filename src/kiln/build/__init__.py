"""
Build engine components for Kiln.

This package provides the incremental build engine including:
- Source discovery and ignore filtering
- Change tracking and compiler-driven dependency extraction
- Parallel compilation with diagnostic aggregation
- Linking and static/shared library packaging
- Build orchestration

Only the flavor types are imported eagerly; import the other components from
their modules (``kiln.build.orchestrator`` and friends).
"""

from .flavor import BuildFlavor, BuildTarget

__all__ = [
    'BuildFlavor',
    'BuildTarget',
]
