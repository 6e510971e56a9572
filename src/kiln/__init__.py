"""Kiln - incremental build tool for C/C++ projects.

Kiln discovers compilable units in a source tree, tracks which of them changed
since the previous build, asks the compiler itself for header dependencies,
compiles only what changed in parallel and links the result. It can also
package static and shared libraries.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
