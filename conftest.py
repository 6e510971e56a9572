"""
Pytest configuration for the kiln test suite.

This configuration enables the --full flag to run integration tests, which
need a real C++ compiler on PATH.
"""

import os
import sys

import pytest

# Allow running the suite from a checkout without installing the package.
SRC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Register markers."""
    config.addinivalue_line("markers", "integration: builds with a real compiler (run with --full)")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --full is given."""
    if config.getoption("--full"):
        return

    skip_integration = pytest.mark.skip(reason="integration test: pass --full to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
