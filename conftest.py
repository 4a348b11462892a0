"""
Pytest configuration for the nbuild test suite.

Integration tests run a real make/cc toolchain and are deselected by default;
pass --full to include them. Without make and a C compiler on PATH they are
skipped even under --full.
"""

import shutil

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Clear the default 'not integration' marker expression under --full."""
    if config.getoption("--full"):
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            config.option.markexpr = ""


def pytest_collection_modifyitems(config, items):
    """Skip integration tests when no native toolchain is installed."""
    if shutil.which("make") and (shutil.which("cc") or shutil.which("gcc")):
        return

    skip = pytest.mark.skip(reason="make and a C compiler are required")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)
