"""Pytest configuration and fixtures for emwave."""

import os
import sys
from pathlib import Path

import pytest

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / "src"))


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    # Keep user configuration files and environment out of test runs
    for name in list(os.environ):
        if name.startswith("EMWAVE_"):
            del os.environ[name]


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers and skip conditions."""
    # Add markers based on test file location
    for item in items:
        # Unit tests
        if "tests/unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Integration tests
        elif "tests/integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
