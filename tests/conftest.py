"""
Pytest configuration for dumbr tests.

This file ensures that the src directory is in the Python path so that
tests can import dumbr without installing it, and provides helpers for
building template directories and route configuration files.
"""
import json
import logging
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def test_logger():
    """A registered logger so caplog can see what components log."""
    return logging.getLogger("dumbr.tests")


@pytest.fixture
def make_templates(tmp_path):
    """Write template files (relative path -> text) under tmp_path/templates."""
    def _make(files):
        root = tmp_path / "templates"
        root.mkdir(exist_ok=True)
        for name, text in files.items():
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
        return root
    return _make


@pytest.fixture
def make_config(tmp_path):
    """Write a route configuration file from a list of entries."""
    def _make(entries, name="routes.json"):
        path = tmp_path / name
        path.write_text(json.dumps({"requestConfig": entries}))
        return path
    return _make
