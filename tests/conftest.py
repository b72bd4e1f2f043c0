"""Pytest configuration for docpilot tests."""
import sys
from pathlib import Path

# Add src to path for the tests - conftest is in tests/, so parent.parent is project root
project_root = Path(__file__).resolve().parent.parent
src_path = project_root / "src"

# Insert at the very beginning to override any other paths
sys.path.insert(0, str(src_path))

import pytest


@pytest.fixture
def go():
    from docpilot.langs import GoLanguage

    return GoLanguage()


@pytest.fixture
def python():
    from docpilot.langs import PythonLanguage

    return PythonLanguage()


@pytest.fixture
def write(tmp_path):
    """Write a source file below tmp_path and return its relative name."""

    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return name

    return _write
