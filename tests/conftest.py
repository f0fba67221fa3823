"""Pytest configuration. Ensures project root is in sys.path for top-level modules (cratemap_cli, cli, report)."""
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def _add_project_root_to_path():
    root = Path(__file__).resolve().parent.parent
    import sys
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


@pytest.fixture
def make_project(tmp_path):
    """Write {relative path: text} into tmp_path and return the root."""

    def _make(files):
        for rel, text in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(text, bytes):
                target.write_bytes(text)
            else:
                target.write_text(text, encoding="utf-8")
        return tmp_path

    return _make
