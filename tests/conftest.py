"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
src_root_str = str(SRC_ROOT)
if src_root_str not in sys.path:
    # Lets tests import `ledger` and `feeds` without installing the project.
    sys.path.insert(0, src_root_str)

from ledger.store import LocalCache, MemoryStore  # noqa: E402


@pytest.fixture
def cache() -> LocalCache:
    """An empty in-memory cache (reads fall back to the default catalog)."""
    return LocalCache(MemoryStore())
