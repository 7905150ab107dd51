"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def config():
    """Runtime config without retry pauses and with a small channel."""
    from core.config import EstoolConfig

    return EstoolConfig(channel_capacity=4, retry_delay=0.0)
