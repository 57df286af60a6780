"""Shared fixtures for nmc tests."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from nmc.models import MatchRecord

NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return NOW


@pytest.fixture
def make_record():
    """Factory for MatchRecords aged in days relative to NOW."""

    def _make(path: str, days_old: float = 0, size: int | None = None) -> MatchRecord:
        return MatchRecord(
            path=path,
            size_bytes=size,
            modified_at=NOW - timedelta(days=days_old),
        )

    return _make


@pytest.fixture
def make_tree(tmp_path):
    """Create directories (and optional file contents) under tmp_path."""

    def _make(*dirs: str, files: dict[str, bytes] | None = None) -> Path:
        for d in dirs:
            (tmp_path / d).mkdir(parents=True, exist_ok=True)
        for name, content in (files or {}).items():
            target = tmp_path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        return tmp_path

    return _make

