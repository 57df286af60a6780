"""Run configuration for nmc."""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_TARGET = "node_modules"


def default_concurrency() -> int:
    """Worker count derived from host parallelism (cpus - 1, at least 1)."""
    return max(1, (os.cpu_count() or 1) - 1)


class SizeStrategy(str, Enum):
    """How directory sizes are measured."""

    WALK = "walk"  # In-process bounded parallel walk
    DU = "du"  # One external xargs/du pass


class ScanSettings(BaseModel):
    """Options for a single scan-report-clean run."""

    root: Path = Field(default_factory=Path.cwd, description="Directory to scan")
    target_name: str = Field(DEFAULT_TARGET, description="Directory name to look for")
    concurrency: int = Field(
        default_factory=default_concurrency, ge=1, description="Worker count for all phases"
    )
    size_strategy: SizeStrategy = Field(SizeStrategy.WALK, description="Size measurement strategy")
    deadline: Optional[float] = Field(
        None, gt=0, description="Seconds after which the scan stops and returns partial results"
    )
    older_than_days: Optional[int] = Field(
        None, ge=0, description="Only keep directories older than this many days"
    )
    sort_by_size: bool = Field(False, description="Sort largest first instead of newest first")

    @field_validator("target_name")
    @classmethod
    def _check_target_name(cls, value: str) -> str:
        if not value or value in (".", "..") or "/" in value or os.sep in value:
            raise ValueError(f"target name must be a plain directory name, got {value!r}")
        return value

    @field_validator("root")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return Path(os.path.abspath(os.path.expanduser(value)))
