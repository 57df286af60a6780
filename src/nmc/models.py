"""Data models for nmc."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SECONDS_PER_DAY = 24 * 60 * 60


class MatchRecord(BaseModel):
    """A target directory found during a scan."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the matched directory")
    size_bytes: Optional[int] = Field(
        None, ge=0, description="On-disk size in bytes, None until resolved or if unknown"
    )
    modified_at: datetime = Field(..., description="Directory mtime captured at discovery")

    @property
    def size_known(self) -> bool:
        """Whether a size has been resolved for this directory."""
        return self.size_bytes is not None

    def with_size(self, size_bytes: Optional[int]) -> "MatchRecord":
        """Return a copy of this record with the size attached."""
        return self.model_copy(update={"size_bytes": size_bytes})

    def age_days(self, now: Optional[datetime] = None) -> float:
        """Age of the directory in (fractional) days."""
        now = now or datetime.now()
        return (now - self.modified_at).total_seconds() / SECONDS_PER_DAY


class ScanStats(BaseModel):
    """Counters collected while traversing."""

    directories_listed: int = Field(0, description="Directories successfully listed")
    unreadable: int = Field(0, description="Directories that could not be listed")
    matches: int = Field(0, description="Target directories found")
    elapsed_seconds: float = Field(0.0, description="Wall-clock duration of the scan")


class ScanReport(BaseModel):
    """Complete outcome of one traversal."""

    matches: list[MatchRecord] = Field(default_factory=list)
    partial: bool = Field(False, description="True if the scan was cancelled or timed out")
    stats: ScanStats = Field(default_factory=ScanStats)


class DeletionStatus(str, Enum):
    """Outcome of deleting a single directory."""

    DELETED = "deleted"
    MISSING = "missing"  # Already gone, not an error
    FAILED = "failed"
    SKIPPED = "skipped"  # Dry run


class DeletionResult(BaseModel):
    """Result of deleting one matched directory."""

    path: str = Field(..., description="Path that was deleted")
    status: DeletionStatus = Field(..., description="What happened to the path")
    bytes_freed: int = Field(0, description="Resolved size of the path, 0 if unknown")
    error: Optional[str] = Field(None, description="Error message if deletion failed")

    @property
    def success(self) -> bool:
        return self.status != DeletionStatus.FAILED


class DeletionSummary(BaseModel):
    """Aggregate of a deletion batch."""

    results: list[DeletionResult] = Field(default_factory=list)
    dry_run: bool = Field(False, description="Whether this was a dry run")

    @property
    def deleted_count(self) -> int:
        """Number of directories actually removed."""
        return sum(1 for r in self.results if r.status == DeletionStatus.DELETED)

    @property
    def bytes_freed(self) -> int:
        """Estimated bytes freed (unknown sizes count as zero)."""
        counted = DeletionStatus.SKIPPED if self.dry_run else DeletionStatus.DELETED
        return sum(r.bytes_freed for r in self.results if r.status == counted)

    @property
    def missing_count(self) -> int:
        return sum(1 for r in self.results if r.status == DeletionStatus.MISSING)

    @property
    def failures(self) -> list[DeletionResult]:
        """Results that failed, in batch order."""
        return [r for r in self.results if r.status == DeletionStatus.FAILED]


class Analysis(BaseModel):
    """Scan plus size resolution for one root."""

    root: str = Field(..., description="Absolute root that was scanned")
    timestamp: datetime = Field(default_factory=datetime.now)
    report: ScanReport
    size_seconds: float = Field(0.0, description="Wall-clock duration of size resolution")

    @property
    def matches(self) -> list[MatchRecord]:
        return self.report.matches

    @property
    def total_known_bytes(self) -> int:
        """Sum of all resolved sizes."""
        return sum(r.size_bytes for r in self.matches if r.size_bytes is not None)

    @property
    def unknown_count(self) -> int:
        """Number of matches whose size could not be resolved."""
        return sum(1 for r in self.matches if r.size_bytes is None)
