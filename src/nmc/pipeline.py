"""Sorting and filtering of scan results.

Pure functions: each returns a new list and leaves its input untouched.
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence

from nmc.models import MatchRecord


def sort_by_age(records: Sequence[MatchRecord], newest_first: bool = True) -> list[MatchRecord]:
    """
    Sort records by modification time.

    The sort is stable: records with equal timestamps keep their input order
    in both directions.
    """
    return sorted(records, key=lambda r: r.modified_at, reverse=newest_first)


def sort_by_size(records: Sequence[MatchRecord]) -> list[MatchRecord]:
    """Sort records largest first; unknown sizes sort as zero (last)."""
    return sorted(records, key=lambda r: r.size_bytes or 0, reverse=True)


def filter_by_age(
    records: Sequence[MatchRecord],
    threshold_days: float,
    now: Optional[datetime] = None,
) -> list[MatchRecord]:
    """
    Keep records modified strictly before ``now - threshold_days``.

    Args:
        records: Records to filter
        threshold_days: Minimum age in days
        now: Reference time, captured once (default: datetime.now())

    Returns:
        Matching records in input order
    """
    cutoff = (now or datetime.now()) - timedelta(days=threshold_days)
    return [r for r in records if r.modified_at < cutoff]
