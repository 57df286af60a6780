"""Scan, size and select results for nmc."""

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from nmc.config import ScanSettings
from nmc.models import Analysis, MatchRecord
from nmc.pipeline import filter_by_age, sort_by_age, sort_by_size
from nmc.scanner import scan
from nmc.sizer import attach_sizes, resolve_sizes

logger = logging.getLogger(__name__)


def analyze(
    settings: ScanSettings,
    on_match: Callable[[MatchRecord], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> Analysis:
    """
    Find target directories under the configured root and resolve their sizes.

    Args:
        settings: Run configuration
        on_match: Optional callback(record) for progress reporting
        cancel_event: Optional event that stops the scan early

    Returns:
        Analysis holding the scan report with sizes attached
    """
    report = scan(
        settings.root,
        target_name=settings.target_name,
        concurrency=settings.concurrency,
        on_match=on_match,
        cancel_event=cancel_event,
        deadline=settings.deadline,
    )

    started = time.monotonic()
    sizes = resolve_sizes(
        [r.path for r in report.matches],
        concurrency=settings.concurrency,
        strategy=settings.size_strategy,
    )
    size_seconds = time.monotonic() - started

    sized = report.model_copy(update={"matches": attach_sizes(report.matches, sizes)})

    return Analysis(
        root=str(settings.root),
        timestamp=datetime.now(),
        report=sized,
        size_seconds=size_seconds,
    )


def select_results(
    records: list[MatchRecord],
    sort_by_size_first: bool = False,
    older_than_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[MatchRecord]:
    """
    Order records for display and apply the optional age filter.

    Records are sorted newest first, or largest first with sort_by_size_first.
    """
    ordered = sort_by_size(records) if sort_by_size_first else sort_by_age(records, True)
    if older_than_days is None:
        return ordered
    return filter_by_age(ordered, older_than_days, now=now)
