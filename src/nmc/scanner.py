"""Concurrent discovery of target directories.

A fixed pool of worker threads shares one queue of pending directories.
Each worker lists a directory, reports children whose name matches the
target and queues the rest. Matched directories are never entered, so the
results never contain one match inside another.
"""

import logging
import os
import queue
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Generator, Optional

from nmc.config import DEFAULT_TARGET, default_concurrency
from nmc.models import MatchRecord, ScanReport, ScanStats

logger = logging.getLogger(__name__)

# Idle workers re-check cancellation and deadlines this often (seconds)
POLL_INTERVAL = 0.1

_DONE = object()


def read_match(path: str, follow_symlinks: bool = False) -> Optional[MatchRecord]:
    """Build a MatchRecord for a matched directory, or None if it can't be stat'ed."""
    try:
        stat = os.stat(path, follow_symlinks=follow_symlinks)
    except (PermissionError, OSError) as e:
        logger.debug("Dropping match %s, stat failed: %s", path, e)
        return None
    return MatchRecord(path=path, modified_at=datetime.fromtimestamp(stat.st_mtime))


class TraversalScheduler:
    """
    Shared-queue traversal over a directory tree.

    ``_outstanding`` counts directories that are queued or currently being
    listed. It goes up on enqueue and down when a listing finishes, and
    workers only leave once it reaches zero. A worker that finds the queue
    momentarily empty therefore waits for busy peers instead of exiting.

    Args:
        root: Directory to start from
        target_name: Directory name to match (e.g. 'node_modules')
        concurrency: Number of worker threads (default: cpus - 1, minimum 1)
        cancel_event: Optional event that stops the scan when set
        deadline: Optional number of seconds after which the scan stops
    """

    def __init__(
        self,
        root: str | os.PathLike,
        target_name: str = DEFAULT_TARGET,
        concurrency: int | None = None,
        cancel_event: threading.Event | None = None,
        deadline: float | None = None,
    ) -> None:
        if concurrency is None:
            concurrency = default_concurrency()
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.root = os.path.abspath(os.fspath(root))
        self.target_name = target_name
        self.concurrency = concurrency
        self.cancel_event = cancel_event or threading.Event()
        # Set on deadline or early close; cancel_event is only ever read
        self._stop = threading.Event()
        self.deadline = deadline

        self._cond = threading.Condition()
        self._pending: deque[str] = deque()
        self._outstanding = 0
        self._matches: list[MatchRecord] = []
        self._listed = 0
        self._unreadable = 0
        self._interrupted = False
        self._found: queue.Queue = queue.Queue()
        self._stop_at: float | None = None
        self._elapsed = 0.0

    # -------------------------------------------------------------------------
    # Worker side
    # -------------------------------------------------------------------------

    def _should_stop(self) -> bool:
        if self.cancel_event.is_set() or self._stop.is_set():
            return True
        if self._stop_at is not None and time.monotonic() >= self._stop_at:
            logger.debug("Scan deadline of %ss reached", self.deadline)
            self._stop.set()
            return True
        return False

    def _wait_timeout(self) -> float:
        if self._stop_at is None:
            return POLL_INTERVAL
        return max(0.0, min(POLL_INTERVAL, self._stop_at - time.monotonic()))

    def _worker(self) -> None:
        while True:
            with self._cond:
                while not self._pending and self._outstanding > 0 and not self._should_stop():
                    self._cond.wait(timeout=self._wait_timeout())

                if self._outstanding == 0:
                    # Quiescent: nothing queued and nobody listing
                    self._cond.notify_all()
                    return
                if self._should_stop():
                    self._interrupted = True
                    self._cond.notify_all()
                    return

                path = self._pending.popleft()

            try:
                self._process(path)
            finally:
                with self._cond:
                    self._outstanding -= 1
                    if self._outstanding == 0:
                        self._cond.notify_all()

    def _process(self, path: str) -> None:
        """List one directory, record matches and queue the other subdirectories."""
        try:
            with os.scandir(path) as it:
                entries = list(it)
        except (PermissionError, OSError) as e:
            logger.debug("Skipping unreadable directory %s: %s", path, e)
            with self._cond:
                self._unreadable += 1
            return

        subdirs: list[str] = []
        found: list[MatchRecord] = []

        for entry in entries:
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue

            name = entry.name
            if name.startswith("."):
                continue

            if name == self.target_name:
                record = read_match(entry.path)
                if record is not None:
                    found.append(record)
            else:
                subdirs.append(entry.path)

        with self._cond:
            self._listed += 1
            self._matches.extend(found)
            if subdirs:
                self._pending.extend(subdirs)
                self._outstanding += len(subdirs)
                self._cond.notify_all()

        for record in found:
            self._found.put(record)

    # -------------------------------------------------------------------------
    # Caller side
    # -------------------------------------------------------------------------

    def run(self) -> Generator[MatchRecord, None, None]:
        """Run the traversal, yielding matches as workers find them."""
        started = time.monotonic()
        if self.deadline is not None:
            self._stop_at = started + self.deadline

        try:
            if os.path.basename(self.root) == self.target_name and os.path.isdir(self.root):
                # The root itself matches: report it and prune, like any other match
                record = read_match(self.root, follow_symlinks=True)
                if record is not None:
                    self._matches.append(record)
                    yield record
                return

            if not os.path.isdir(self.root):
                logger.debug("Root %s is not a readable directory, nothing to scan", self.root)

            yield from self._run_workers()
        finally:
            self._elapsed = time.monotonic() - started

    def _run_workers(self) -> Generator[MatchRecord, None, None]:
        self._pending.append(self.root)
        self._outstanding = 1

        remaining = self.concurrency
        remaining_lock = threading.Lock()

        def _on_worker_done(_: Future) -> None:
            nonlocal remaining
            with remaining_lock:
                remaining -= 1
                if remaining == 0:
                    self._found.put(_DONE)

        executor = ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="nmc-scan")
        futures = []
        completed = False
        try:
            for _ in range(self.concurrency):
                future = executor.submit(self._worker)
                future.add_done_callback(_on_worker_done)
                futures.append(future)

            while True:
                item = self._found.get()
                if item is _DONE:
                    break
                yield item
            completed = True
        finally:
            if not completed:
                # Consumer stopped early
                self._interrupted = True
                self._stop.set()
            executor.shutdown(wait=True)

        for future in futures:
            # Re-raise unexpected worker errors
            future.result()

    def report(self) -> ScanReport:
        """Snapshot of everything collected so far."""
        with self._cond:
            matches = list(self._matches)
            stats = ScanStats(
                directories_listed=self._listed,
                unreadable=self._unreadable,
                matches=len(matches),
                elapsed_seconds=self._elapsed,
            )
            return ScanReport(matches=matches, partial=self._interrupted, stats=stats)


def iter_matches(
    root: str | os.PathLike,
    target_name: str = DEFAULT_TARGET,
    concurrency: int | None = None,
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
) -> Generator[MatchRecord, None, None]:
    """
    Stream target directories under root as they are found.

    Closing the generator early cancels the remaining work.

    Yields:
        MatchRecords in discovery order (not deterministic)
    """
    scheduler = TraversalScheduler(root, target_name, concurrency, cancel_event, deadline)
    yield from scheduler.run()


def scan(
    root: str | os.PathLike,
    target_name: str = DEFAULT_TARGET,
    concurrency: int | None = None,
    on_match: Callable[[MatchRecord], None] | None = None,
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
) -> ScanReport:
    """
    Find all target directories under root.

    An unreadable or missing root yields an empty report rather than an error.

    Args:
        root: Directory to scan
        target_name: Directory name to match
        concurrency: Number of worker threads
        on_match: Optional callback(record), called in the caller's thread per match
        cancel_event: Optional event that stops the scan when set
        deadline: Optional number of seconds after which the scan stops

    Returns:
        ScanReport with every match, counters, and whether the scan was cut short
    """
    scheduler = TraversalScheduler(root, target_name, concurrency, cancel_event, deadline)
    for record in scheduler.run():
        if on_match:
            on_match(record)

    report = scheduler.report()
    logger.debug(
        "Scanned %s: %d matches, %d directories listed, %d unreadable%s",
        scheduler.root,
        report.stats.matches,
        report.stats.directories_listed,
        report.stats.unreadable,
        " (partial)" if report.partial else "",
    )
    return report


def find_node_modules(
    root: str | os.PathLike,
    on_found: Callable[[MatchRecord], None] | None = None,
    concurrency: int | None = None,
) -> list[MatchRecord]:
    """Find node_modules directories under root and return them as a list."""
    return scan(root, DEFAULT_TARGET, concurrency, on_match=on_found).matches
