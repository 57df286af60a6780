"""Deletion of matched directories with safety checks for nmc."""

import logging
import os
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Sequence

from nmc.config import DEFAULT_TARGET, default_concurrency
from nmc.models import DeletionResult, DeletionStatus, DeletionSummary, MatchRecord

logger = logging.getLogger(__name__)


def is_path_safe(path: Path, target_name: str = DEFAULT_TARGET) -> tuple[bool, str | None]:
    """
    Check if a path may be deleted.

    Only absolute paths named like the target are allowed; filesystem roots
    and the home directory never are.

    Args:
        path: Path to check
        target_name: Name every deletable directory must have

    Returns:
        Tuple of (is_safe, reason)
    """
    if not path.is_absolute():
        return False, f"Refusing to delete relative path: {path}"

    if path == Path(path.anchor):
        return False, f"Refusing to delete filesystem root: {path}"

    if path == Path.home():
        return False, f"Refusing to delete home directory: {path}"

    if path.name != target_name:
        return False, f"Refusing to delete {path}: name is not {target_name!r}"

    return True, None


def delete_path(path: Path, dry_run: bool = False) -> tuple[DeletionStatus, str | None]:
    """
    Recursively delete a directory tree.

    Args:
        path: Directory to delete
        dry_run: If True, don't actually delete

    Returns:
        Tuple of (status, error_message)
    """
    if not os.path.lexists(path):
        return DeletionStatus.MISSING, None

    if dry_run:
        return DeletionStatus.SKIPPED, None

    try:
        shutil.rmtree(path)
    except FileNotFoundError as e:
        if os.path.lexists(path):
            # Only part of the tree vanished underneath us
            return DeletionStatus.FAILED, f"OS error: {e}"
        # Removed by someone else in the meantime
        return DeletionStatus.MISSING, None
    except PermissionError as e:
        return DeletionStatus.FAILED, f"Permission denied: {e}"
    except OSError as e:
        return DeletionStatus.FAILED, f"OS error: {e}"

    return DeletionStatus.DELETED, None


def _delete_record(record: MatchRecord, dry_run: bool, target_name: str) -> DeletionResult:
    path = Path(record.path)

    safe, reason = is_path_safe(path, target_name)
    if not safe:
        logger.warning(reason)
        return DeletionResult(path=record.path, status=DeletionStatus.FAILED, error=reason)

    status, error = delete_path(path, dry_run)
    if error:
        logger.debug("Failed to delete %s: %s", record.path, error)

    counts_toward_freed = status in (DeletionStatus.DELETED, DeletionStatus.SKIPPED)
    return DeletionResult(
        path=record.path,
        status=status,
        bytes_freed=(record.size_bytes or 0) if counts_toward_freed else 0,
        error=error,
    )


def delete_matches(
    records: Sequence[MatchRecord],
    concurrency: int | None = None,
    dry_run: bool = False,
    target_name: str = DEFAULT_TARGET,
    progress_callback: Callable[[DeletionResult, int, int], None] | None = None,
) -> DeletionSummary:
    """
    Delete matched directories in parallel.

    A failure on one path never stops the others. Missing paths are not
    errors. Freed space counts unknown sizes as zero.

    Args:
        records: Confirmed records to delete
        concurrency: Maximum parallel deletions (default: cpus - 1)
        dry_run: If True, report what would be deleted without deleting
        target_name: Name every deleted directory must have
        progress_callback: Optional callback(result, current, total)

    Returns:
        DeletionSummary with one result per record, in input order
    """
    if not records:
        return DeletionSummary(dry_run=dry_run)

    if concurrency is None:
        concurrency = default_concurrency()

    results: dict[int, DeletionResult] = {}
    total = len(records)

    with ThreadPoolExecutor(
        max_workers=max(1, min(concurrency, total)), thread_name_prefix="nmc-delete"
    ) as executor:
        future_to_index = {
            executor.submit(_delete_record, record, dry_run, target_name): i
            for i, record in enumerate(records)
        }

        for done, future in enumerate(as_completed(future_to_index), start=1):
            index = future_to_index[future]
            result = future.result()
            results[index] = result

            if progress_callback:
                progress_callback(result, done, total)

    summary = DeletionSummary(results=[results[i] for i in range(total)], dry_run=dry_run)
    logger.debug(
        "Deleted %d of %d directories (%d missing, %d failed)",
        summary.deleted_count,
        total,
        summary.missing_count,
        len(summary.failures),
    )
    return summary
