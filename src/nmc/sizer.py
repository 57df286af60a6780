"""Bulk size resolution for matched directories.

Sizes are measured for many directories at once, bounded by a worker count.
Any path that can't be measured maps to None ("unknown"). Nothing here
raises to the caller: size is advisory.
"""

import logging
import os
import stat
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional, Sequence

from nmc.config import SizeStrategy, default_concurrency
from nmc.models import MatchRecord

logger = logging.getLogger(__name__)

BLOCK_SIZE = 512  # st_blocks unit on POSIX

# xargs exits 123 when some du invocations failed; above that xargs itself failed
XARGS_PARTIAL_FAILURE = 123


def _disk_usage(st: os.stat_result) -> int:
    """Allocated bytes for one inode, falling back to apparent size."""
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    return blocks * BLOCK_SIZE


def directory_size(path: str) -> Optional[int]:
    """
    Total on-disk usage of a directory tree in bytes, like ``du -s``.

    Uses os.scandir without following symlinks. Hard-linked files are counted
    once. Entries that can't be read inside the tree are skipped.

    Args:
        path: Directory to measure

    Returns:
        Size in bytes, or None if the path itself can't be read
    """
    try:
        root_stat = os.stat(path, follow_symlinks=False)
    except (PermissionError, OSError) as e:
        logger.debug("Cannot size %s: %s", path, e)
        return None

    total = _disk_usage(root_stat)
    if not stat.S_ISDIR(root_stat.st_mode):
        return total

    seen_inodes: set[tuple[int, int]] = set()
    stack = [path]

    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        st = entry.stat(follow_symlinks=False)
                    except (PermissionError, OSError):
                        continue

                    is_dir = stat.S_ISDIR(st.st_mode)
                    if not is_dir and st.st_nlink > 1 and st.st_ino:
                        key = (st.st_dev, st.st_ino)
                        if key in seen_inodes:
                            continue
                        seen_inodes.add(key)

                    total += _disk_usage(st)
                    if is_dir:
                        stack.append(entry.path)
        except (PermissionError, OSError) as e:
            if current == path:
                logger.debug("Cannot size %s: %s", path, e)
                return None
            logger.debug("Skipping unreadable %s while sizing %s: %s", current, path, e)

    return total


def parse_du_output(output: bytes | str) -> dict[str, int]:
    """
    Parse ``du -sk`` output into a path -> bytes mapping.

    Each line is ``<kilobytes><TAB><path>``; the split is at the first tab.
    Lines without a tab, with a non-numeric count, or that aren't valid
    UTF-8 are dropped.
    """
    if isinstance(output, str):
        raw_lines: Iterable[bytes | str] = output.split("\n")
    else:
        raw_lines = output.split(b"\n")

    sizes: dict[str, int] = {}
    for raw in raw_lines:
        if isinstance(raw, bytes):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError:
                continue
        else:
            line = raw

        if not line:
            continue

        kb_text, sep, path = line.partition("\t")
        if not sep or not path:
            continue
        try:
            kb = int(kb_text)
        except ValueError:
            continue
        if kb < 0:
            continue

        sizes[path] = kb * 1024

    return sizes


def _resolve_with_du(
    paths: Sequence[str],
    concurrency: int,
    timeout: float | None,
) -> dict[str, int]:
    """Measure all paths with one xargs/du process."""
    command = ["xargs", "-0", "-P", str(concurrency), "-I", "{}", "du", "-sk", "{}"]
    # NUL-separated so quotes and backslashes in paths reach du unchanged
    payload = b"\0".join(os.fsencode(p) for p in paths)

    try:
        result = subprocess.run(
            command,
            input=payload,
            capture_output=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("Size calculation timed out after %ss, sizes unknown", timeout)
        return {}
    except OSError as e:
        logger.warning("Could not run du: %s", e)
        return {}

    if result.returncode > XARGS_PARTIAL_FAILURE:
        logger.warning("Size calculation failed (xargs exit %d), sizes unknown", result.returncode)
        return {}
    if result.returncode != 0:
        logger.debug(
            "du reported errors: %s",
            result.stderr.decode("utf-8", errors="replace").strip(),
        )

    return parse_du_output(result.stdout)


def _resolve_with_walk(paths: Sequence[str], concurrency: int) -> dict[str, Optional[int]]:
    """Measure each path with its own scandir walk, in parallel."""
    sizes: dict[str, Optional[int]] = {}
    with ThreadPoolExecutor(
        max_workers=min(concurrency, len(paths)), thread_name_prefix="nmc-size"
    ) as executor:
        future_to_path = {executor.submit(directory_size, p): p for p in paths}
        for future in as_completed(future_to_path):
            sizes[future_to_path[future]] = future.result()
    return sizes


def resolve_sizes(
    paths: Sequence[str],
    concurrency: int | None = None,
    strategy: SizeStrategy | str = SizeStrategy.WALK,
    timeout: float | None = None,
) -> dict[str, Optional[int]]:
    """
    Resolve the size of many directories in one batched pass.

    Args:
        paths: Directories to measure
        concurrency: Maximum parallel measurements (default: cpus - 1)
        strategy: 'walk' (in-process) or 'du' (one external xargs/du pass)
        timeout: Seconds before the du pass is abandoned (du strategy only)

    Returns:
        Mapping of every input path to its size in bytes, or None if unknown
    """
    unique = list(dict.fromkeys(paths))
    if not unique:
        return {}

    if concurrency is None:
        concurrency = default_concurrency()
    concurrency = max(1, concurrency)

    if SizeStrategy(strategy) == SizeStrategy.DU:
        measured: dict[str, Optional[int]] = dict(_resolve_with_du(unique, concurrency, timeout))
    else:
        measured = _resolve_with_walk(unique, concurrency)

    sizes = {path: measured.get(path) for path in unique}
    unknown = sum(1 for size in sizes.values() if size is None)
    if unknown:
        logger.debug("%d of %d sizes unknown", unknown, len(unique))
    return sizes


def attach_sizes(
    records: Sequence[MatchRecord],
    sizes: dict[str, Optional[int]],
) -> list[MatchRecord]:
    """Return copies of records with their resolved sizes filled in."""
    return [record.with_size(sizes.get(record.path)) for record in records]
