"""Tests for cleaner module."""

import os
import shutil
from pathlib import Path
from unittest.mock import patch

from nmc.cleaner import delete_matches, delete_path, is_path_safe
from nmc.models import DeletionStatus


class TestIsPathSafe:
    def test_target_directory_is_safe(self, tmp_path):
        is_safe, reason = is_path_safe(tmp_path / "node_modules")
        assert is_safe is True
        assert reason is None

    def test_relative_path_refused(self):
        is_safe, reason = is_path_safe(Path("project/node_modules"))
        assert is_safe is False
        assert "relative" in reason

    def test_filesystem_root_refused(self):
        is_safe, reason = is_path_safe(Path("/"))
        assert is_safe is False
        assert "root" in reason

    def test_home_refused(self):
        is_safe, reason = is_path_safe(Path.home(), target_name=Path.home().name)
        assert is_safe is False
        assert "home" in reason

    def test_wrong_name_refused(self, tmp_path):
        is_safe, reason = is_path_safe(tmp_path / "src")
        assert is_safe is False
        assert "node_modules" in reason

    def test_custom_target_name(self, tmp_path):
        is_safe, _ = is_path_safe(tmp_path / "target", target_name="target")
        assert is_safe is True


class TestDeletePath:
    def test_deletes_directory_tree(self, make_tree):
        root = make_tree("node_modules/a/b", files={"node_modules/a/b/c.js": b"x" * 100})
        target = root / "node_modules"

        status, error = delete_path(target)

        assert status == DeletionStatus.DELETED
        assert error is None
        assert not target.exists()

    def test_dry_run_leaves_directory(self, make_tree):
        root = make_tree("node_modules")

        status, error = delete_path(root / "node_modules", dry_run=True)

        assert status == DeletionStatus.SKIPPED
        assert error is None
        assert (root / "node_modules").exists()

    def test_missing_path(self, tmp_path):
        status, error = delete_path(tmp_path / "node_modules")

        assert status == DeletionStatus.MISSING
        assert error is None

    def test_vanished_during_delete(self, make_tree):
        root = make_tree("node_modules")
        real_rmtree = shutil.rmtree

        def removed_by_someone_else(path, *args, **kwargs):
            real_rmtree(path)
            raise FileNotFoundError("gone")

        with patch("nmc.cleaner.shutil.rmtree", side_effect=removed_by_someone_else):
            status, error = delete_path(root / "node_modules")

        assert status == DeletionStatus.MISSING
        assert error is None

    def test_inner_entry_vanished_is_failure(self, make_tree):
        """The tree is still on disk, so it can't be reported as missing."""
        root = make_tree("node_modules/pkg")

        with patch("nmc.cleaner.shutil.rmtree", side_effect=FileNotFoundError("pkg/index.js")):
            status, error = delete_path(root / "node_modules")

        assert status == DeletionStatus.FAILED
        assert "OS error" in error
        assert (root / "node_modules").exists()

    def test_permission_error(self, make_tree):
        root = make_tree("node_modules")

        with patch("nmc.cleaner.shutil.rmtree", side_effect=PermissionError("Access denied")):
            status, error = delete_path(root / "node_modules")

        assert status == DeletionStatus.FAILED
        assert "Permission denied" in error

    def test_os_error(self, make_tree):
        root = make_tree("node_modules")

        with patch("nmc.cleaner.shutil.rmtree", side_effect=OSError("Device busy")):
            status, error = delete_path(root / "node_modules")

        assert status == DeletionStatus.FAILED
        assert "OS error" in error


class TestDeleteMatches:
    def test_empty_batch_is_noop(self):
        summary = delete_matches([])

        assert summary.results == []
        assert summary.deleted_count == 0
        assert summary.bytes_freed == 0

    def test_deletes_batch_with_one_missing(self, make_tree, make_record):
        root = make_tree("a/node_modules", "b/node_modules")
        records = [
            make_record(str(root / "a" / "node_modules"), size=1000),
            make_record(str(root / "gone" / "node_modules"), size=5000),
            make_record(str(root / "b" / "node_modules"), size=2000),
        ]

        summary = delete_matches(records, concurrency=2)

        assert [r.path for r in summary.results] == [r.path for r in records]
        assert summary.deleted_count == 2
        assert summary.missing_count == 1
        assert summary.failures == []
        assert summary.bytes_freed == 3000
        assert not (root / "a" / "node_modules").exists()
        assert not (root / "b" / "node_modules").exists()

    def test_unknown_sizes_count_as_zero(self, make_tree, make_record):
        root = make_tree("a/node_modules", "b/node_modules")
        records = [
            make_record(str(root / "a" / "node_modules"), size=4096),
            make_record(str(root / "b" / "node_modules")),
        ]

        summary = delete_matches(records)

        assert summary.deleted_count == 2
        assert summary.bytes_freed == 4096

    def test_failure_does_not_abort_batch(self, make_tree, make_record):
        root = make_tree("a/node_modules", "b/node_modules")
        locked = str(root / "a" / "node_modules")
        real_rmtree = shutil.rmtree

        def fake_rmtree(path, *args, **kwargs):
            if os.fspath(path) == locked:
                raise PermissionError("Access denied")
            return real_rmtree(path, *args, **kwargs)

        records = [
            make_record(locked, size=100),
            make_record(str(root / "b" / "node_modules"), size=200),
        ]

        with patch("nmc.cleaner.shutil.rmtree", side_effect=fake_rmtree):
            summary = delete_matches(records, concurrency=2)

        assert summary.deleted_count == 1
        assert summary.bytes_freed == 200
        assert len(summary.failures) == 1
        assert summary.failures[0].path == locked
        assert (root / "a" / "node_modules").exists()
        assert not (root / "b" / "node_modules").exists()

    def test_dry_run(self, make_tree, make_record):
        root = make_tree("a/node_modules")
        records = [make_record(str(root / "a" / "node_modules"), size=1024)]

        summary = delete_matches(records, dry_run=True)

        assert summary.dry_run
        assert summary.results[0].status == DeletionStatus.SKIPPED
        assert summary.deleted_count == 0
        assert summary.bytes_freed == 1024
        assert (root / "a" / "node_modules").exists()

    def test_refuses_wrongly_named_paths(self, make_tree, make_record):
        root = make_tree("src")
        records = [make_record(str(root / "src"), size=10)]

        summary = delete_matches(records)

        assert summary.results[0].status == DeletionStatus.FAILED
        assert "node_modules" in summary.results[0].error
        assert (root / "src").exists()

    def test_progress_callback(self, make_tree, make_record):
        root = make_tree("a/node_modules", "b/node_modules")
        records = [
            make_record(str(root / "a" / "node_modules")),
            make_record(str(root / "b" / "node_modules")),
        ]
        calls = []

        delete_matches(records, progress_callback=lambda r, i, n: calls.append((i, n)))

        assert sorted(calls) == [(1, 2), (2, 2)]
