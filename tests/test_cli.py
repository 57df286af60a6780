"""Tests for CLI interface."""

import logging
from unittest.mock import patch

from typer.testing import CliRunner

from nmc.cli import _setup_logging, app
from nmc.models import ScanReport

runner = CliRunner()


class TestSetupLogging:
    def test_setup_logging_verbose(self):
        """Verbose mode sets DEBUG level."""
        with patch("nmc.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self):
        """Normal mode only shows warnings."""
        with patch("nmc.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.WARNING


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "nmc version" in result.output

    def test_version_short_flag(self):
        result = runner.invoke(app, ["-v"])
        assert result.exit_code == 0
        assert "nmc version" in result.output


class TestHelp:
    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "--clean" in result.output
        assert "--older" in result.output
        assert "--size" in result.output

    def test_short_help_flag(self):
        result = runner.invoke(app, ["-h"])
        assert result.exit_code == 0
        assert "--yes" in result.output


class TestScan:
    def test_nothing_found(self, tmp_path):
        result = runner.invoke(app, [str(tmp_path)])
        assert result.exit_code == 0
        assert "No node_modules directories found" in result.output

    def test_lists_matches(self, make_tree):
        root = make_tree("app/node_modules", "lib/node_modules")

        result = runner.invoke(app, [str(root)])

        assert result.exit_code == 0
        assert "Found 2 node_modules" in result.output
        assert "app/node_modules" in result.output
        assert "lib/node_modules" in result.output
        assert (root / "app" / "node_modules").exists()

    def test_defaults_to_current_directory(self, make_tree, monkeypatch):
        root = make_tree("app/node_modules")
        monkeypatch.chdir(root)

        result = runner.invoke(app, [])

        assert result.exit_code == 0
        assert "Found 1 node_modules" in result.output

    def test_custom_target(self, make_tree):
        root = make_tree("crate/target", "app/node_modules")

        result = runner.invoke(app, [str(root), "--target", "target"])

        assert result.exit_code == 0
        assert "Found 1 target" in result.output
        assert "crate/target" in result.output

    def test_target_from_environment(self, make_tree):
        root = make_tree("crate/target")

        result = runner.invoke(app, [str(root)], env={"NMC_TARGET": "target"})

        assert result.exit_code == 0
        assert "crate/target" in result.output

    def test_older_filter(self, make_tree):
        root = make_tree("app/node_modules")

        result = runner.invoke(app, [str(root), "--older", "30"])

        assert result.exit_code == 0
        assert "older than 30 days" in result.output
        assert "No node_modules directories found" in result.output

    def test_size_sort_and_stats(self, make_tree):
        root = make_tree("app/node_modules")

        result = runner.invoke(app, [str(root), "-s", "--stats"])

        assert result.exit_code == 0
        assert "Directory traversal" in result.output

    def test_du_sizer_option(self, make_tree):
        root = make_tree("app/node_modules")

        with patch("nmc.analyzer.resolve_sizes", return_value={}) as mock_sizes:
            result = runner.invoke(app, [str(root), "--sizer", "du", "-j", "2"])

        assert result.exit_code == 0
        assert mock_sizes.call_args[1]["strategy"] == "du"
        assert mock_sizes.call_args[1]["concurrency"] == 2
        assert "unknown size" in result.output

    def test_partial_scan_warning(self, make_tree):
        root = make_tree(*(f"p{i}/q/node_modules" for i in range(5)))

        with patch("nmc.analyzer.scan") as mock_scan:
            mock_scan.return_value = ScanReport(partial=True)
            result = runner.invoke(app, [str(root), "--timeout", "0.5"])

        assert result.exit_code == 0
        assert "partial" in result.output
        assert mock_scan.call_args[1]["deadline"] == 0.5


class TestClean:
    def test_clean_confirmed(self, make_tree):
        root = make_tree("app/node_modules", "lib/node_modules")

        with patch("nmc.cli.confirm_action", return_value=True):
            result = runner.invoke(app, [str(root), "--clean"])

        assert result.exit_code == 0
        assert "Cleaned 2 directories" in result.output
        assert not (root / "app" / "node_modules").exists()
        assert not (root / "lib" / "node_modules").exists()
        assert (root / "app").exists()

    def test_clean_declined(self, make_tree):
        root = make_tree("app/node_modules")

        with patch("nmc.cli.confirm_action", return_value=False):
            result = runner.invoke(app, [str(root), "-c"])

        assert result.exit_code == 0
        assert "Aborted" in result.output
        assert (root / "app" / "node_modules").exists()

    def test_clean_with_yes_skips_prompt(self, make_tree):
        root = make_tree("app/node_modules")

        with patch("nmc.cli.confirm_action") as mock_confirm:
            result = runner.invoke(app, [str(root), "-c", "-y"])

        assert result.exit_code == 0
        mock_confirm.assert_not_called()
        assert not (root / "app" / "node_modules").exists()

    def test_clean_respects_older_filter(self, make_tree):
        root = make_tree("app/node_modules")

        result = runner.invoke(app, [str(root), "-c", "-y", "-o", "30"])

        assert result.exit_code == 0
        assert (root / "app" / "node_modules").exists()

    def test_no_input_aborts(self, make_tree):
        root = make_tree("app/node_modules")

        result = runner.invoke(app, [str(root), "--clean"], input="")

        assert result.exit_code == 0
        assert "Aborted" in result.output
        assert (root / "app" / "node_modules").exists()

    def test_dry_run(self, make_tree):
        root = make_tree("app/node_modules")

        with patch("nmc.cli.confirm_action") as mock_confirm:
            result = runner.invoke(app, [str(root), "--clean", "--dry-run"])

        assert result.exit_code == 0
        assert "DRY RUN" in result.output
        mock_confirm.assert_not_called()
        assert (root / "app" / "node_modules").exists()


class TestErrors:
    def test_invalid_target_name(self, tmp_path):
        result = runner.invoke(app, [str(tmp_path), "--target", "a/b"])
        assert result.exit_code == 2
        assert "Error" in result.output

    def test_non_positive_timeout(self, tmp_path):
        result = runner.invoke(app, [str(tmp_path), "--timeout", "0"])
        assert result.exit_code == 2

    def test_invalid_concurrency(self, tmp_path):
        result = runner.invoke(app, [str(tmp_path), "-j", "0"])
        assert result.exit_code == 2

    def test_unexpected_error(self, tmp_path):
        with patch("nmc.cli.analyze", side_effect=RuntimeError("boom")):
            result = runner.invoke(app, [str(tmp_path)])

        assert result.exit_code == 1
        assert "boom" in result.output

    def test_tui_unavailable(self, tmp_path):
        with patch.dict("sys.modules", {"nmc.tui": None}):
            result = runner.invoke(app, [str(tmp_path), "--tui"])

        assert result.exit_code == 1
        assert "TUI not available" in result.output
