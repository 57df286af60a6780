"""Interactive TUI for nmc (requires the 'tui' extra)."""

from nmc.tui.app import NmcApp, run_tui

__all__ = ["NmcApp", "run_tui"]
