"""nmc - find and clean node_modules directories."""

__version__ = "0.1.0"
