"""Task store, dependency graph and time tracking over SQLite."""

__version__ = "0.1.0"
