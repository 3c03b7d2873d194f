"""Symbol-level code search, dependency context and impact analysis over a SQLite index."""

__version__ = "1.0.0"