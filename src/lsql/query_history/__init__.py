"""Statement history for the lsql shell."""

from .history import SqlHistory

__all__ = ["SqlHistory"]
