"""Interactive lsql shell."""

from .completer import SqlCompleter
from .executor import SqlExecutor
from .shell import LsqlShell

__all__ = ["LsqlShell", "SqlCompleter", "SqlExecutor"]
