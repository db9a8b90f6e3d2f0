"""lsql - interactive streaming SQL client for a remote data platform."""

__version__ = "0.1.0"

from .config import LsqlConfig, get_config  # noqa: E402
from .live import LiveConnection, run_sql  # noqa: E402
from .repl import LsqlShell, SqlExecutor  # noqa: E402
from .session import DisplayToggles, Session  # noqa: E402
from .validation import ValidationClient  # noqa: E402

__all__ = [
    "LsqlConfig",
    "get_config",
    "LiveConnection",
    "run_sql",
    "LsqlShell",
    "SqlExecutor",
    "DisplayToggles",
    "Session",
    "ValidationClient",
]
