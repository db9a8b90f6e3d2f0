"""Live query connection and the runner that drives it."""

from .connection import CANCEL_SIGNALS, ConnectionState, LiveConfig, LiveConnection
from .runner import run_sql

__all__ = ["CANCEL_SIGNALS", "ConnectionState", "LiveConfig", "LiveConnection", "run_sql"]
