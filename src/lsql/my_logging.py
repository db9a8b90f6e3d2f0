"""
This module provides a simple, environment-variable-based logging setup for lsql.

Debug-level logging is enabled across the application by setting the
`LSQL_DEBUG` environment variable, or by the `debug` flag of the connection
configuration. Library modules log through `logging.getLogger(__name__)`;
this module only decides the level and where records go.
"""

import logging
import os
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_TRUTHY = ("true", "1", "yes")


def debug_enabled() -> bool:
    """Returns True when the LSQL_DEBUG environment variable is truthy."""
    return os.environ.get("LSQL_DEBUG", "").lower() in _TRUTHY


def setup_debug_logging(debug: bool = False) -> bool:
    """
    Configures the `lsql` logger hierarchy.

    Debug mode is on if `debug` is passed or `LSQL_DEBUG` is set to a truthy
    value (e.g. 'true', '1', 'yes'). In debug mode every record is written to
    stderr; otherwise only warnings and errors are.

    Returns:
        True if debug mode is enabled, False otherwise.
    """
    enabled = debug or debug_enabled()

    logger = logging.getLogger("lsql")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if enabled else logging.WARNING)
    logger.propagate = False

    if enabled:
        os.environ["LSQL_DEBUG"] = "true"
        sys.stderr.write("[LSQL] Debug mode enabled\n")
    return enabled


def debug_log(message: str, **kwargs: Any) -> None:
    """
    Writes one debug line to stderr when debug mode is enabled.

    Args:
        message: The debug message.
        **kwargs: Context appended as `key=value` pairs.
    """
    if debug_enabled():
        context = "".join(f" {key}={value}" for key, value in kwargs.items())
        sys.stderr.write(f"[DEBUG] {message}{context}\n")
