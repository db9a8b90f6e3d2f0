"""
Runs one statement over a live connection and prints what comes back.

`run_sql` is shared by the interactive shell and the one-shot `query`
command. The two differ in what happens when the stream ends and when the
server reports an error:

- end of stream, one-shot and live-stream: the process exits with code 0;
- end of stream, anything else: the connection's cancellation token is set so
  `wait` returns through its normal path;
- error / invalid-request frame: the line is written to stderr, then the
  process exits with code 1 (`on_remote_error="exit"`) or the query is
  cancelled and control returns to the caller (`on_remote_error="report"`).
"""

import logging
import sys
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape

from ..config import ConnectionConfig
from ..errors import RemoteError, RemoteInvalidRequest
from ..models import FrameType, LiveFrame
from ..projector import project_record, project_stats, project_stop, render
from ..session import DisplayToggles
from .connection import LiveConfig, LiveConnection

logger = logging.getLogger(__name__)


def remote_error_from(frame: LiveFrame) -> RemoteError:
    """Turn an error or invalid-request frame into the matching exception."""
    if frame.kind is FrameType.INVALID_REQUEST:
        return RemoteInvalidRequest(frame.message, correlation_id=frame.correlation_id)
    return RemoteError(frame.message, correlation_id=frame.correlation_id)


def run_sql(
    sql: str,
    toggles: DisplayToggles,
    connection_config: ConnectionConfig,
    *,
    interactive: bool,
    stats_interval: int = 2,
    on_remote_error: str = "exit",
    console: Console | None = None,
    err_console: Console | None = None,
    opener: Callable[[LiveConfig], LiveConnection] = LiveConnection.open,
) -> None:
    """
    Execute `sql` and block until the query ends or is cancelled.

    Handlers only read `toggles`; they never change them.

    Raises:
        TransportError: the connection could not be opened or failed mid-stream.
        HandlerError: a record, stats or stop frame could not be printed.
        SystemExit: on the exits described in the module docstring.
    """
    console = console or Console(highlight=False)
    err_console = err_console or Console(stderr=True, highlight=False)

    conn = opener(
        LiveConfig(
            host=connection_config.host,
            token=connection_config.token,
            sql=sql,
            debug=connection_config.debug,
            live=toggles.live_stream,
            stats_interval=stats_interval,
            insecure=connection_config.insecure,
        )
    )

    def report_remote_error(frame: LiveFrame) -> None:
        error = remote_error_from(frame)
        err_console.print(escape(f"[{frame.type}]: [{error.message}]"), style="red")
        if on_remote_error == "exit":
            sys.exit(1)
        conn.cancel()

    def print_record(frame: LiveFrame) -> None:
        console.out(render(project_record(frame.record, toggles), toggles.pretty))

    def print_stats(frame: LiveFrame) -> None:
        if toggles.stats:
            console.out(render(project_stats(frame), toggles.pretty))

    def end_of_stream(frame: LiveFrame) -> None:
        try:
            if toggles.stats:
                err_console.out(render(project_stop(frame.stop), toggles.pretty))
            if not interactive and toggles.live_stream:
                sys.exit(0)
            conn.cancel()
        finally:
            conn.close()

    conn.on_error(report_remote_error)
    conn.on_invalid_request(report_remote_error)
    conn.on_record_message(print_record)
    conn.on_stats(print_stats)
    conn.on_end(end_of_stream)

    conn.wait()
    logger.debug("live query finished in state %s", conn.state.value)
