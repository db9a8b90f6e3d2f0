"""
Duplex connection to the remote query-execution service.

A `LiveConnection` owns one websocket. Opening it sends the query request;
`wait` then starts a dedicated reader thread which decodes every incoming
frame and hands it, in wire order, to the single handler registered for its
kind. The calling thread blocks in `wait` until one of three things happens:

- the internal cancellation token is set (`cancel`), typically by the
  end-of-stream handler or by a SIGINT/SIGTERM delivered to the process;
- the reader thread stops because the remote side closed the socket;
- a handler raised, in which case `wait` raises in the calling thread:
  `SystemExit` unchanged, so `sys.exit` from a handler ends the process even
  though handlers run on the reader thread, anything else as `HandlerError`.

Closing the socket to cancel makes the pending read fail. That failure is
expected and is never reported; only genuine transport failures surface, as
`TransportError` from `wait`.
"""

import logging
import signal
import ssl
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect

from ..errors import HandlerError, TransportError, is_closed_transport_error
from ..models import FrameType, LiveFrame, LiveRequest
from ..validation import TOKEN_HEADER

logger = logging.getLogger(__name__)

LIVE_PATH = "/api/ws/v2/sql/execute"

# SIGKILL cannot be caught; signal.signal rejects it.
CANCEL_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)

Handler = Callable[[LiveFrame], None]


class ConnectionState(Enum):
    OPEN = "open"
    ACTIVE = "active"
    ENDED = "ended"
    CLOSED = "closed"
    ERRORED = "errored"


@dataclass
class LiveConfig:
    """Everything needed to open one live query."""

    host: str
    token: str
    sql: str
    debug: bool = False
    live: bool = False
    stats_interval: int = 2
    insecure: bool = False
    open_timeout: float = 45.0

    @property
    def endpoint(self) -> str:
        host = self.host.rstrip("/")
        if host.startswith("https://"):
            host = "wss://" + host[len("https://") :]
        elif host.startswith("http://"):
            host = "ws://" + host[len("http://") :]
        return host + LIVE_PATH

    def request(self) -> LiveRequest:
        return LiveRequest(token=self.token, sql=self.sql, live=self.live, stats_every=self.stats_interval)


def _ssl_context(insecure: bool) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class LiveConnection:
    """One live query over one websocket."""

    def __init__(self, transport: Any, config: LiveConfig):
        self._transport = transport
        self.config = config
        self.state = ConnectionState.OPEN

        self._handlers: dict[FrameType, Handler] = {}
        self._handlers_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = False
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self._failure: BaseException | None = None
        self._reader: threading.Thread | None = None

    @classmethod
    def open(cls, config: LiveConfig, connector: Callable[..., Any] = connect) -> "LiveConnection":
        """
        Connect to the service and send the query request.

        Raises:
            TransportError: the websocket could not be established or the
                request could not be sent (network, TLS, authentication).
        """
        endpoint = config.endpoint
        logger.debug("opening live connection to %s (live=%s, stats=%ds)", endpoint, config.live, config.stats_interval)

        options: dict[str, Any] = {"additional_headers": {TOKEN_HEADER: config.token}, "open_timeout": config.open_timeout}
        if endpoint.startswith("wss://"):
            options["ssl"] = _ssl_context(config.insecure)

        try:
            transport = connector(endpoint, **options)
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError(f"connect failure for '{config.host}': {e}") from e

        connection = cls(transport, config)
        try:
            transport.send(config.request().to_wire())
        except (OSError, WebSocketException) as e:
            connection.close()
            raise TransportError(f"cannot send query to '{config.host}': {e}") from e

        logger.debug("query request sent: %s", config.sql)
        if config.debug:
            logger.debug("open message: %s", config.request().model_copy(update={"token": "***"}).to_wire())
        return connection

    # --- handler registration; one handler per frame kind, last one wins ---

    def on(self, kind: FrameType, handler: Handler) -> None:
        with self._handlers_lock:
            self._handlers[kind] = handler

    def on_error(self, handler: Handler) -> None:
        self.on(FrameType.ERROR, handler)

    def on_invalid_request(self, handler: Handler) -> None:
        self.on(FrameType.INVALID_REQUEST, handler)

    def on_record_message(self, handler: Handler) -> None:
        self.on(FrameType.RECORD, handler)

    def on_stats(self, handler: Handler) -> None:
        self.on(FrameType.STATS, handler)

    def on_end(self, handler: Handler) -> None:
        self.on(FrameType.STOP, handler)

    # --- lifecycle ---

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Set the cancellation token; `wait` returns without an error."""
        self._cancelled.set()
        self._done.set()

    def wait(self, cancel_signals: Iterable[signal.Signals] = CANCEL_SIGNALS, poll_interval: float = 0.1) -> None:
        """
        Dispatch frames until the query ends or is cancelled.

        Never returns early for record or stats frames. The connection is
        closed on every way out.

        Raises:
            TransportError: the transport failed for a reason other than a
                deliberate close.
            HandlerError: a handler raised; the original error is its cause.
            SystemExit: a handler asked the process to exit.
        """
        previous = self._install_signal_handlers(cancel_signals)
        self.state = ConnectionState.ACTIVE
        self._reader = threading.Thread(target=self._read_loop, name="lsql-live-reader", daemon=True)
        self._reader.start()
        try:
            while not self._done.wait(poll_interval):
                pass
        finally:
            self._restore_signal_handlers(previous)
            self.close()
            if self._reader is not threading.current_thread():
                self._reader.join(timeout=5.0)

        if self._failure is not None:
            failure, self._failure = self._failure, None
            raise failure

    def close(self) -> None:
        """Release the transport. Safe to call more than once, from any thread."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        logger.debug("terminating live connection to %s", self.config.host)
        if self.state in (ConnectionState.OPEN, ConnectionState.ACTIVE):
            self.state = ConnectionState.CLOSED
        self._transport.close()

    # --- reader thread ---

    def _read_loop(self) -> None:
        try:
            while not self._cancelled.is_set():
                try:
                    raw = self._transport.recv()
                except (ConnectionClosed, OSError) as e:
                    if self._closed or self._cancelled.is_set() or is_closed_transport_error(e):
                        logger.debug("live connection closed: %s", e)
                        break
                    self.state = ConnectionState.ERRORED
                    self._failure = TransportError(f"live: read failure: {e}")
                    break

                try:
                    frame = LiveFrame.parse(raw)
                except ValueError as e:
                    logger.warning("discarding malformed frame: %s", e)
                    continue

                self._dispatch(frame)
        except BaseException as e:  # noqa: BLE001 - handed over to the waiting thread
            self.state = ConnectionState.ERRORED
            self._failure = e
        finally:
            self._done.set()

    def _dispatch(self, frame: LiveFrame) -> None:
        kind = frame.kind
        logger.debug("read frame type=%s correlation_id=%s", frame.type, frame.correlation_id)
        if self.config.debug:
            logger.debug("frame data: %s", frame.data)
        if kind is None:
            logger.debug("ignoring frame of unhandled type %r", frame.type)
            return
        if kind is FrameType.STOP:
            self.state = ConnectionState.ENDED

        with self._handlers_lock:
            handler = self._handlers.get(kind)
        if handler is None:
            return
        try:
            handler(frame)
        except Exception as e:
            detail = " ".join(part.strip() for part in str(e).splitlines())
            raise HandlerError(f"live: cannot handle {kind.value} frame: {detail}") from e

    # --- signals ---

    def _install_signal_handlers(self, cancel_signals: Iterable[signal.Signals]) -> dict[signal.Signals, Any]:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("not on the main thread, signal cancellation disabled")
            return {}

        def _on_signal(signum: int, _frame: object) -> None:
            logger.debug("received signal %d, cancelling live query", signum)
            self.cancel()

        previous = {}
        for signum in cancel_signals:
            previous[signum] = signal.signal(signum, _on_signal)
        return previous

    def _restore_signal_handlers(self, previous: dict[signal.Signals, Any]) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
