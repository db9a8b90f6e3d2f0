"""Unit tests for the live query connection."""

import json
import logging
import os
import signal
import threading
from dataclasses import replace

import pytest
from conftest import FakeTransport
from websockets.exceptions import ConnectionClosedError, InvalidHandshake

from lsql.errors import HandlerError, TransportError
from lsql.live import ConnectionState, LiveConfig, LiveConnection
from lsql.models import FrameType

CONFIG = LiveConfig(host="http://lenses:9991", token="secret", sql="SELECT * FROM topic1", live=True, stats_interval=3)


def record(value):
    return {"type": "record", "data": {"key": None, "value": value}}


STOP = {"type": "stop", "data": {"totalRecords": 2}}


def make_connection(frames=None):
    transport = FakeTransport(frames)
    return LiveConnection(transport, CONFIG), transport


class TestOpen:
    """Unit tests for establishing the connection."""

    def test_endpoint_scheme(self):
        assert CONFIG.endpoint == "ws://lenses:9991/api/ws/v2/sql/execute"
        assert LiveConfig(host="https://lenses/", token="", sql="").endpoint == "wss://lenses/api/ws/v2/sql/execute"

    def test_sends_query_request(self):
        """Test that the opening message carries token, sql, mode and stats hint."""
        transport = FakeTransport()
        calls = []

        def connector(endpoint, **options):
            calls.append((endpoint, options))
            return transport

        connection = LiveConnection.open(CONFIG, connector=connector)

        assert connection.state is ConnectionState.OPEN
        endpoint, options = calls[0]
        assert endpoint == "ws://lenses:9991/api/ws/v2/sql/execute"
        assert options["additional_headers"] == {"X-Kafka-Lenses-Token": "secret"}
        assert "ssl" not in options
        assert json.loads(transport.sent[0]) == {"token": "secret", "sql": "SELECT * FROM topic1", "live": True, "statsEveryHintSeconds": 3}

    def test_tls_endpoint_gets_ssl_context(self):
        calls = []

        def connector(endpoint, **options):
            calls.append(options)
            return FakeTransport()

        LiveConnection.open(LiveConfig(host="https://lenses", token="t", sql="SELECT 1", insecure=True), connector=connector)

        assert calls[0]["ssl"].check_hostname is False

    @pytest.mark.parametrize("error", [ConnectionRefusedError("refused"), TimeoutError("timed out"), InvalidHandshake("403")])
    def test_connect_failure(self, error):
        def connector(endpoint, **options):
            raise error

        with pytest.raises(TransportError, match="connect failure for 'http://lenses:9991'"):
            LiveConnection.open(CONFIG, connector=connector)

    def test_send_failure_closes(self):
        transport = FakeTransport()

        def broken_send(message):
            raise OSError("broken pipe")

        transport.send = broken_send

        with pytest.raises(TransportError, match="cannot send query"):
            LiveConnection.open(CONFIG, connector=lambda endpoint, **options: transport)
        assert transport.closed.is_set()


class TestDispatch:
    """Unit tests for frame dispatch and the end of a query."""

    def test_frames_in_wire_order(self):
        """Test that every frame reaches its handler in arrival order."""
        connection, _ = make_connection([record(1), {"type": "STATS", "data": {"n": 1}}, record(2), STOP])
        seen = []
        connection.on_record_message(lambda frame: seen.append(("record", frame.record.value)))
        connection.on_stats(lambda frame: seen.append(("stats", frame.stats["n"])))
        connection.on_end(lambda frame: (seen.append(("stop", frame.stop.total_records)), connection.cancel()))

        connection.wait(cancel_signals=())

        assert seen == [("record", 1), ("stats", 1), ("record", 2), ("stop", 2)]
        assert connection.state is ConnectionState.ENDED

    def test_last_handler_wins(self):
        connection, _ = make_connection([record("v"), STOP])
        seen = []
        connection.on_record_message(lambda frame: seen.append("first"))
        connection.on(FrameType.RECORD, lambda frame: seen.append("second"))
        connection.on_end(lambda frame: connection.cancel())

        connection.wait(cancel_signals=())

        assert seen == ["second"]

    def test_unknown_and_malformed_frames_skipped(self):
        connection, _ = make_connection(["{not json", "[1]", {"type": "heartbeat"}, record("ok"), STOP])
        seen = []
        connection.on_record_message(lambda frame: seen.append(frame.record.value))
        connection.on_end(lambda frame: connection.cancel())

        connection.wait(cancel_signals=())

        assert seen == ["ok"]

    def test_error_and_invalid_request_handlers(self):
        connection, _ = make_connection([{"type": "invalid_request", "data": "bad"}, {"type": "error", "data": {"message": "boom"}}, STOP])
        seen = []
        connection.on_invalid_request(lambda frame: seen.append(("invalid", frame.message)))
        connection.on_error(lambda frame: seen.append(("error", frame.message)))
        connection.on_end(lambda frame: connection.cancel())

        connection.wait(cancel_signals=())

        assert seen == [("invalid", "bad"), ("error", "boom")]

    def test_handler_exception_reraised_in_caller(self):
        """Test that an exit raised on the read thread ends the waiting thread."""
        connection, transport = make_connection([STOP])

        def exit_now(frame):
            raise SystemExit(0)

        connection.on_end(exit_now)

        with pytest.raises(SystemExit) as exc_info:
            connection.wait(cancel_signals=())

        assert exc_info.value.code == 0
        assert connection.state is ConnectionState.ERRORED
        assert transport.closed.is_set()

    def test_handler_failure_wrapped(self):
        """Test that a failing handler ends the query with a one-line error."""
        connection, transport = make_connection([record(1), record(2)])
        seen = []

        def broken(frame):
            seen.append(frame.record.value)
            raise RuntimeError("stdout closed\nsecond line")

        connection.on_record_message(broken)

        with pytest.raises(HandlerError, match="cannot handle record frame: stdout closed second line") as exc_info:
            connection.wait(cancel_signals=())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert seen == [1]
        assert connection.state is ConnectionState.ERRORED
        assert transport.closed.is_set()

    def test_debug_logs_frame_data(self, caplog):
        caplog.set_level(logging.DEBUG, logger="lsql.live.connection")
        transport = FakeTransport([record("payload-1"), STOP])
        connection = LiveConnection.open(replace(CONFIG, debug=True), connector=lambda endpoint, **options: transport)
        connection.on_end(lambda frame: connection.cancel())

        connection.wait(cancel_signals=())

        assert "payload-1" in caplog.text
        assert "secret" not in caplog.text

    def test_remote_close_returns(self):
        """Test that a server-side close without a stop frame ends the wait quietly."""
        connection, transport = make_connection([record(1)])
        transport.closed.set()

        connection.wait(cancel_signals=())

        assert transport.close_calls == 1


class TestCancellation:
    """Unit tests for cancelling a query and closing the transport."""

    def test_cancel_from_handler(self):
        connection, transport = make_connection([record(1), record(2)])
        seen = []

        def first_only(frame):
            seen.append(frame.record.value)
            connection.cancel()

        connection.on_record_message(first_only)

        connection.wait(cancel_signals=())

        assert seen == [1]
        assert connection.cancelled
        assert connection.state is ConnectionState.CLOSED
        assert transport.close_calls == 1

    def test_sigint_cancels_without_error(self):
        """Test that SIGINT ends a live query that would otherwise never stop."""
        connection, transport = make_connection()
        previous = signal.getsignal(signal.SIGINT)
        timer = threading.Timer(0.2, os.kill, args=(os.getpid(), signal.SIGINT))
        timer.start()

        try:
            connection.wait()
        finally:
            timer.cancel()

        assert connection.cancelled
        assert transport.closed.is_set()
        assert signal.getsignal(signal.SIGINT) is previous

    def test_genuine_read_failure(self):
        connection, _ = make_connection([record(1), ConnectionClosedError(None, None)])

        with pytest.raises(TransportError, match="read failure"):
            connection.wait(cancel_signals=())

        assert connection.state is ConnectionState.ERRORED

    def test_closed_read_error_filtered(self):
        connection, _ = make_connection([OSError("use of closed network connection")])

        connection.wait(cancel_signals=())

    def test_close_is_idempotent(self):
        connection, transport = make_connection()

        connection.close()
        connection.close()

        assert transport.close_calls == 1
        assert connection.state is ConnectionState.CLOSED
