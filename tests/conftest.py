"""Pytest configuration and shared fixtures for all tests."""

import io
import json
import queue
import sys
import threading
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from websockets.exceptions import ConnectionClosedOK

# Add src to path for all test modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the user's LSQL_* variables and config files out of every test."""
    import logging
    import os

    from lsql import config

    for name in list(os.environ):
        if name.startswith("LSQL_"):
            monkeypatch.delenv(name, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(config, "DEFAULT_HOME", home)
    monkeypatch.chdir(tmp_path)
    config._config = None
    logger = logging.getLogger("lsql")
    saved = logger.level, list(logger.handlers), logger.propagate

    yield home

    config._config = None
    logger.setLevel(saved[0])
    logger.handlers[:] = saved[1]
    logger.propagate = saved[2]


class FakeResponse:
    """Stands in for requests.Response."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: str | None = None):
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeHttpSession:
    """Stands in for requests.Session; records posted bodies, replays responses."""

    def __init__(self, *responses: Any):
        self.headers: dict[str, str] = {}
        self.verify = True
        self.calls: list[dict[str, Any]] = []
        self._responses = list(responses)

    def post(self, url: str, json: Any = None, timeout: float | None = None) -> FakeResponse:
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, FakeResponse):
            return response
        return FakeResponse(response)


class FakeTransport:
    """
    Stands in for a websockets ClientConnection.

    Frames given up front are returned by `recv` in order; afterwards `recv`
    blocks until more are pushed or the transport is closed.
    """

    def __init__(self, frames: list[Any] | None = None):
        self.sent: list[str] = []
        self.closed = threading.Event()
        self.close_calls = 0
        self._inbox: queue.Queue = queue.Queue()
        for frame in frames or []:
            self.push(frame)

    def push(self, frame: Any) -> None:
        self._inbox.put(frame if isinstance(frame, (str, bytes, Exception)) else json.dumps(frame))

    def send(self, message: str) -> None:
        self.sent.append(message)

    def recv(self) -> str:
        while True:
            try:
                item = self._inbox.get(timeout=0.01)
            except queue.Empty:
                if self.closed.is_set():
                    raise ConnectionClosedOK(None, None) from None
                continue
            if isinstance(item, Exception):
                raise item
            return item

    def close(self) -> None:
        self.close_calls += 1
        self.closed.set()


@pytest.fixture
def consoles():
    """A stdout/stderr pair of rich consoles writing into buffers."""
    out, err = io.StringIO(), io.StringIO()
    return (
        Console(file=out, highlight=False, width=200),
        Console(file=err, highlight=False, width=200),
        out,
        err,
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config, items):  # noqa: ARG001
    """Mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
