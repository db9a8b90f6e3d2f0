"""
Exceptions raised by the lsql client.

Every error the shell or the one-shot commands can report derives from
`LsqlError`. Each carries a one-line `message` suitable for stderr; the CLI
layer decides whether an error is fatal (exit code 1) or reported and
recovered.

Cancelling a query through a signal is not an error and has no exception:
`LiveConnection.wait` simply returns.
"""

from typing import TYPE_CHECKING

from websockets.exceptions import ConnectionClosedOK

if TYPE_CHECKING:
    from .models import Lint


class LsqlError(Exception):
    """Base exception for all lsql errors."""

    error_code: str = "lsql_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Convert to a serializable error dict."""
        return {"error": self.error_code, "message": self.message}


class ConfigError(LsqlError):
    """Raised when the configuration is missing or unreadable."""

    error_code = "config_error"


class TransportError(LsqlError):
    """Raised when the live connection cannot be opened or a read fails."""

    error_code = "transport_error"


class HandlerError(LsqlError):
    """Raised when a frame handler fails, e.g. on a malformed record or a broken stdout."""

    error_code = "handler_error"


class ValidationError(LsqlError):
    """Raised when the validation call to the remote service fails entirely."""

    error_code = "validation_error"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LintBlocking(LsqlError):
    """Raised when a statement has warning or error lints and must not run."""

    error_code = "lint_blocking"

    def __init__(self, lints: list["Lint"]):
        super().__init__("; ".join(lint.text for lint in lints) or "statement rejected by validation")
        self.lints = lints


class RemoteError(LsqlError):
    """The server reported a failure for the in-flight query."""

    error_code = "remote_error"

    def __init__(self, message: str, correlation_id: int | None = None):
        super().__init__(message)
        self.correlation_id = correlation_id


class RemoteInvalidRequest(RemoteError):
    """The server rejected the request that opened the live query."""

    error_code = "remote_invalid_request"


_CLOSED_MARKERS = ("use of closed", "connection closed", "closed connection")


def is_closed_transport_error(exc: BaseException) -> bool:
    """
    Tells a deliberately closed transport apart from a genuine read failure.

    A `websockets` ConnectionClosedOK means the close handshake completed, so
    it always counts as deliberate. Anything else is matched on its message.
    """
    if isinstance(exc, ConnectionClosedOK):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _CLOSED_MARKERS)
