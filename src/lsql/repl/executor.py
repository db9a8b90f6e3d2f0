"""
Statement accumulator behind the interactive shell.

Each input line goes through `SqlExecutor.execute`:

- `!`-prefixed lines flip a display toggle and leave the buffer alone;
- lines not ending in `;` are buffered and the prompt switches to the
  continuation marker, without any network call;
- a line ending in `;` completes the statement, which is validated as a whole
  and, when no warning or error lint comes back, executed over a live
  connection. The call blocks until that connection is done.
"""

import logging
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape

from ..errors import HandlerError, LintBlocking, TransportError, ValidationError
from ..query_history import SqlHistory
from ..session import TOGGLE_COMMANDS, ReplState, Session
from ..validation import ValidationClient

logger = logging.getLogger(__name__)


class SqlExecutor:
    """Drives one line of shell input through accumulate, validate and execute."""

    def __init__(
        self,
        session: Session,
        validator: ValidationClient,
        history: SqlHistory,
        run_statement: Callable[[str], None],
        console: Console | None = None,
        err_console: Console | None = None,
    ):
        """
        Args:
            session: Toggles, buffer and prompt shared with the completer
            validator: Client for the validation endpoint
            history: Where executed lines are appended
            run_statement: Executes a validated statement and blocks until it ends
            console: Destination for toggle echoes
            err_console: Destination for error lines
        """
        self.session = session
        self.validator = validator
        self.history = history
        self.run_statement = run_statement
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def execute(self, line: str) -> None:
        """Handle one input line."""
        text = line.strip()
        if not text:
            return

        if text.startswith("!"):
            self.run_option(text)
            return

        if not text.endswith(";"):
            self.session.accumulate(text)
            return

        statement = self.session.statement_with(text)
        try:
            self._validate(statement)
        except LintBlocking as e:
            for lint in e.lints:
                self._error(f"Validation error: [{lint.text}]")
            self.session.reset()
            return
        except ValidationError as e:
            self.session.reset()
            if not self.session.interactive:
                raise
            self._error(e.message)
            return

        self.session.state = ReplState.EXECUTING
        try:
            self.run_statement(statement)
        except (TransportError, HandlerError) as e:
            self._error(e.message)
            return
        finally:
            self.session.reset()

        self.history.append(text)

    def _validate(self, statement: str) -> None:
        self.session.state = ReplState.VALIDATING
        logger.debug("validating statement %r", statement)
        blocking = self.validator.lint(statement)
        if blocking:
            raise LintBlocking(blocking)

    def run_option(self, command: str) -> None:
        """Apply a `!` command: print the options or flip one toggle."""
        toggles = self.session.toggles
        if command == "!options":
            self.console.out(toggles.describe())
            return

        name = TOGGLE_COMMANDS.get(command)
        if name is None:
            self._error(f"Unknown option [{command}]")
            return

        value = toggles.flip(name)
        self.console.out(f"Option [{command}] set to [{str(value).lower()}]")

    def _error(self, message: str) -> None:
        self.err_console.print(escape(message), style="red")
