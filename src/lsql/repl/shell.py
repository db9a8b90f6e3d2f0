"""Interactive lsql shell using prompt_toolkit."""

import logging
from collections.abc import Callable
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import ThreadedCompleter
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import CompleteStyle
from rich.console import Console

from ..banner import print_shell_banner
from ..config import LsqlConfig
from ..live import run_sql
from ..query_history import SqlHistory
from ..session import Session
from ..validation import ValidationClient
from .completer import SqlCompleter
from .executor import SqlExecutor

logger = logging.getLogger(__name__)


class LsqlShell:
    """Read-accumulate-validate-execute loop over one `Session`."""

    def __init__(
        self,
        config: LsqlConfig,
        on_remote_error: str | None = None,
        validator: ValidationClient | None = None,
        input_fn: Callable[[str], str] | None = None,
        console: Console | None = None,
        err_console: Console | None = None,
    ):
        """
        Initialize the shell.

        Args:
            config: Connection and shell settings
            on_remote_error: "exit" or "report"; defaults to the shell config
            validator: Validation client, built from the config when omitted
            input_fn: Plain line reader used instead of prompt_toolkit (tests, pipes)
            console: Destination for records and toggle echoes
            err_console: Destination for errors
        """
        self.config = config
        self.on_remote_error = on_remote_error or config.shell.on_remote_error
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)
        self._input = input_fn

        self.session = Session(prompt=config.shell.prompt, continuation_prompt=config.shell.continuation_prompt, interactive=True)
        self.validator = validator or ValidationClient(config.connection)
        self.history = SqlHistory(config.shell.resolved_history_path())
        self.executor = SqlExecutor(self.session, self.validator, self.history, self.run_statement, self.console, self.err_console)
        self.completer = SqlCompleter(self.session, self.validator)

        self.bindings = KeyBindings()
        self._setup_key_bindings()

    def _setup_key_bindings(self) -> None:
        """Setup custom key bindings."""

        @self.bindings.add("c-l")
        def clear_screen(event: Any) -> None:
            """Ctrl+L: Clear screen"""
            event.app.renderer.clear()

        @self.bindings.add("f2")
        def show_options(event: Any) -> None:
            """F2: Insert the !options command"""
            event.app.current_buffer.insert_text("!options")

    def run_statement(self, sql: str) -> None:
        """Execute a validated statement with the session's current toggles."""
        run_sql(
            sql,
            self.session.toggles,
            self.config.connection,
            interactive=True,
            stats_interval=self.config.shell.stats_interval,
            on_remote_error=self.on_remote_error,
            console=self.console,
            err_console=self.err_console,
        )

    def _build_prompt_session(self) -> PromptSession:
        history = InMemoryHistory()
        for line in self.history.load():
            history.append_string(line)
        return PromptSession(
            history=history,
            completer=ThreadedCompleter(self.completer),
            complete_while_typing=True,
            complete_style=CompleteStyle.MULTI_COLUMN,
            key_bindings=self.bindings,
            wrap_lines=True,
        )

    def _read_line(self) -> str:
        if self._input is not None:
            return self._input(self.session.prompt)
        return self._prompt_session.prompt(lambda: self.session.prompt)

    def run(self) -> int:
        """Run until end of input. Returns the process exit code."""
        print_shell_banner(self.config.connection.host, color=None if self._input else "cyan")
        if self._input is None:
            self._prompt_session = self._build_prompt_session()

        while True:
            try:
                line = self._read_line()
            except KeyboardInterrupt:
                # Ctrl+C at the prompt drops the current line only
                continue
            except EOFError:
                break

            try:
                self.executor.execute(line)
            except KeyboardInterrupt:
                # Ctrl+C while validating or connecting, before the live query owns the signal
                self.session.reset()
                self.err_console.print("Cancelled", style="red")

        logger.debug("shell input closed")
        return 0
