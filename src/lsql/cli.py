"""
This module defines the command-line interface (CLI) for lsql.

It uses the `click` library for the interactive shell, one-shot query
execution, statement validation, and history management.
"""

import sys
from pathlib import Path
from typing import NoReturn, TextIO

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import REMOTE_ERROR_POLICIES, LsqlConfig
from .errors import ConfigError, HandlerError, TransportError, ValidationError
from .live import run_sql
from .my_logging import debug_log, setup_debug_logging
from .query_history import SqlHistory
from .repl import LsqlShell
from .session import DisplayToggles
from .validation import ValidationClient

# Initialize Rich consoles for pretty output
console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def fail(message: str) -> NoReturn:
    """Write one error line to stderr and exit with code 1."""
    err_console.print(escape(message), style="red")
    sys.exit(1)


def read_query(args: tuple[str, ...], stdin: TextIO | None = None) -> str:
    """
    Resolve the statement of a one-shot command.

    The single argument is either the SQL itself or the path of a file holding
    it; without an argument the statement is read from a piped stdin.
    Newlines are collapsed to spaces and the result trimmed.
    """
    if len(args) > 1:
        raise click.UsageError(f"Only one sql statement is allowed, received [{len(args)}]")

    if args:
        text = args[0]
        try:
            path = Path(text).expanduser()
            if path.is_file():
                text = path.read_text(encoding="utf-8")
        except OSError:
            # not a usable path (too long, bad characters): it is the SQL
            pass
    else:
        stream = stdin or click.get_text_stream("stdin")
        if stream.isatty():
            raise click.UsageError('sql query is missing, the correct form is: query "your query"')
        text = stream.read()

    query = " ".join(text.splitlines()).strip()
    if not query:
        raise click.UsageError("query should not be empty")
    return query


@click.group()
@click.version_option(package_name="lsql-shell")
@click.option("--host", default=None, help="Remote service address, e.g. https://lenses:9991")
@click.option("--token", default=None, help="Authentication token")
@click.option("--debug", is_flag=True, help="Log requests and frames to stderr")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification")
@click.pass_context
def main(ctx: click.Context, host: str | None, token: str | None, debug: bool, insecure: bool) -> None:
    """lsql - streaming SQL client for a remote data platform."""
    try:
        config = LsqlConfig.load()
    except ConfigError as e:
        fail(e.message)

    if host:
        config.connection.host = host
    if token:
        config.connection.token = token
    if debug:
        config.connection.debug = True
    if insecure:
        config.connection.insecure = True

    setup_debug_logging(config.connection.debug)
    debug_log("configuration loaded", host=config.connection.host, insecure=config.connection.insecure, history=config.shell.resolved_history_path())
    ctx.obj = config


@main.command()
@click.option("--on-remote-error", type=click.Choice(REMOTE_ERROR_POLICIES), default=None, help="Exit or keep the shell when the server reports a query error")
@click.pass_obj
def shell(config: LsqlConfig, on_remote_error: str | None) -> None:
    """Start the interactive SQL shell."""
    code = LsqlShell(config, on_remote_error=on_remote_error, console=console, err_console=err_console).run()
    sys.exit(code)


@main.command()
@click.argument("sql", nargs=-1)
@click.option("--live-stream", is_flag=True, help="Run in continuous query mode")
@click.option("--stats", is_flag=True, help="Print query stats")
@click.option("--keys", is_flag=True, help="Print message keys")
@click.option("--keys-only", is_flag=True, help="Print message keys only")
@click.option("--meta", is_flag=True, help="Print message metadata")
@click.option("--pretty", is_flag=True, help="Pretty print each record")
@click.option("--on-remote-error", type=click.Choice(REMOTE_ERROR_POLICIES), default="exit", help="Exit or return normally when the server reports a query error")
@click.pass_obj
def query(
    config: LsqlConfig,
    sql: tuple[str, ...],
    live_stream: bool,
    stats: bool,
    keys: bool,
    keys_only: bool,
    meta: bool,
    pretty: bool,
    on_remote_error: str,
) -> None:
    """Run one query, browsing or continuous (--live-stream).

    SQL is the statement itself or a file containing it; when omitted the
    statement is read from stdin.
    """
    statement = read_query(sql)
    toggles = DisplayToggles(keys=keys, keys_only=keys_only, meta=meta, stats=stats, live_stream=live_stream, pretty=pretty)

    try:
        blocking = ValidationClient(config.connection).lint(statement)
    except ValidationError as e:
        fail(e.message)

    if blocking:
        for lint in blocking:
            err_console.print(escape(f"Validation error: {lint.describe()}"), style="red")
        sys.exit(1)

    try:
        run_sql(
            statement,
            toggles,
            config.connection,
            interactive=False,
            stats_interval=config.shell.stats_interval,
            on_remote_error=on_remote_error,
            console=console,
            err_console=err_console,
        )
    except (TransportError, HandlerError) as e:
        fail(e.message)


@main.command()
@click.argument("sql", nargs=-1)
@click.pass_obj
def validate(config: LsqlConfig, sql: tuple[str, ...]) -> None:
    """Validate a statement without running it."""
    statement = read_query(sql)

    try:
        result = ValidationClient(config.connection).validate(statement)
    except ValidationError as e:
        fail(e.message)

    for lint in result.lints:
        style = "red" if lint.is_blocking else "yellow"
        console.print(escape(lint.describe()), style=style)

    if result.blocking_lints():
        sys.exit(1)
    if not result.lints:
        console.print("[green]✓ Statement is valid[/green]")


@main.group()
def history() -> None:
    """Manage statement history."""
    pass


@history.command("recent")
@click.option("--limit", "-n", default=10, help="Number of statements to show")
@click.pass_obj
def history_recent(config: LsqlConfig, limit: int) -> None:
    """Show recently executed statements."""
    records = SqlHistory(config.shell.resolved_history_path()).recent(limit)

    if not records:
        console.print("[yellow]No statement history found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Statement")

    for index, statement in enumerate(records, start=1):
        table.add_row(str(index), escape(statement))

    console.print(table)
    console.print(f"\n[dim]Showing {len(records)} most recent statements[/dim]")


@history.command("clear")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
@click.pass_obj
def history_clear(config: LsqlConfig, force: bool) -> None:
    """Clear statement history."""
    if not force and not click.confirm("Clear ALL statement history? This cannot be undone!"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    count = SqlHistory(config.shell.resolved_history_path()).clear()
    console.print(f"[green]✓ Cleared {count} statements from history[/green]")


if __name__ == "__main__":
    main()
