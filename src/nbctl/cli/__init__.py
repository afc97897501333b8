"""nbctl CLI -- run a batch of northbound database commands as one transaction.

Usage::

    nbctl [OPTIONS] COMMAND [ARG...] [-- [CMD-OPTIONS] COMMAND [ARG...]]...

Everything after the global options is handed to the command parser
unchanged, so command options such as ``--may-exist`` may precede the first
command as well as any later one.
"""

from __future__ import annotations

import logging
import shlex
import sys
from typing import Optional

import click
from pydantic import ValidationError

from nbctl._version import __version__
from nbctl.cli.formatting import format_error, format_listing, get_console, get_error_console
from nbctl.commands import build_registry
from nbctl.engine import run_commands
from nbctl.exceptions import NbctlError
from nbctl.lifecycle import ProcessLifecycle
from nbctl.log import configure_logging, verbosity_level
from nbctl.models.config import NbctlConfig, TableFormat, TableStyle, default_db
from nbctl.output import dispatch_output
from nbctl.parser import parse_commands
from nbctl.session.sql import SqlDatabaseSession

logger = logging.getLogger(__name__)

GLOBAL_OPTIONS = (
    "--db", "--dry-run", "--oneline", "--timeout", "--format",
    "--no-headings", "--bare", "--commands", "--options", "--version",
    "--verbose", "--help",
)


def _table_style(table_format: str, no_headings: bool, bare: bool) -> TableStyle:
    if bare:
        return TableStyle.bare()
    return TableStyle(format=TableFormat(table_format), headings=not no_headings)


def _build_config(
    db: Optional[str],
    dry_run: bool,
    oneline: bool,
    timeout: Optional[float],
    style: TableStyle,
) -> NbctlConfig:
    try:
        return NbctlConfig(
            db=db or default_db(),
            dry_run=dry_run,
            oneline=oneline,
            timeout=timeout,
            table_style=style,
        )
    except ValidationError as exc:
        message = exc.errors()[0]["msg"]
        raise click.UsageError(message.removeprefix("Value error, ")) from None


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    }
)
@click.option("--db", default=None, envvar="OVN_NB_DB", help="Database URL or SQLite file path.")
@click.option("--dry-run", is_flag=True, help="Do not commit changes to the database.")
@click.option("--oneline", is_flag=True, help="Print exactly one line of output per command.")
@click.option("-t", "--timeout", type=float, default=None,
              help="Give up after SECS seconds (0 waits forever).")
@click.option("-f", "--format", "table_format", default=TableFormat.LIST.value,
              type=click.Choice([f.value for f in TableFormat]),
              help="Table output format.")
@click.option("--no-headings", is_flag=True, help="Omit table headings.")
@click.option("--bare", is_flag=True, help="Print table values only, one per line.")
@click.option("--commands", "list_commands", is_flag=True, help="List commands and exit.")
@click.option("--options", "list_options", is_flag=True, help="List options and exit.")
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug).")
@click.version_option(__version__, "-V", "--version", prog_name="nbctl")
@click.argument("argv", nargs=-1, type=click.UNPROCESSED)
def cli(
    db: Optional[str],
    dry_run: bool,
    oneline: bool,
    timeout: Optional[float],
    table_format: str,
    no_headings: bool,
    bare: bool,
    list_commands: bool,
    list_options: bool,
    verbose: int,
    argv: tuple[str, ...],
) -> None:
    """Northbound database command-line client.

    Commands are separated by "--" and run as a single transaction.
    """
    configure_logging(level=verbosity_level(verbose), force=True)
    registry = build_registry()

    if list_commands:
        format_listing(registry.describe().splitlines(), get_console())
        return
    if list_options:
        format_listing([*GLOBAL_OPTIONS, *registry.option_names()], get_console())
        return

    config = _build_config(
        db, dry_run, oneline, timeout, _table_style(table_format, no_headings, bare)
    )
    invocation = shlex.join(argv)
    logger.log(
        logging.INFO if registry.might_write(argv) else logging.DEBUG,
        "Called as %s", invocation,
    )

    console = get_error_console()
    try:
        commands = parse_commands(argv, registry)
        session = SqlDatabaseSession.open(config.db, poll_interval=config.poll_interval)
        with ProcessLifecycle(session) as lifecycle:
            attempts = run_commands(
                session,
                commands,
                invocation=invocation,
                dry_run=config.dry_run,
                timeout=config.timeout,
                lifecycle=lifecycle,
            )
        logger.debug("committed after %d attempt(s)", attempts)
        dispatch_output(commands, config, sys.stdout)
    except NbctlError as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


def main() -> None:
    cli(prog_name="nbctl")
