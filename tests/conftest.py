"""Shared test fixtures for nbctl.

Provides file-backed SQLite databases (several sessions may share one), an
open session fixture, and a helper that runs a whole command batch the way
the CLI does, returning what would be printed.
"""

from __future__ import annotations

import io
import shlex
from typing import Optional

import pytest

from nbctl.commands import build_registry
from nbctl.engine import run_commands
from nbctl.models.config import NbctlConfig, TableStyle
from nbctl.output import dispatch_output
from nbctl.parser import parse_commands
from nbctl.registry import CommandRegistry
from nbctl.session.sql import SqlDatabaseSession


@pytest.fixture
def db_path(tmp_path) -> str:
    """Path of a fresh SQLite database file."""
    return str(tmp_path / "ovnnb_db.sqlite")


@pytest.fixture
def registry() -> CommandRegistry:
    return build_registry()


@pytest.fixture
def session(db_path):
    """Session on ``db_path`` that has already loaded its first snapshot."""
    sess = SqlDatabaseSession.open(db_path, poll_interval=0.01)
    sess.advance()
    yield sess
    sess.close()


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------

class BatchRunner:
    """Run command batches against one database, each with a fresh session."""

    def __init__(self, db: str, registry: CommandRegistry) -> None:
        self.db = db
        self.registry = registry

    def __call__(
        self,
        *argv: str,
        dry_run: bool = False,
        oneline: bool = False,
        style: Optional[TableStyle] = None,
        timeout: float = 5.0,
    ) -> str:
        commands = parse_commands(list(argv), self.registry)
        session = SqlDatabaseSession.open(self.db, poll_interval=0.01)
        try:
            run_commands(
                session,
                commands,
                invocation=shlex.join(argv),
                dry_run=dry_run,
                timeout=timeout,
            )
        finally:
            session.close()
        config = NbctlConfig(
            db=self.db, dry_run=dry_run, oneline=oneline,
            table_style=style or TableStyle(),
        )
        buf = io.StringIO()
        dispatch_output(commands, config, buf)
        return buf.getvalue()

    def lines(self, *argv: str, **kwargs) -> list[str]:
        return self(*argv, **kwargs).splitlines()


@pytest.fixture
def nbctl(db_path, registry) -> BatchRunner:
    """Callable that runs one batch: ``nbctl("lswitch-add", "sw0")``."""
    return BatchRunner(db_path, registry)
