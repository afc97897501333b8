"""Prerequisite runner: the read-only phase that precedes every transaction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from nbctl.context import ExecutionContext
from nbctl.exceptions import EngineInvariantError

if TYPE_CHECKING:
    from nbctl.models.command import Command
    from nbctl.session.protocols import DatabaseSession


def run_prerequisites(commands: Sequence[Command], session: DatabaseSession) -> None:
    """Run each command's prerequisites once, with no transaction open.

    Prerequisites validate what can be validated without a transaction, so
    that a batch that can never succeed fails before the first attempt. They
    must not produce output or a table; those belong to the run and
    post-commit phases.
    """
    for command in commands:
        if command.syntax.prerequisites is None:
            continue
        command.reset()
        ctx = ExecutionContext(session, command=command)
        command.syntax.prerequisites(ctx)
        if command.output.getvalue():
            raise EngineInvariantError(
                f"prerequisites of '{command.name}' produced output"
            )
        if command.table is not None:
            raise EngineInvariantError(
                f"prerequisites of '{command.name}' produced a table"
            )
