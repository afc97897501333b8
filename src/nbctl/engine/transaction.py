"""Transaction engine: one attempt at committing the whole batch.

Flow of :func:`execute_attempt`:
    1. Open a transaction (dry run if configured) and attach the invocation
       as an audit comment.
    2. Create a fresh symbol table.
    3. Run every command's run phase in order. A command that asks to try
       again aborts the attempt before commit.
    4. Check the symbol table, then commit.
    5. Classify the outcome: success runs the post-commit phases, try-again
       ends the attempt, anything else is fatal.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from nbctl.context import ExecutionContext
from nbctl.exceptions import EngineInvariantError, TransactionError
from nbctl.models.outcome import TxnStatus
from nbctl.symtab import SymbolTable

if TYPE_CHECKING:
    from nbctl.lifecycle import ProcessLifecycle
    from nbctl.models.command import Command
    from nbctl.session.protocols import DatabaseSession, Transaction

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "nbctl"


def execute_attempt(
    session: DatabaseSession,
    commands: Sequence[Command],
    *,
    invocation: str,
    dry_run: bool = False,
    lifecycle: Optional[ProcessLifecycle] = None,
) -> bool:
    """Run one attempt of ``commands``.

    Returns:
        True if the batch was committed (or found nothing to change), False
        if it must be retried once the database has changed.

    Raises:
        DanglingReferenceError: A symbolic name was referenced but never
            created; nothing was committed.
        TransactionError: The database rejected the transaction.
        EngineInvariantError: The outcome should be impossible.
        NbctlError: Any user error raised by a command.
    """
    txn = session.begin_transaction(dry_run=dry_run)
    if lifecycle is not None:
        lifecycle.begin(txn)
    try:
        txn.add_comment(f"{COMMENT_PREFIX}: {invocation}")
        symtab = SymbolTable()

        for command in commands:
            command.reset()
        ctx = ExecutionContext(session, txn=txn, symtab=symtab)
        for command in commands:
            ctx.bind(command)
            if command.syntax.run is not None:
                command.syntax.run(ctx)
            if ctx.try_again:
                logger.debug("'%s' requested a retry", command.name)
                _discard(txn, commands)
                return False

        symtab.check()
        status = txn.commit()
        logger.debug("commit returned %s", status)
        if not isinstance(status, TxnStatus):
            raise _unexpected(status)

        if status.is_success:
            _postprocess(session, txn, symtab, commands)
            return True
        if status is TxnStatus.TRY_AGAIN:
            _discard(txn, commands)
            return False
        if status is TxnStatus.ERROR:
            raise TransactionError(txn.error_message())
        raise _unexpected(status)
    except BaseException:
        if txn.status is TxnStatus.UNCOMMITTED:
            txn.abort()
        raise
    finally:
        if lifecycle is not None:
            lifecycle.end()


def _postprocess(
    session: DatabaseSession,
    txn: Transaction,
    symtab: SymbolTable,
    commands: Sequence[Command],
) -> None:
    for command in commands:
        if command.syntax.postprocess is None:
            continue
        ctx = ExecutionContext(session, txn=txn, symtab=symtab, command=command)
        command.syntax.postprocess(ctx)


def _discard(txn: Transaction, commands: Sequence[Command]) -> None:
    txn.abort()
    for command in commands:
        command.reset()


def _unexpected(status: object) -> EngineInvariantError:
    if status is TxnStatus.ABORTED:
        # Only this engine aborts, and never before commit returns
        return EngineInvariantError("transaction aborted")
    if status is TxnStatus.NOT_LOCKED:
        # This engine never asks for a lock
        return EngineInvariantError("database not locked")
    return EngineInvariantError(f"unexpected transaction status: {status}")
