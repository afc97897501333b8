"""Execution context threaded through every command phase.

A context is created for the prerequisite phase (no transaction, no symbol
table), once per transaction attempt (rebound to each command in turn), and
for the post-commit phase. Command handlers reach the session, the open
transaction and the symbol table only through it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from nbctl.exceptions import EngineInvariantError

if TYPE_CHECKING:
    from io import StringIO

    from nbctl.models.command import Command, Table
    from nbctl.schema import DatabaseSchema
    from nbctl.session.protocols import DatabaseSession, Transaction
    from nbctl.session.row import Row
    from nbctl.symtab import SymbolTable


class ExecutionContext:
    """State available to a command phase."""

    def __init__(
        self,
        session: DatabaseSession,
        *,
        txn: Optional[Transaction] = None,
        symtab: Optional[SymbolTable] = None,
        command: Optional[Command] = None,
    ) -> None:
        self.session = session
        self.txn = txn
        self.symtab = symtab
        self.command: Optional[Command] = None
        self.try_again = False
        if command is not None:
            self.bind(command)

    def bind(self, command: Command) -> None:
        """Make ``command`` the current command."""
        self.command = command

    def _current(self) -> Command:
        if self.command is None:
            raise EngineInvariantError("no command bound to the execution context")
        return self.command

    # ------------------------------------------------------------------
    # Command state
    # ------------------------------------------------------------------

    @property
    def args(self) -> list[str]:
        """Positional arguments of the current command (verb excluded)."""
        return self._current().args

    @property
    def options(self) -> dict[str, Optional[str]]:
        return self._current().options

    def has_option(self, name: str) -> bool:
        return self._current().has_option(name)

    @property
    def output(self) -> StringIO:
        return self._current().output

    def write(self, text: str) -> None:
        self._current().output.write(text)

    @property
    def table(self) -> Optional[Table]:
        return self._current().table

    @table.setter
    def table(self, table: Optional[Table]) -> None:
        self._current().table = table

    def request_retry(self) -> None:
        """Ask the engine to rerun the batch once the database has changed."""
        self.try_again = True

    # ------------------------------------------------------------------
    # Database access
    # ------------------------------------------------------------------

    @property
    def schema(self) -> DatabaseSchema:
        return self.session.schema

    def rows(self, table: str) -> Iterable[Row]:
        """Rows of ``table``, including the open transaction's changes."""
        source = self.txn if self.txn is not None else self.session
        return source.rows(table)

    def get_row(self, table: str, uuid: str) -> Row | None:
        source = self.txn if self.txn is not None else self.session
        return source.get_row(table, uuid)

    def require_txn(self) -> Transaction:
        if self.txn is None:
            raise EngineInvariantError(
                f"'{self._current().name}' needs a transaction outside the run phase"
            )
        return self.txn

    def require_symtab(self) -> SymbolTable:
        if self.symtab is None:
            raise EngineInvariantError(
                f"'{self._current().name}' needs a symbol table outside the run phase"
            )
        return self.symtab
