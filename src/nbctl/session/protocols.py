"""Protocol definitions for the database session collaborator.

The engine only talks to the database through these two interfaces. No
SQLAlchemy imports allowed in this module -- pure contracts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from nbctl.models.outcome import TxnStatus
    from nbctl.schema import DatabaseSchema
    from nbctl.session.row import Row


@runtime_checkable
class Transaction(Protocol):
    """A set of queued changes that is committed atomically.

    Reads through a transaction see its own pending changes. Nothing reaches
    the database before commit().
    """

    @property
    def status(self) -> TxnStatus:
        """Current status; UNCOMMITTED until commit() or abort()."""
        ...

    def add_comment(self, text: str) -> None:
        """Attach an audit comment recorded with the commit."""
        ...

    def rows(self, table: str) -> Iterable[Row]:
        """All rows of ``table`` including pending inserts and updates."""
        ...

    def get_row(self, table: str, uuid: str) -> Row | None:
        ...

    def insert(self, table: str, *, uuid: str | None = None) -> Row:
        """Queue a new row. ``uuid`` is a provisional id chosen by the caller."""
        ...

    def set(self, row: Row, column: str, value: Any) -> Row:
        """Queue a column write and return the updated view of the row."""
        ...

    def delete(self, row: Row) -> None:
        ...

    def verify(self, row: Row, column: str) -> None:
        """Require ``row`` to be unchanged in the database at commit time."""
        ...

    def commit(self) -> TxnStatus:
        """Commit, blocking until the outcome is known."""
        ...

    def abort(self) -> None:
        ...

    def error_message(self) -> str:
        ...

    def get_insert_uuid(self, uuid: str) -> str | None:
        """Database-assigned UUID for a row inserted with provisional ``uuid``."""
        ...


@runtime_checkable
class DatabaseSession(Protocol):
    """A client's cached, versioned view of the database."""

    @property
    def schema(self) -> DatabaseSchema:
        ...

    @property
    def name(self) -> str:
        """Human-readable database location, used in diagnostics."""
        ...

    def current_version(self) -> int:
        """Counter that changes whenever the cached view changes."""
        ...

    def advance(self) -> None:
        """Process pending I/O without blocking."""
        ...

    def is_alive(self) -> bool:
        ...

    def last_error(self) -> str | None:
        ...

    def wait_for_change(self, timeout: float | None = None) -> None:
        """Block until the view may have changed, or ``timeout`` seconds pass."""
        ...

    def begin_transaction(self, *, dry_run: bool = False) -> Transaction:
        ...

    def rows(self, table: str) -> Iterable[Row]:
        """Rows of ``table`` in the cached view."""
        ...

    def get_row(self, table: str, uuid: str) -> Row | None:
        ...

    def close(self) -> None:
        ...
