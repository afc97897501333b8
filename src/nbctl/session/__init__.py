"""Database sessions: the cached view of the store and its transactions."""

from nbctl.session.protocols import DatabaseSession, Transaction
from nbctl.session.row import Row
from nbctl.session.sql import SqlDatabaseSession, SqlTransaction

__all__ = [
    "DatabaseSession",
    "Row",
    "SqlDatabaseSession",
    "SqlTransaction",
    "Transaction",
]
