"""Read-only row view shared by the session cache and open transactions."""

from __future__ import annotations

import copy
from typing import Any, Mapping

from nbctl.schema import TableSchema


class Row:
    """A database row as seen by commands.

    Rows are snapshots: changing the database is done by queueing operations
    on a transaction, never by modifying a Row. Two rows compare equal when
    they name the same record, whatever their contents.
    """

    __slots__ = ("table", "uuid", "_data")

    def __init__(self, table: TableSchema, uuid: str, data: Mapping[str, Any]) -> None:
        self.table = table
        self.uuid = uuid
        self._data = dict(data)

    def __getitem__(self, column: str) -> Any:
        col = self.table.column(column)
        if column not in self._data:
            return col.default()
        # Callers get their own copy of sets and maps
        return copy.copy(self._data[column])

    @property
    def name(self) -> str | None:
        """Value of the table's index column, or None if it has none."""
        if self.table.index is None:
            return None
        return self[self.table.index]

    def to_dict(self) -> dict[str, Any]:
        """All columns, with defaults filled in."""
        return {name: self[name] for name in self.table.columns}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.table.name == other.table.name and self.uuid == other.uuid

    def __hash__(self) -> int:
        return hash((self.table.name, self.uuid))

    def __repr__(self) -> str:
        return f"Row({self.table.name}, {self.uuid})"
