"""Northbound database schema for nbctl.

Describes the tables and columns that commands may read and write. The
session uses it to fill in column defaults, to know which references are
strong (they keep rows alive) and which tables belong to the root set; the
generic database commands use it to parse and format values.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel

from nbctl.exceptions import CommandSyntaxError


class AtomicType(str, enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    UUID = "uuid"


class ColumnKind(str, enum.Enum):
    """Shape of a column value.

    SCALAR holds exactly one atom, OPTIONAL zero or one (None when empty),
    SET a list of atoms, MAP a dict of atom to atom.
    """

    SCALAR = "scalar"
    OPTIONAL = "optional"
    SET = "set"
    MAP = "map"


class RefType(str, enum.Enum):
    STRONG = "strong"
    WEAK = "weak"


_ATOM_DEFAULTS: dict[AtomicType, Any] = {
    AtomicType.STRING: "",
    AtomicType.INTEGER: 0,
    AtomicType.BOOLEAN: False,
    AtomicType.UUID: None,
}


class ColumnSchema(BaseModel):
    """One column of a table."""

    name: str
    type: AtomicType = AtomicType.STRING
    kind: ColumnKind = ColumnKind.SCALAR
    value_type: Optional[AtomicType] = None  # MAP columns only
    ref_table: Optional[str] = None  # UUID columns only
    ref_type: RefType = RefType.STRONG

    @property
    def is_reference(self) -> bool:
        return self.ref_table is not None

    def default(self) -> Any:
        """Value of the column in a freshly inserted row."""
        if self.kind is ColumnKind.SET:
            return []
        if self.kind is ColumnKind.MAP:
            return {}
        if self.kind is ColumnKind.OPTIONAL:
            return None
        return _ATOM_DEFAULTS[self.type]

    def references(self, value: Any) -> list[str]:
        """Return the row UUIDs referenced by ``value`` in this column."""
        if not self.is_reference or value is None:
            return []
        if self.kind is ColumnKind.SET:
            return list(value)
        if self.kind is ColumnKind.MAP:
            return list(value.values())
        return [value]


class TableSchema(BaseModel):
    """One table of the database.

    Rows of a root table persist on their own. Rows of any other table are
    garbage collected once no strong reference points to them.
    """

    name: str
    columns: dict[str, ColumnSchema]
    is_root: bool = False
    index: Optional[str] = None  # column that names rows, if any

    def column(self, name: str) -> ColumnSchema:
        try:
            return self.columns[name]
        except KeyError:
            raise CommandSyntaxError(
                f"{self.name} does not contain a column whose name matches \"{name}\""
            ) from None

    def defaults(self) -> dict[str, Any]:
        return {name: col.default() for name, col in self.columns.items()}


class DatabaseSchema(BaseModel):
    """Complete schema of a database."""

    name: str
    version: str
    tables: dict[str, TableSchema]

    def table(self, name: str) -> TableSchema:
        """Exact-name lookup, for code that already knows the table."""
        return self.tables[name]

    def find_table(self, name: str) -> TableSchema:
        """Look a table up as typed by a user.

        Matching is case-insensitive; a unique prefix is accepted.
        """
        lowered = name.lower()
        for table in self.tables.values():
            if table.name.lower() == lowered:
                return table
        matches = [t for t in self.tables.values() if t.name.lower().startswith(lowered)]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise CommandSyntaxError(f"multiple table names match \"{name}\"")
        raise CommandSyntaxError(f"unknown table \"{name}\"")


def _col(name: str, **kwargs: Any) -> tuple[str, ColumnSchema]:
    return name, ColumnSchema(name=name, **kwargs)


def _external_ids() -> tuple[str, ColumnSchema]:
    return _col("external_ids", kind=ColumnKind.MAP, value_type=AtomicType.STRING)


NB_SCHEMA = DatabaseSchema(
    name="OVN_Northbound",
    version="2.0.2",
    tables={
        "Logical_Switch": TableSchema(
            name="Logical_Switch",
            is_root=True,
            index="name",
            columns=dict([
                _col("name"),
                _col("ports", type=AtomicType.UUID, kind=ColumnKind.SET,
                     ref_table="Logical_Port"),
                _col("acls", type=AtomicType.UUID, kind=ColumnKind.SET,
                     ref_table="ACL"),
                _external_ids(),
            ]),
        ),
        "Logical_Port": TableSchema(
            name="Logical_Port",
            index="name",
            columns=dict([
                _col("name"),
                _col("type"),
                _col("options", kind=ColumnKind.MAP, value_type=AtomicType.STRING),
                _col("parent_name", kind=ColumnKind.OPTIONAL),
                _col("tag", type=AtomicType.INTEGER, kind=ColumnKind.OPTIONAL),
                _col("addresses", kind=ColumnKind.SET),
                _col("port_security", kind=ColumnKind.SET),
                _col("up", type=AtomicType.BOOLEAN, kind=ColumnKind.OPTIONAL),
                _col("enabled", type=AtomicType.BOOLEAN, kind=ColumnKind.OPTIONAL),
                _external_ids(),
            ]),
        ),
        "ACL": TableSchema(
            name="ACL",
            columns=dict([
                _col("priority", type=AtomicType.INTEGER),
                _col("direction"),
                _col("match"),
                _col("action"),
                _col("log", type=AtomicType.BOOLEAN),
                _external_ids(),
            ]),
        ),
        "Logical_Router": TableSchema(
            name="Logical_Router",
            is_root=True,
            index="name",
            columns=dict([
                _col("name"),
                _col("ports", type=AtomicType.UUID, kind=ColumnKind.SET,
                     ref_table="Logical_Router_Port"),
                _col("static_routes", type=AtomicType.UUID, kind=ColumnKind.SET,
                     ref_table="Logical_Router_Static_Route"),
                _col("default_gw", kind=ColumnKind.OPTIONAL),
                _col("enabled", type=AtomicType.BOOLEAN, kind=ColumnKind.OPTIONAL),
                _external_ids(),
            ]),
        ),
        "Logical_Router_Port": TableSchema(
            name="Logical_Router_Port",
            index="name",
            columns=dict([
                _col("name"),
                _col("network"),
                _col("mac"),
                _col("peer", type=AtomicType.UUID, kind=ColumnKind.OPTIONAL,
                     ref_table="Logical_Router_Port", ref_type=RefType.WEAK),
                _col("enabled", type=AtomicType.BOOLEAN, kind=ColumnKind.OPTIONAL),
                _external_ids(),
            ]),
        ),
        "Logical_Router_Static_Route": TableSchema(
            name="Logical_Router_Static_Route",
            columns=dict([
                _col("ip_prefix"),
                _col("nexthop"),
                _col("output_port", kind=ColumnKind.OPTIONAL),
            ]),
        ),
    },
)
