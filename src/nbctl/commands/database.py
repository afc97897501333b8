"""Generic database commands that work on any table of the schema.

These address rows by UUID or, for tables with an index column, by name.
Their prerequisite phases check table and column names so that typos fail
before any transaction is attempted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional

from nbctl.commands.datum import (
    format_atom,
    format_value,
    is_uuid,
    parse_atom,
    parse_column_key,
    parse_pair,
    parse_value,
    split_top_level,
)
from nbctl.exceptions import CommandSyntaxError, RowNotFoundError, UserInputError
from nbctl.models.command import UNLIMITED, CommandMode, CommandSyntax, Table
from nbctl.schema import AtomicType, ColumnKind

if TYPE_CHECKING:
    from nbctl.context import ExecutionContext
    from nbctl.schema import ColumnSchema, TableSchema
    from nbctl.session.row import Row

logger = logging.getLogger(__name__)

UUID_COLUMN = "_uuid"


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _table(ctx: ExecutionContext) -> TableSchema:
    return ctx.schema.find_table(ctx.args[0])


def _split_assignment(text: str) -> tuple[str, str]:
    lhs, sep, value = text.partition("=")
    if not sep:
        raise CommandSyntaxError(f"{text}: argument does not end in \"=\" followed by a value.")
    return lhs.strip(), value


def _check_column_specs(table: TableSchema, specs: list[str]) -> None:
    for spec in specs:
        if spec != UUID_COLUMN:
            parse_column_key(table, spec)


def get_row_by_id(
    ctx: ExecutionContext, table: TableSchema, record_id: str, *, must_exist: bool = True
) -> Row | None:
    """Find a row of ``table`` by UUID, or by its index column."""
    row = ctx.get_row(table.name, record_id) if is_uuid(record_id) else None
    if row is None and table.index is not None:
        matches = [r for r in ctx.rows(table.name) if r[table.index] == record_id]
        if len(matches) > 1:
            raise UserInputError(
                f'multiple rows in {table.name} match "{record_id}"'
            )
        row = matches[0] if matches else None
    if row is None and must_exist:
        raise RowNotFoundError(record_id, f'no row "{record_id}" in table {table.name}')
    return row


def _ordered(rows: Iterable[Row]) -> list[Row]:
    return sorted(rows, key=lambda r: (r.name or "", r.uuid))


def _cell(row: Row, spec: str) -> str:
    if spec == UUID_COLUMN:
        return row.uuid
    return format_value(row.table.column(spec), row[spec])


def _selected_columns(ctx: ExecutionContext, table: TableSchema) -> list[str]:
    columns = ctx.options.get("--columns")
    if columns is None:
        return [UUID_COLUMN, *table.columns]
    return [c.strip() for c in columns.split(",") if c.strip()]


def _build_table(columns: list[str], rows: list[Row]) -> Table:
    result = Table(headings=list(columns))
    for row in rows:
        result.add_row(*(_cell(row, c) for c in columns))
    return result


def _matches(ctx: ExecutionContext, row: Row, condition: str) -> bool:
    lhs, text = _split_assignment(condition)
    if lhs == UUID_COLUMN:
        return row.uuid == text
    column, key = parse_column_key(row.table, lhs)
    if key is not None:
        current = row[column.name]
        wanted_key = parse_atom(ctx, column, column.type, key)
        if wanted_key not in current:
            return False
        return current[wanted_key] == parse_atom(
            ctx, column, column.value_type or AtomicType.STRING, text
        )
    wanted = parse_value(ctx, column, text)
    if column.kind is ColumnKind.SET:
        return sorted(row[column.name]) == sorted(wanted)
    return row[column.name] == wanted


def _assign(ctx: ExecutionContext, row: Row, assignment: str) -> Row:
    txn = ctx.require_txn()
    lhs, text = _split_assignment(assignment)
    column, key = parse_column_key(row.table, lhs)
    if key is None:
        return txn.set(row, column.name, parse_value(ctx, column, text))
    txn.verify(row, column.name)
    current = row[column.name]
    current[parse_atom(ctx, column, column.type, key)] = parse_atom(
        ctx, column, column.value_type or AtomicType.STRING, text
    )
    return txn.set(row, column.name, current)


# ----------------------------------------------------------------------
# Prerequisites
# ----------------------------------------------------------------------

def pre_list(ctx: ExecutionContext) -> None:
    table = _table(ctx)
    _check_column_specs(table, _selected_columns(ctx, table))


def pre_find(ctx: ExecutionContext) -> None:
    pre_list(ctx)
    _check_assignments(ctx, ctx.args[1:])


def _check_record_id(ctx: ExecutionContext) -> None:
    record_id = ctx.options.get("--id")
    if ctx.has_option("--id") and (record_id is None or not record_id.startswith("@")):
        raise CommandSyntaxError(f'row id "{record_id or ""}" does not begin with "@"')


def pre_get(ctx: ExecutionContext) -> None:
    _check_column_specs(_table(ctx), ctx.args[2:])
    _check_record_id(ctx)


def _check_assignments(ctx: ExecutionContext, assignments: list[str]) -> None:
    table = _table(ctx)
    for assignment in assignments:
        lhs, _ = _split_assignment(assignment)
        _check_column_specs(table, [lhs])


def pre_set(ctx: ExecutionContext) -> None:
    _check_assignments(ctx, ctx.args[2:])


def pre_create(ctx: ExecutionContext) -> None:
    _check_assignments(ctx, ctx.args[1:])
    _check_record_id(ctx)


def pre_wait_until(ctx: ExecutionContext) -> None:
    _check_assignments(ctx, ctx.args[2:])


def pre_add(ctx: ExecutionContext) -> None:
    _check_column_specs(_table(ctx), ctx.args[2:3])


def pre_clear(ctx: ExecutionContext) -> None:
    _check_column_specs(_table(ctx), ctx.args[2:])


def pre_destroy(ctx: ExecutionContext) -> None:
    _table(ctx)
    records = ctx.args[1:]
    if ctx.has_option("--all") and records:
        raise CommandSyntaxError("--all and records argument should not be specified together")
    if not ctx.has_option("--all") and not records:
        raise CommandSyntaxError("either --all or records argument should be specified")


# ----------------------------------------------------------------------
# Run phases
# ----------------------------------------------------------------------

def cmd_list(ctx: ExecutionContext) -> None:
    table = _table(ctx)
    if len(ctx.args) > 1:
        rows = [get_row_by_id(ctx, table, record_id) for record_id in ctx.args[1:]]
    else:
        rows = _ordered(ctx.rows(table.name))
    ctx.table = _build_table(_selected_columns(ctx, table), [r for r in rows if r is not None])


def cmd_find(ctx: ExecutionContext) -> None:
    table = _table(ctx)
    rows = [
        row for row in _ordered(ctx.rows(table.name))
        if all(_matches(ctx, row, condition) for condition in ctx.args[1:])
    ]
    ctx.table = _build_table(_selected_columns(ctx, table), rows)


def cmd_get(ctx: ExecutionContext) -> None:
    table = _table(ctx)
    if_exists = ctx.has_option("--if-exists")
    row = get_row_by_id(ctx, table, ctx.args[1], must_exist=not if_exists)
    if row is None:
        return

    record_id = ctx.options.get("--id")
    if record_id is not None:
        symbol, is_new = ctx.require_symtab().define(record_id)
        if not is_new:
            raise CommandSyntaxError(
                f'row id "{record_id}" specified on "get" command was used '
                f"before it was defined"
            )
        symbol.uuid = row.uuid
        # The row already exists, so whatever refers to it keeps it alive
        symbol.strong_ref = True

    for spec in ctx.args[2:]:
        if spec == UUID_COLUMN:
            ctx.write(f"{row.uuid}\n")
            continue
        column, key = parse_column_key(table, spec)
        if key is None:
            ctx.write(format_value(column, row[column.name]) + "\n")
            continue
        current = row[column.name]
        wanted = parse_atom(ctx, column, column.type, key)
        if wanted not in current:
            if if_exists:
                continue
            raise UserInputError(
                f'no key "{key}" in {table.name} record "{ctx.args[1]}" column {column.name}'
            )
        ctx.write(format_atom(current[wanted], column.value_type or AtomicType.STRING) + "\n")


def cmd_set(ctx: ExecutionContext) -> None:
    table = _table(ctx)
    row = get_row_by_id(ctx, table, ctx.args[1], must_exist=not ctx.has_option("--if-exists"))
    if row is None:
        return
    for assignment in ctx.args[2:]:
        row = _assign(ctx, row, assignment)


def _add_to_collection(ctx: ExecutionContext, column: ColumnSchema, current: Any, texts: list[str]) -> Any:
    if column.kind is ColumnKind.SET:
        for text in texts:
            for value in parse_value(ctx, column, text):
                if value not in current:
                    current.append(value)
        return current
    for text in texts:
        for piece in split_top_level(text.strip().lstrip("{").rstrip("}")):
            key, value = parse_pair(piece)
            parsed_key = parse_atom(ctx, column, column.type, key)
            # Existing keys win over added ones
            current.setdefault(
                parsed_key, parse_atom(ctx, column, column.value_type or AtomicType.STRING, value)
            )
    return current


def cmd_add(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    table = _table(ctx)
    row = get_row_by_id(ctx, table, ctx.args[1], must_exist=not ctx.has_option("--if-exists"))
    if row is None:
        return
    column, _ = parse_column_key(table, ctx.args[2])
    values = ctx.args[3:]

    if column.kind in (ColumnKind.SCALAR, ColumnKind.OPTIONAL):
        occupied = column.kind is ColumnKind.SCALAR or row[column.name] is not None
        count = len(values) + (1 if occupied else 0)
        if count > 1:
            raise CommandSyntaxError(
                f'"add" operation would put {count} values in column {column.name} '
                f"of table {table.name} but the maximum number is 1"
            )
        if values:
            txn.set(row, column.name, parse_atom(ctx, column, column.type, values[0]))
        return

    txn.verify(row, column.name)
    txn.set(row, column.name, _add_to_collection(ctx, column, row[column.name], values))


def cmd_clear(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    table = _table(ctx)
    row = get_row_by_id(ctx, table, ctx.args[1], must_exist=not ctx.has_option("--if-exists"))
    if row is None:
        return
    for spec in ctx.args[2:]:
        column, _ = parse_column_key(table, spec)
        if column.kind is ColumnKind.SCALAR:
            raise CommandSyntaxError(
                f'"clear" operation cannot be applied to column {column.name} of '
                f"table {table.name}, which is not allowed to be empty"
            )
        row = txn.set(row, column.name, column.default())


def cmd_create(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    table = _table(ctx)
    record_id = ctx.options.get("--id")

    uuid: Optional[str] = None
    if record_id is not None:
        symbol, _ = ctx.require_symtab().define(record_id)
        if table.is_root:
            # Root rows survive unreferenced, so there is nothing to warn about
            symbol.strong_ref = True
        uuid = symbol.uuid
    elif not table.is_root:
        logger.warning(
            'applying "create" command to table %s without --id option will have no effect',
            table.name,
        )

    row = txn.insert(table.name, uuid=uuid)
    for assignment in ctx.args[1:]:
        row = _assign(ctx, row, assignment)
    ctx.write(row.uuid)


def post_create(ctx: ExecutionContext) -> None:
    """Replace the provisional UUID with the one the database assigned."""
    provisional = ctx.output.getvalue()
    real = ctx.require_txn().get_insert_uuid(provisional)
    if real is not None:
        ctx.output.seek(0)
        ctx.output.truncate()
        ctx.write(real)
    ctx.write("\n")


def cmd_destroy(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    table = _table(ctx)
    if ctx.has_option("--all"):
        for row in list(ctx.rows(table.name)):
            txn.delete(row)
        return
    must_exist = not ctx.has_option("--if-exists")
    for record_id in ctx.args[1:]:
        row = get_row_by_id(ctx, table, record_id, must_exist=must_exist)
        if row is not None:
            txn.delete(row)


def cmd_wait_until(ctx: ExecutionContext) -> None:
    table = _table(ctx)
    row = get_row_by_id(ctx, table, ctx.args[1], must_exist=False)
    if row is None or not all(_matches(ctx, row, c) for c in ctx.args[2:]):
        ctx.request_retry()


COMMANDS = (
    CommandSyntax(
        "list", 1, UNLIMITED, "TABLE [RECORD]...", run=cmd_list,
        prerequisites=pre_list, options=frozenset({"--columns"}),
    ),
    CommandSyntax(
        "find", 1, UNLIMITED, "TABLE [COLUMN[:KEY]=VALUE]...", run=cmd_find,
        prerequisites=pre_find, options=frozenset({"--columns"}),
    ),
    CommandSyntax(
        "get", 2, UNLIMITED, "TABLE RECORD [COLUMN[:KEY]]...", run=cmd_get,
        prerequisites=pre_get, options=frozenset({"--if-exists", "--id"}),
    ),
    CommandSyntax(
        "set", 3, UNLIMITED, "TABLE RECORD COLUMN[:KEY]=VALUE...", run=cmd_set,
        prerequisites=pre_set, options=frozenset({"--if-exists"}),
        mode=CommandMode.RW,
    ),
    CommandSyntax(
        "add", 4, UNLIMITED, "TABLE RECORD COLUMN [KEY=]VALUE...", run=cmd_add,
        prerequisites=pre_add, options=frozenset({"--if-exists"}),
        mode=CommandMode.RW,
    ),
    CommandSyntax(
        "clear", 3, UNLIMITED, "TABLE RECORD COLUMN...", run=cmd_clear,
        prerequisites=pre_clear, options=frozenset({"--if-exists"}),
        mode=CommandMode.RW,
    ),
    CommandSyntax(
        "create", 1, UNLIMITED, "TABLE [COLUMN[:KEY]=VALUE]...", run=cmd_create,
        prerequisites=pre_create, postprocess=post_create,
        options=frozenset({"--id"}), mode=CommandMode.RW,
    ),
    CommandSyntax(
        "destroy", 1, UNLIMITED, "TABLE [RECORD]...", run=cmd_destroy,
        prerequisites=pre_destroy, options=frozenset({"--if-exists", "--all"}),
        mode=CommandMode.RW,
    ),
    CommandSyntax(
        "wait-until", 2, UNLIMITED, "TABLE RECORD [COLUMN[:KEY]=VALUE]...",
        run=cmd_wait_until, prerequisites=pre_wait_until,
    ),
)
