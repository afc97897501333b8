"""Parsing and formatting of column values typed on the command line.

Syntax follows the database's usual conventions: sets are written
``[a, b]`` (brackets optional), maps ``{k=v, k2=v2}`` (braces optional),
strings may be double-quoted, and ``@name`` in a reference column stands
for the row created with ``--id=@name``.
"""

from __future__ import annotations

import json
import re
import uuid as uuid_mod
from typing import TYPE_CHECKING, Any, Optional

from nbctl.exceptions import CommandSyntaxError
from nbctl.schema import AtomicType, ColumnKind, ColumnSchema, RefType, TableSchema

if TYPE_CHECKING:
    from nbctl.context import ExecutionContext

_BARE_STRING = re.compile(r"[A-Za-z_][A-Za-z0-9_.\-]*\Z")


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split ``text`` on ``sep`` outside double quotes; strip each piece."""
    pieces: list[str] = []
    current: list[str] = []
    quoted = False
    escaped = False
    for ch in text:
        if escaped:
            escaped = False
        elif ch == "\\" and quoted:
            escaped = True
        elif ch == '"':
            quoted = not quoted
        elif ch == sep and not quoted:
            pieces.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if quoted:
        raise CommandSyntaxError(f"{text}: missing quote at end of string")
    pieces.append("".join(current).strip())
    return [p for p in pieces if p]


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        try:
            return json.loads(text)
        except ValueError:
            raise CommandSyntaxError(f"{text}: invalid quoted string") from None
    return text


def is_uuid(text: str) -> bool:
    try:
        uuid_mod.UUID(text)
    except ValueError:
        return False
    return True


def parse_atom(
    ctx: Optional[ExecutionContext],
    column: ColumnSchema,
    atom_type: AtomicType,
    text: str,
) -> Any:
    """Parse one atom of ``atom_type`` for ``column``.

    Symbol references are only accepted when ``ctx`` carries a symbol table;
    each one is recorded as a strong or weak reference according to the
    column.
    """
    if atom_type is AtomicType.STRING:
        return unquote(text)
    if atom_type is AtomicType.INTEGER:
        try:
            return int(text)
        except ValueError:
            raise CommandSyntaxError(f'"{text}" is not a valid integer') from None
    if atom_type is AtomicType.BOOLEAN:
        if text in ("true", "false"):
            return text == "true"
        raise CommandSyntaxError(f'"{text}" is not a valid boolean (use "true" or "false")')

    if text.startswith("@"):
        if ctx is None or ctx.symtab is None:
            raise CommandSyntaxError(f'row id "{text}" is not allowed here')
        symbol = ctx.symtab.reference(text, weak=column.ref_type is RefType.WEAK)
        return symbol.uuid
    if not is_uuid(text):
        raise CommandSyntaxError(f'"{text}" is not a valid UUID')
    return str(uuid_mod.UUID(text))


def _strip_delims(text: str, opening: str, closing: str) -> str:
    text = text.strip()
    if text.startswith(opening) and text.endswith(closing):
        return text[1:-1]
    return text


def parse_value(ctx: Optional[ExecutionContext], column: ColumnSchema, text: str) -> Any:
    """Parse a whole column value."""
    if column.kind is ColumnKind.SCALAR:
        return parse_atom(ctx, column, column.type, text)
    if column.kind is ColumnKind.OPTIONAL:
        inner = _strip_delims(text, "[", "]").strip()
        if not inner:
            return None
        return parse_atom(ctx, column, column.type, inner)
    if column.kind is ColumnKind.SET:
        values: list[Any] = []
        for piece in split_top_level(_strip_delims(text, "[", "]")):
            atom = parse_atom(ctx, column, column.type, piece)
            if atom not in values:
                values.append(atom)
        return values
    result: dict[Any, Any] = {}
    for piece in split_top_level(_strip_delims(text, "{", "}")):
        key, value = parse_pair(piece)
        result[parse_atom(ctx, column, column.type, key)] = parse_atom(
            ctx, column, column.value_type or AtomicType.STRING, value
        )
    return result


def parse_pair(text: str) -> tuple[str, str]:
    """Split ``key=value`` at the first ``=`` outside double quotes."""
    quoted = False
    escaped = False
    for i, ch in enumerate(text):
        if escaped:
            escaped = False
        elif ch == "\\" and quoted:
            escaped = True
        elif ch == '"':
            quoted = not quoted
        elif ch == "=" and not quoted:
            return text[:i].strip(), text[i + 1:].strip()
    raise CommandSyntaxError(f"{text}: missing '=' in key=value pair")


def parse_column_key(table: TableSchema, text: str) -> tuple[ColumnSchema, Optional[str]]:
    """Parse ``COLUMN`` or ``COLUMN:KEY``; KEY is only valid for maps."""
    name, sep, key = text.partition(":")
    column = table.column(name)
    if sep:
        if column.kind is not ColumnKind.MAP:
            raise CommandSyntaxError(
                f"cannot specify key to get for non-map column {column.name}"
            )
        return column, unquote(key)
    return column, None


def format_atom(value: Any, atom_type: AtomicType) -> str:
    if atom_type is AtomicType.BOOLEAN:
        return "true" if value else "false"
    if atom_type is AtomicType.STRING:
        if _BARE_STRING.match(value) and value not in ("true", "false"):
            return value
        return json.dumps(value)
    return str(value)


def format_value(column: ColumnSchema, value: Any) -> str:
    if column.kind is ColumnKind.SCALAR:
        return format_atom(value, column.type)
    if column.kind is ColumnKind.OPTIONAL:
        return "[]" if value is None else format_atom(value, column.type)
    if column.kind is ColumnKind.SET:
        return "[" + ", ".join(format_atom(v, column.type) for v in value) + "]"
    value_type = column.value_type or AtomicType.STRING
    return "{" + ", ".join(
        f"{format_atom(k, column.type)}={format_atom(value[k], value_type)}"
        for k in sorted(value)
    ) + "}"
