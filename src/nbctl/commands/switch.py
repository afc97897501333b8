"""Logical switch commands and ``show``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nbctl.commands.datum import is_uuid
from nbctl.exceptions import CommandSyntaxError, DuplicateRowError, RowNotFoundError, UserInputError
from nbctl.models.command import CommandMode, CommandSyntax

if TYPE_CHECKING:
    from nbctl.context import ExecutionContext
    from nbctl.session.row import Row

LSWITCH = "Logical_Switch"
LPORT = "Logical_Port"


def find_lswitch(ctx: ExecutionContext, record_id: str) -> Row | None:
    """Find a logical switch by UUID, falling back to its name.

    A name shared by several switches is an error; the caller has to use
    the UUID instead.
    """
    if is_uuid(record_id):
        row = ctx.get_row(LSWITCH, record_id)
        if row is not None:
            return row

    matches = [row for row in ctx.rows(LSWITCH) if row["name"] == record_id]
    if len(matches) > 1:
        raise UserInputError(
            f"Multiple logical switches named '{record_id}'.  Use a UUID."
        )
    return matches[0] if matches else None


def lswitch_by_name_or_uuid(ctx: ExecutionContext, record_id: str) -> Row:
    lswitch = find_lswitch(ctx, record_id)
    if lswitch is None:
        kind = "UUID" if is_uuid(record_id) else "name"
        raise RowNotFoundError(record_id, f"{record_id}: lswitch {kind} not found")
    return lswitch


def _print_lswitch(ctx: ExecutionContext, lswitch: Row) -> None:
    ctx.write(f"    lswitch {lswitch.uuid} ({lswitch['name']})\n")
    for port_uuid in lswitch["ports"]:
        lport = ctx.get_row(LPORT, port_uuid)
        if lport is None:
            continue
        ctx.write(f"        lport {lport['name']}\n")
        if lport["parent_name"] is not None and lport["tag"] is not None:
            ctx.write(f"            parent: {lport['parent_name']}, tag:{lport['tag']}\n")
        if lport["addresses"]:
            ctx.write("            addresses:")
            for address in lport["addresses"]:
                ctx.write(f" {address}")
            ctx.write("\n")


def show(ctx: ExecutionContext) -> None:
    if ctx.args:
        lswitch = find_lswitch(ctx, ctx.args[0])
        if lswitch is not None:
            _print_lswitch(ctx, lswitch)
        return
    for lswitch in sorted(ctx.rows(LSWITCH), key=lambda r: (r["name"], r.uuid)):
        _print_lswitch(ctx, lswitch)


def lswitch_add(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    name = ctx.args[0] if ctx.args else None
    may_exist = ctx.has_option("--may-exist")
    add_duplicate = ctx.has_option("--add-duplicate")

    if may_exist and add_duplicate:
        raise CommandSyntaxError("--may-exist and --add-duplicate may not be used together")
    if name is not None:
        if not add_duplicate:
            for lswitch in ctx.rows(LSWITCH):
                if lswitch["name"] == name:
                    if may_exist:
                        return
                    raise DuplicateRowError(f"{name}: an lswitch with this name already exists")
    elif may_exist:
        raise CommandSyntaxError("--may-exist requires specifying a name")
    elif add_duplicate:
        raise CommandSyntaxError("--add-duplicate requires specifying a name")

    lswitch = txn.insert(LSWITCH)
    if name is not None:
        txn.set(lswitch, "name", name)


def lswitch_del(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    if ctx.has_option("--if-exists"):
        lswitch = find_lswitch(ctx, ctx.args[0])
        if lswitch is None:
            return
    else:
        lswitch = lswitch_by_name_or_uuid(ctx, ctx.args[0])
    txn.delete(lswitch)


def lswitch_list(ctx: ExecutionContext) -> None:
    for lswitch in sorted(ctx.rows(LSWITCH), key=lambda r: (r["name"], r.uuid)):
        ctx.write(f"{lswitch.uuid} ({lswitch['name']})\n")


COMMANDS = (
    CommandSyntax("show", 0, 1, "[LSWITCH]", run=show),
    CommandSyntax(
        "lswitch-add", 0, 1, "[LSWITCH]", run=lswitch_add,
        options=frozenset({"--may-exist", "--add-duplicate"}), mode=CommandMode.RW,
    ),
    CommandSyntax(
        "lswitch-del", 1, 1, "LSWITCH", run=lswitch_del,
        options=frozenset({"--if-exists"}), mode=CommandMode.RW,
    ),
    CommandSyntax("lswitch-list", 0, 0, "", run=lswitch_list),
)
