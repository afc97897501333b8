"""Logical port commands."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Optional

from nbctl.commands.datum import is_uuid
from nbctl.commands.switch import LPORT, LSWITCH, lswitch_by_name_or_uuid
from nbctl.exceptions import (
    CommandSyntaxError,
    DuplicateRowError,
    EngineInvariantError,
    RowNotFoundError,
    UserInputError,
)
from nbctl.models.command import UNLIMITED, CommandMode, CommandSyntax

if TYPE_CHECKING:
    from nbctl.context import ExecutionContext
    from nbctl.session.row import Row

# An address entry must start with an Ethernet address; IPs may follow.
_MAC_PREFIX = re.compile(r"[0-9a-fA-F]{1,2}(:[0-9a-fA-F]{1,2}){5}")


def find_lport(ctx: ExecutionContext, record_id: str) -> Row | None:
    lport = ctx.get_row(LPORT, record_id) if is_uuid(record_id) else None
    if lport is None:
        lport = next((r for r in ctx.rows(LPORT) if r["name"] == record_id), None)
    return lport


def lport_by_name_or_uuid(ctx: ExecutionContext, record_id: str) -> Row:
    lport = find_lport(ctx, record_id)
    if lport is None:
        kind = "UUID" if is_uuid(record_id) else "name"
        raise RowNotFoundError(record_id, f"{record_id}: lport {kind} not found")
    return lport


def lport_to_lswitch(ctx: ExecutionContext, lport: Row) -> Row:
    """Return the logical switch whose ``ports`` contains ``lport``."""
    for lswitch in ctx.rows(LSWITCH):
        if lport.uuid in lswitch["ports"]:
            return lswitch
    raise EngineInvariantError(
        f"logical port {lport['name']} is not part of any logical switch"
    )


def _switch_label(lswitch: Row) -> str:
    return lswitch["name"] or lswitch.uuid


def _parse_tag(text: str) -> int:
    try:
        tag = int(text)
    except ValueError:
        tag = -1
    if not 0 <= tag <= 4095:
        raise CommandSyntaxError(f"{text}: invalid tag")
    return tag


def _check_existing(
    lport: Row, lswitch: Row, found_in: Row, parent_name: Optional[str], tag: Optional[int]
) -> None:
    name = lport["name"]
    if found_in != lswitch:
        raise DuplicateRowError(
            f"{name}: lport already exists but in lswitch {_switch_label(found_in)}"
        )
    if parent_name is None:
        if lport["parent_name"] is not None:
            raise DuplicateRowError(
                f"{name}: lport already exists but has parent {lport['parent_name']}"
            )
        return
    if lport["parent_name"] is None:
        raise DuplicateRowError(f"{name}: lport already exists but has no parent")
    if lport["parent_name"] != parent_name:
        raise DuplicateRowError(
            f"{name}: lport already exists with different parent {lport['parent_name']}"
        )
    if lport["tag"] is None:
        raise DuplicateRowError(f"{name}: lport already exists but has no tag")
    if lport["tag"] != tag:
        raise DuplicateRowError(
            f"{name}: lport already exists with different tag {lport['tag']}"
        )


def lport_add(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    lswitch = lswitch_by_name_or_uuid(ctx, ctx.args[0])

    parent_name: Optional[str] = None
    tag: Optional[int] = None
    if len(ctx.args) == 4:
        parent_name = ctx.args[2]
        tag = _parse_tag(ctx.args[3])
    elif len(ctx.args) != 2:
        raise CommandSyntaxError("lport-add with parent must also specify a tag")

    name = ctx.args[1]
    lport = find_lport(ctx, name)
    if lport is not None:
        if not ctx.has_option("--may-exist"):
            raise DuplicateRowError(f"{name}: an lport with this name already exists")
        _check_existing(lport, lswitch, lport_to_lswitch(ctx, lport), parent_name, tag)
        return

    lport = txn.insert(LPORT)
    txn.set(lport, "name", name)
    if tag is not None:
        txn.set(lport, "parent_name", parent_name)
        txn.set(lport, "tag", tag)

    txn.verify(lswitch, "ports")
    txn.set(lswitch, "ports", lswitch["ports"] + [lport.uuid])


def lport_del(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    if ctx.has_option("--if-exists"):
        lport = find_lport(ctx, ctx.args[0])
        if lport is None:
            return
    else:
        lport = lport_by_name_or_uuid(ctx, ctx.args[0])

    lswitch = lport_to_lswitch(ctx, lport)
    # Dropping the reference is what removes the port from the database.
    txn.verify(lswitch, "ports")
    txn.set(lswitch, "ports", [p for p in lswitch["ports"] if p != lport.uuid])
    txn.delete(lport)


def lport_list(ctx: ExecutionContext) -> None:
    lswitch = lswitch_by_name_or_uuid(ctx, ctx.args[0])
    lports = [ctx.get_row(LPORT, uuid) for uuid in lswitch["ports"]]
    for lport in sorted((p for p in lports if p is not None), key=lambda p: p["name"]):
        ctx.write(f"{lport.uuid} ({lport['name']})\n")


def _lport(ctx: ExecutionContext) -> Row:
    return lport_by_name_or_uuid(ctx, ctx.args[0])


def lport_get_parent(ctx: ExecutionContext) -> None:
    lport = _lport(ctx)
    if lport["parent_name"] is not None:
        ctx.write(f"{lport['parent_name']}\n")


def lport_get_tag(ctx: ExecutionContext) -> None:
    lport = _lport(ctx)
    if lport["tag"] is not None:
        ctx.write(f"{lport['tag']}\n")


def lport_set_addresses(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    lport = _lport(ctx)
    addresses = ctx.args[1:]
    for address in addresses:
        if address != "unknown" and not _MAC_PREFIX.match(address):
            raise UserInputError(
                f"{address}: Invalid address format. See ovn-nb(5). "
                "Hint: An Ethernet address must be listed before an IP address, "
                "together as a single argument."
            )
    txn.set(lport, "addresses", list(addresses))


def lport_get_addresses(ctx: ExecutionContext) -> None:
    for address in sorted(_lport(ctx)["addresses"]):
        ctx.write(f"{address}\n")


def lport_set_port_security(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    txn.set(_lport(ctx), "port_security", list(ctx.args[1:]))


def lport_get_port_security(ctx: ExecutionContext) -> None:
    for address in sorted(_lport(ctx)["port_security"]):
        ctx.write(f"{address}\n")


def lport_get_up(ctx: ExecutionContext) -> None:
    ctx.write("up\n" if _lport(ctx)["up"] else "down\n")


def lport_set_enabled(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    lport = _lport(ctx)
    state = ctx.args[1]
    if state.lower() == "enabled":
        txn.set(lport, "enabled", True)
    elif state.lower() == "disabled":
        txn.set(lport, "enabled", False)
    else:
        raise CommandSyntaxError(f'{state}: state must be "enabled" or "disabled"')


def lport_get_enabled(ctx: ExecutionContext) -> None:
    # Unset means enabled
    ctx.write("disabled\n" if _lport(ctx)["enabled"] is False else "enabled\n")


def lport_set_type(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    txn.set(_lport(ctx), "type", ctx.args[1])


def lport_get_type(ctx: ExecutionContext) -> None:
    ctx.write(f"{_lport(ctx)['type']}\n")


def lport_set_options(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    lport = _lport(ctx)
    options = {}
    for arg in ctx.args[1:]:
        key, sep, value = arg.partition("=")
        if sep:
            options[key] = value
    txn.set(lport, "options", options)


def lport_get_options(ctx: ExecutionContext) -> None:
    options = _lport(ctx)["options"]
    for key in sorted(options):
        ctx.write(f"{key}={options[key]}\n")


def _rw(*args: Any, **kwargs: Any) -> CommandSyntax:
    return CommandSyntax(*args, mode=CommandMode.RW, **kwargs)


COMMANDS = (
    _rw("lport-add", 2, 4, "LSWITCH LPORT [PARENT] [TAG]", lport_add,
        options=frozenset({"--may-exist"})),
    _rw("lport-del", 1, 1, "LPORT", lport_del, options=frozenset({"--if-exists"})),
    CommandSyntax("lport-list", 1, 1, "LSWITCH", run=lport_list),
    CommandSyntax("lport-get-parent", 1, 1, "LPORT", run=lport_get_parent),
    CommandSyntax("lport-get-tag", 1, 1, "LPORT", run=lport_get_tag),
    _rw("lport-set-addresses", 1, UNLIMITED, "LPORT [ADDRESS]...", lport_set_addresses),
    CommandSyntax("lport-get-addresses", 1, 1, "LPORT", run=lport_get_addresses),
    _rw("lport-set-port-security", 1, UNLIMITED, "LPORT [ADDRS]...", lport_set_port_security),
    CommandSyntax("lport-get-port-security", 1, 1, "LPORT", run=lport_get_port_security),
    CommandSyntax("lport-get-up", 1, 1, "LPORT", run=lport_get_up),
    _rw("lport-set-enabled", 2, 2, "LPORT STATE", lport_set_enabled),
    CommandSyntax("lport-get-enabled", 1, 1, "LPORT", run=lport_get_enabled),
    _rw("lport-set-type", 2, 2, "LPORT TYPE", lport_set_type),
    CommandSyntax("lport-get-type", 1, 1, "LPORT", run=lport_get_type),
    _rw("lport-set-options", 1, UNLIMITED, "LPORT KEY=VALUE [KEY=VALUE]...", lport_set_options),
    CommandSyntax("lport-get-options", 1, 1, "LPORT", run=lport_get_options),
)
