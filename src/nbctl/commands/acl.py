"""ACL commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nbctl.commands.switch import lswitch_by_name_or_uuid
from nbctl.exceptions import CommandSyntaxError
from nbctl.models.command import CommandMode, CommandSyntax

if TYPE_CHECKING:
    from nbctl.context import ExecutionContext
    from nbctl.session.row import Row

ACL = "ACL"
ACTIONS = ("allow", "allow-related", "drop", "reject")
_DIRECTION_ORDER = {"from-lport": 0, "to-lport": 1}


def parse_direction(text: str) -> str:
    """Only the first letter is significant."""
    if text.startswith("t"):
        return "to-lport"
    if text.startswith("f"):
        return "from-lport"
    raise CommandSyntaxError(f'{text}: direction must be "to-lport" or "from-lport"')


def parse_priority(text: str) -> int:
    try:
        priority = int(text)
    except ValueError:
        priority = -1
    if not 0 <= priority <= 32767:
        raise CommandSyntaxError(f"{text}: priority must in range 0...32767")
    return priority


def _sort_key(acl: Row) -> tuple[int, int, str]:
    return (_DIRECTION_ORDER.get(acl["direction"], 2), -acl["priority"], acl["match"])


def _lswitch(ctx: ExecutionContext) -> Row:
    return lswitch_by_name_or_uuid(ctx, ctx.args[0])


def acl_list(ctx: ExecutionContext) -> None:
    lswitch = _lswitch(ctx)
    acls = [ctx.get_row(ACL, uuid) for uuid in lswitch["acls"]]
    for acl in sorted((a for a in acls if a is not None), key=_sort_key):
        ctx.write(
            f"{acl['direction']:>10} {acl['priority']:>5} ({acl['match']}) "
            f"{acl['action']}{' log' if acl['log'] else ''}\n"
        )


def acl_add(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    lswitch = _lswitch(ctx)
    direction = parse_direction(ctx.args[1])
    priority = parse_priority(ctx.args[2])
    match, action = ctx.args[3], ctx.args[4]
    if action not in ACTIONS:
        raise CommandSyntaxError(
            f'{action}: action must be one of "allow", "allow-related", '
            f'"drop", and "reject"'
        )

    acl = txn.insert(ACL)
    txn.set(acl, "priority", priority)
    txn.set(acl, "direction", direction)
    txn.set(acl, "match", match)
    txn.set(acl, "action", action)
    if ctx.has_option("--log"):
        txn.set(acl, "log", True)

    txn.verify(lswitch, "acls")
    txn.set(lswitch, "acls", lswitch["acls"] + [acl.uuid])


def acl_del(ctx: ExecutionContext) -> None:
    txn = ctx.require_txn()
    lswitch = _lswitch(ctx)
    if len(ctx.args) == 3:
        raise CommandSyntaxError("cannot specify priority without match")

    if len(ctx.args) == 1:
        txn.verify(lswitch, "acls")
        txn.set(lswitch, "acls", [])
        return

    direction = parse_direction(ctx.args[1])
    acls = {uuid: ctx.get_row(ACL, uuid) for uuid in lswitch["acls"]}

    if len(ctx.args) == 2:
        keep = [
            uuid for uuid, acl in acls.items()
            if acl is None or acl["direction"] != direction
        ]
        txn.verify(lswitch, "acls")
        txn.set(lswitch, "acls", keep)
        return

    priority = parse_priority(ctx.args[2])
    match = ctx.args[3]
    for uuid, acl in acls.items():
        if (
            acl is not None
            and acl["priority"] == priority
            and acl["match"] == match
            and acl["direction"] == direction
        ):
            txn.verify(lswitch, "acls")
            txn.set(lswitch, "acls", [u for u in lswitch["acls"] if u != uuid])
            return


COMMANDS = (
    CommandSyntax(
        "acl-add", 5, 5, "LSWITCH DIRECTION PRIORITY MATCH ACTION", run=acl_add,
        options=frozenset({"--log"}), mode=CommandMode.RW,
    ),
    CommandSyntax(
        "acl-del", 1, 4, "LSWITCH [DIRECTION [PRIORITY MATCH]]", run=acl_del,
        mode=CommandMode.RW,
    ),
    CommandSyntax("acl-list", 1, 1, "LSWITCH", run=acl_list),
)
