"""Command handlers for nbctl.

Northbound commands (switches, ports, ACLs) and generic database commands,
all registered into a single :class:`~nbctl.registry.CommandRegistry`.
"""

from nbctl.commands import acl, database, port, switch
from nbctl.registry import CommandRegistry

ALL_COMMANDS = (
    *switch.COMMANDS,
    *acl.COMMANDS,
    *port.COMMANDS,
    *database.COMMANDS,
)


def build_registry() -> CommandRegistry:
    """Return a registry holding every nbctl command."""
    return CommandRegistry(ALL_COMMANDS)


__all__ = ["ALL_COMMANDS", "build_registry"]
