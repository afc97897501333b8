"""Command batch parser.

A batch is a sequence of commands separated by ``--``. Each command is an
optional run of ``--option[=value]`` words, a verb and its arguments::

    lswitch-add sw0 -- --may-exist lport-add sw0 p0 -- lport-list sw0
"""

from __future__ import annotations

from typing import Optional, Sequence

from nbctl.exceptions import CommandSyntaxError
from nbctl.models.command import Command
from nbctl.registry import CommandRegistry

SEPARATOR = "--"


def split_commands(argv: Sequence[str]) -> list[list[str]]:
    """Split ``argv`` on ``--`` separators, dropping empty segments."""
    segments: list[list[str]] = []
    current: list[str] = []
    for word in argv:
        if word == SEPARATOR:
            if current:
                segments.append(current)
            current = []
        else:
            current.append(word)
    if current:
        segments.append(current)
    return segments


def _parse_option(word: str, options: dict[str, Optional[str]]) -> None:
    name, sep, value = word.partition("=")
    if name in options:
        raise CommandSyntaxError(f"'{name}' option specified multiple times")
    options[name] = value if sep else None


def parse_command(words: Sequence[str], registry: CommandRegistry) -> Command:
    """Parse one command segment."""
    options: dict[str, Optional[str]] = {}
    i = 0
    while i < len(words) and words[i].startswith("--"):
        _parse_option(words[i], options)
        i += 1
    if i == len(words):
        raise CommandSyntaxError("missing command name (use --help for help)")

    syntax = registry.get(words[i])
    args = list(words[i + 1:])

    for name in options:
        if name not in syntax.options:
            raise CommandSyntaxError(f"'{syntax.name}' command has no '{name}' option")
    if len(args) < syntax.min_args:
        raise CommandSyntaxError(
            f"'{syntax.name}' command requires at least {syntax.min_args} arguments"
        )
    if len(args) > syntax.max_args:
        raise CommandSyntaxError(
            f"'{syntax.name}' command takes at most {syntax.max_args} arguments"
        )
    return Command(syntax=syntax, args=args, options=options)


def parse_commands(argv: Sequence[str], registry: CommandRegistry) -> list[Command]:
    """Parse a whole batch; raises CommandSyntaxError on the first bad command."""
    segments = split_commands(argv)
    if not segments:
        raise CommandSyntaxError("missing command name (use --help for help)")
    return [parse_command(segment, registry) for segment in segments]
