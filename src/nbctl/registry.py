"""Registry of command verbs.

Maps each verb to its CommandSyntax descriptor. The parser looks verbs up
here once; the engine only ever sees the descriptors bound to commands.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from nbctl.exceptions import CommandSyntaxError
from nbctl.models.command import UNLIMITED, CommandMode, CommandSyntax


class CommandRegistry:
    """Verb name -> CommandSyntax."""

    def __init__(self, syntaxes: Iterable[CommandSyntax] = ()) -> None:
        self._syntaxes: dict[str, CommandSyntax] = {}
        for syntax in syntaxes:
            self.register(syntax)

    def register(self, syntax: CommandSyntax) -> None:
        if syntax.name in self._syntaxes:
            raise ValueError(f"command '{syntax.name}' is already registered")
        if syntax.min_args > syntax.max_args:
            raise ValueError(f"command '{syntax.name}' has min_args > max_args")
        self._syntaxes[syntax.name] = syntax

    def __contains__(self, name: object) -> bool:
        return name in self._syntaxes

    def __iter__(self) -> Iterator[CommandSyntax]:
        return iter(self._syntaxes.values())

    def __len__(self) -> int:
        return len(self._syntaxes)

    def get(self, name: str) -> CommandSyntax:
        try:
            return self._syntaxes[name]
        except KeyError:
            raise CommandSyntaxError(
                f"unknown command '{name}'; use --help for help"
            ) from None

    def option_names(self) -> list[str]:
        """Every option accepted by at least one command, sorted."""
        return sorted({opt for syntax in self for opt in syntax.options})

    def might_write(self, argv: Iterable[str]) -> bool:
        """Whether any word of ``argv`` names a read-write command.

        Used before parsing, so it errs on the side of saying yes.
        """
        return any(
            word in self._syntaxes and self._syntaxes[word].mode is CommandMode.RW
            for word in argv
        )

    def describe(self) -> str:
        """One line per command: ``verb,min,max,options,mode``."""
        lines = []
        for syntax in self:
            max_args = "*" if syntax.max_args == UNLIMITED else str(syntax.max_args)
            lines.append(
                f"{syntax.name},{syntax.min_args},{max_args},"
                f"{' '.join(sorted(syntax.options))},{syntax.mode.value.upper()}"
            )
        return "\n".join(lines)
