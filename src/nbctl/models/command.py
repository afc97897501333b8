"""Command batch models for nbctl.

CommandSyntax is the handler descriptor registered per verb. Command is one
parsed invocation of a verb; it survives every retry of the batch, only its
output buffer and table are reset between attempts.
"""

from __future__ import annotations

import enum
import io
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from nbctl.context import ExecutionContext

Phase = Callable[["ExecutionContext"], None]

UNLIMITED = 2**31 - 1


class CommandMode(str, enum.Enum):
    """Whether a command may write to the database."""

    RO = "ro"
    RW = "rw"


@dataclass(frozen=True)
class CommandSyntax:
    """Descriptor of one command verb.

    Attributes:
        name: Verb as typed on the command line.
        min_args: Minimum number of positional arguments.
        max_args: Maximum number of positional arguments (UNLIMITED for no cap).
        arguments: Usage string for the positional arguments.
        run: Mutate phase, executed inside the transaction on every attempt.
        prerequisites: Read phase, executed once before any transaction.
        postprocess: Post-commit phase, executed after a successful commit.
        options: Option names (with leading ``--``) the verb accepts.
        mode: RO or RW.
    """

    name: str
    min_args: int
    max_args: int
    arguments: str
    run: Optional[Phase] = None
    prerequisites: Optional[Phase] = None
    postprocess: Optional[Phase] = None
    options: frozenset[str] = frozenset()
    mode: CommandMode = CommandMode.RO

    @property
    def usage(self) -> str:
        return f"{self.name} {self.arguments}".rstrip()


@dataclass
class Table:
    """Structured command result, rendered by the configured table style."""

    headings: list[str]
    rows: list[list[str]] = field(default_factory=list)

    def add_row(self, *cells: str) -> None:
        if len(cells) != len(self.headings):
            raise ValueError(
                f"row has {len(cells)} cells, table has {len(self.headings)} columns"
            )
        self.rows.append(list(cells))


@dataclass
class Command:
    """One parsed command of a batch."""

    syntax: CommandSyntax
    args: list[str]
    options: dict[str, Optional[str]] = field(default_factory=dict)
    output: io.StringIO = field(default_factory=io.StringIO, repr=False)
    table: Optional[Table] = None

    @property
    def name(self) -> str:
        return self.syntax.name

    def has_option(self, name: str) -> bool:
        return name in self.options

    def reset(self) -> None:
        """Discard output from a previous attempt."""
        self.output = io.StringIO()
        self.table = None
