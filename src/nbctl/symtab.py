"""Symbol table for symbolic row names.

A symbolic name (``@name``) lets one command create a row and a later
command in the same batch reference it before the database has assigned the
row its real UUID. Each name is bound to a provisional UUID the first time
it is seen. A fresh table is created for every transaction attempt.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterator

from nbctl.exceptions import CommandSyntaxError, DanglingReferenceError

logger = logging.getLogger(__name__)


@dataclass
class Symbol:
    """A symbolic row name and what the current attempt did with it."""

    name: str
    uuid: str = field(default_factory=lambda: str(uuid.uuid4()))
    created: bool = False
    strong_ref: bool = False
    weak_ref: bool = False


class SymbolTable:
    """Mapping of symbolic names to their :class:`Symbol`."""

    def __init__(self) -> None:
        self._symbols: dict[str, Symbol] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._symbols

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._symbols.values())

    def __len__(self) -> int:
        return len(self._symbols)

    def get(self, name: str) -> Symbol | None:
        return self._symbols.get(name)

    def insert(self, name: str) -> Symbol:
        """Return the symbol for ``name``, creating an unbound one if needed."""
        symbol = self._symbols.get(name)
        if symbol is None:
            symbol = Symbol(name=name)
            self._symbols[name] = symbol
        return symbol

    def define(self, name: str) -> tuple[Symbol, bool]:
        """Mark ``name`` as created by an ``--id`` option.

        Returns the symbol and whether it had not been seen before. A name
        may only be defined once per batch.
        """
        if not name.startswith("@"):
            raise CommandSyntaxError(f'row id "{name}" does not begin with "@"')
        is_new = name not in self._symbols
        symbol = self.insert(name)
        if symbol.created:
            raise CommandSyntaxError(
                f'row id "{name}" may only be specified on one --id option'
            )
        symbol.created = True
        return symbol, is_new

    def reference(self, name: str, *, weak: bool = False) -> Symbol:
        """Record a reference to ``name`` from another row."""
        symbol = self.insert(name)
        if weak:
            symbol.weak_ref = True
        else:
            symbol.strong_ref = True
        return symbol

    def check(self) -> list[str]:
        """Verify that every referenced name was created.

        Raises DanglingReferenceError for the first name (in name order) that
        was used but never created. Rows that were created but are not
        strongly referenced get one warning each; they would be garbage
        collected by the database, but the batch still commits.

        Returns:
            The warning messages, in name order.
        """
        warnings: list[str] = []
        for name in sorted(self._symbols):
            symbol = self._symbols[name]
            if not symbol.created:
                raise DanglingReferenceError(name)
            if symbol.strong_ref:
                continue
            if symbol.weak_ref:
                message = (
                    f'row id "{name}" was created but only a weak reference to it '
                    f"was inserted, so it will not actually appear in the database"
                )
            else:
                message = (
                    f'row id "{name}" was created but no reference to it was '
                    f"inserted, so it will not actually appear in the database"
                )
            logger.warning(message)
            warnings.append(message)
        return warnings
