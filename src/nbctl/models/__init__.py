"""Domain models for nbctl."""

from nbctl.models.command import (
    UNLIMITED,
    Command,
    CommandMode,
    CommandSyntax,
    Table,
)
from nbctl.models.config import NbctlConfig, TableFormat, TableStyle
from nbctl.models.outcome import TxnStatus

__all__ = [
    "UNLIMITED",
    "Command",
    "CommandMode",
    "CommandSyntax",
    "NbctlConfig",
    "Table",
    "TableFormat",
    "TableStyle",
    "TxnStatus",
]
