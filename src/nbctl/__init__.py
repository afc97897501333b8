"""nbctl: command-line client for the logical network northbound database.

A batch of commands separated by ``--`` is executed as one transaction.
Conflicting concurrent writers are handled by optimistic concurrency: the
batch is simply rerun against the new database contents until it commits.
"""

from nbctl._version import __version__

from nbctl.commands import build_registry
from nbctl.engine import execute_attempt, run_commands, run_prerequisites
from nbctl.exceptions import (
    CommandSyntaxError,
    DanglingReferenceError,
    DuplicateRowError,
    EngineInvariantError,
    NbctlError,
    NbctlTimeoutError,
    RowNotFoundError,
    SessionFailedError,
    TransactionError,
    UserInputError,
)
from nbctl.lifecycle import ProcessLifecycle
from nbctl.models import (
    Command,
    CommandMode,
    CommandSyntax,
    NbctlConfig,
    Table,
    TableFormat,
    TableStyle,
    TxnStatus,
)
from nbctl.output import dispatch_output, escape_oneline
from nbctl.parser import parse_commands
from nbctl.registry import CommandRegistry
from nbctl.schema import NB_SCHEMA
from nbctl.session import SqlDatabaseSession
from nbctl.symtab import Symbol, SymbolTable

__all__ = [
    "__version__",
    "NB_SCHEMA",
    "Command",
    "CommandMode",
    "CommandRegistry",
    "CommandSyntax",
    "CommandSyntaxError",
    "DanglingReferenceError",
    "DuplicateRowError",
    "EngineInvariantError",
    "NbctlConfig",
    "NbctlError",
    "NbctlTimeoutError",
    "ProcessLifecycle",
    "RowNotFoundError",
    "SessionFailedError",
    "SqlDatabaseSession",
    "Symbol",
    "SymbolTable",
    "Table",
    "TableFormat",
    "TableStyle",
    "TransactionError",
    "TxnStatus",
    "UserInputError",
    "build_registry",
    "dispatch_output",
    "escape_oneline",
    "execute_attempt",
    "parse_commands",
    "run_commands",
    "run_prerequisites",
]
