"""nbctl exception hierarchy.

All nbctl-specific exceptions inherit from NbctlError. Every one of them is
fatal to the whole batch: the CLI prints the message as a single diagnostic
line and exits non-zero. Conflicts are not exceptions -- a stale attempt is
reported by the transaction engine's return value and retried.
"""


class NbctlError(Exception):
    """Base exception for all nbctl errors."""


class UserInputError(NbctlError):
    """Base exception for errors caused by the user's command line."""


class CommandSyntaxError(UserInputError):
    """Raised for unknown commands, bad arity, bad options or bad values."""


class RowNotFoundError(UserInputError):
    """Raised when a record lookup by name or UUID fails."""

    def __init__(self, record_id: str, message: str) -> None:
        self.record_id = record_id
        super().__init__(message)


class DuplicateRowError(UserInputError):
    """Raised when a create would duplicate an existing named record."""


class DanglingReferenceError(NbctlError):
    """Raised when a symbolic row name is referenced but never created."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'row id "{name}" is referenced but never created '
            f'(e.g. with "-- --id={name} create ...")'
        )


class TransactionError(NbctlError):
    """Raised when the database rejects a commit with an error."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"transaction error: {message}")


class EngineInvariantError(NbctlError):
    """Raised when the engine or a collaborator violates its contract.

    Unexpected transaction outcomes (aborted, not-locked, uncommitted,
    incomplete) and prerequisite phases that produce output end up here.
    These are never retried.
    """


class SessionFailedError(NbctlError):
    """Raised when the database session reports that it is no longer alive."""

    def __init__(self, db: str, reason: str | None) -> None:
        self.db = db
        self.reason = reason
        super().__init__(
            f"{db}: database connection failed ({reason or 'unknown error'})"
        )


class NbctlTimeoutError(NbctlError):
    """Raised when --timeout expires before the batch could be committed."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"timed out after {seconds:g} seconds")
