"""Transaction outcome model for nbctl."""

from __future__ import annotations

import enum


class TxnStatus(str, enum.Enum):
    """Status of a database transaction.

    Only UNCHANGED and SUCCESS are terminal-successful. TRY_AGAIN means the
    batch must be rerun against a fresher view; ERROR carries a message from
    the session. Everything else is a contract violation.
    """

    UNCOMMITTED = "uncommitted"
    INCOMPLETE = "incomplete"
    ABORTED = "aborted"
    UNCHANGED = "unchanged"
    SUCCESS = "success"
    TRY_AGAIN = "try again"
    ERROR = "error"
    NOT_LOCKED = "not locked"

    def __str__(self) -> str:
        return self.value

    @property
    def is_success(self) -> bool:
        return self in (TxnStatus.UNCHANGED, TxnStatus.SUCCESS)
