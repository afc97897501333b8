"""Process lifecycle: cleanup of the session and any open transaction.

The CLI owns one ProcessLifecycle. The engine registers the transaction of
the current attempt with it so that a fatal exit can abort the transaction
before closing the session. Command handlers never see this object.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from nbctl.models.outcome import TxnStatus

if TYPE_CHECKING:
    from nbctl.session.protocols import DatabaseSession, Transaction

logger = logging.getLogger(__name__)


class ProcessLifecycle:
    """Holds the process-wide session and the in-flight transaction."""

    def __init__(self, session: Optional[DatabaseSession] = None) -> None:
        self.session = session
        self.txn: Optional[Transaction] = None

    def begin(self, txn: Transaction) -> None:
        self.txn = txn

    def end(self) -> None:
        self.txn = None

    def shutdown(self) -> None:
        """Abort the in-flight transaction, if any, and close the session."""
        if self.txn is not None and self.txn.status is TxnStatus.UNCOMMITTED:
            logger.debug("aborting in-flight transaction on exit")
            self.txn.abort()
        self.txn = None
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self) -> ProcessLifecycle:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:  # type: ignore[no-untyped-def]
        self.shutdown()
