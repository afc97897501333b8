"""Sync/retry loop: drives the session until the batch commits.

There is no point in attempting the transaction more than once for a given
session version: if an attempt failed, it failed because the database
changed, and the session has to catch up before another attempt can
succeed. So the loop attempts exactly once per version and otherwise blocks
in the session's wait.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Optional, Sequence

from nbctl.engine.prerequisites import run_prerequisites
from nbctl.engine.transaction import execute_attempt
from nbctl.exceptions import NbctlTimeoutError, SessionFailedError

if TYPE_CHECKING:
    from nbctl.lifecycle import ProcessLifecycle
    from nbctl.models.command import Command
    from nbctl.session.protocols import DatabaseSession

logger = logging.getLogger(__name__)


def run_commands(
    session: DatabaseSession,
    commands: Sequence[Command],
    *,
    invocation: str,
    dry_run: bool = False,
    timeout: Optional[float] = None,
    lifecycle: Optional[ProcessLifecycle] = None,
) -> int:
    """Execute ``commands`` as one transaction, retrying until it commits.

    Args:
        session: Database session; advanced and waited on by this loop only.
        commands: Parsed batch. Reused verbatim across attempts.
        invocation: Command line, recorded as the transaction comment.
        dry_run: Validate and commit without persisting anything.
        timeout: Give up after this many seconds (None or 0 = never).
        lifecycle: Receives the in-flight transaction for cleanup on exit.

    Returns:
        The number of attempts made.

    Raises:
        SessionFailedError: The session stopped being alive.
        NbctlTimeoutError: ``timeout`` expired.
        NbctlError: Any fatal error from an attempt.
    """
    run_prerequisites(commands, session)

    deadline = time.monotonic() + timeout if timeout else None
    last_seen = session.current_version()
    attempts = 0
    while True:
        session.advance()
        if not session.is_alive():
            raise SessionFailedError(session.name, session.last_error())
        if deadline is not None and time.monotonic() >= deadline:
            raise NbctlTimeoutError(timeout)

        if session.current_version() != last_seen:
            last_seen = session.current_version()
            attempts += 1
            logger.debug("attempt %d at version %d", attempts, last_seen)
            if execute_attempt(
                session,
                commands,
                invocation=invocation,
                dry_run=dry_run,
                lifecycle=lifecycle,
            ):
                return attempts

        if session.current_version() == last_seen:
            remaining = None
            if deadline is not None:
                remaining = max(deadline - time.monotonic(), 0.0)
            session.wait_for_change(timeout=remaining)
