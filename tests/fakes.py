"""Scripted in-memory session and transaction for engine tests.

FakeSession reports a new version on the first advance() and after every
wait_for_change(), as if another client had written in between. Commit
outcomes are taken from a script; once it runs out every commit succeeds.
"""

from __future__ import annotations

import time
import uuid as uuid_mod
from typing import Any, Iterable, Optional

from nbctl.models.outcome import TxnStatus
from nbctl.schema import NB_SCHEMA, DatabaseSchema
from nbctl.session.row import Row


class FakeTransaction:
    def __init__(self, session: FakeSession, *, dry_run: bool, outcome: Any) -> None:
        self.session = session
        self.dry_run = dry_run
        self.outcome = outcome
        self.status = TxnStatus.UNCOMMITTED
        self.comments: list[str] = []
        self.ops: list[tuple[str, Any]] = []
        self.committed = False
        self.aborted = False
        self.insert_uuids: dict[str, str] = {}

    def add_comment(self, text: str) -> None:
        self.comments.append(text)

    def rows(self, table: str) -> Iterable[Row]:
        return self.session.rows(table)

    def get_row(self, table: str, uuid: str) -> Row | None:
        return self.session.get_row(table, uuid)

    def insert(self, table: str, *, uuid: str | None = None) -> Row:
        uuid = uuid or str(uuid_mod.uuid4())
        self.ops.append(("insert", uuid))
        self.insert_uuids[uuid] = str(uuid_mod.uuid4())
        return Row(self.session.schema.table(table), uuid, {})

    def set(self, row: Row, column: str, value: Any) -> Row:
        self.ops.append(("set", (row.uuid, column, value)))
        return Row(row.table, row.uuid, {**row.to_dict(), column: value})

    def delete(self, row: Row) -> None:
        self.ops.append(("delete", row.uuid))

    def verify(self, row: Row, column: str) -> None:
        self.ops.append(("verify", (row.uuid, column)))

    def commit(self) -> Any:
        self.committed = True
        if isinstance(self.outcome, TxnStatus):
            self.status = self.outcome
        return self.outcome

    def abort(self) -> None:
        self.aborted = True
        if self.status is TxnStatus.UNCOMMITTED:
            self.status = TxnStatus.ABORTED

    def error_message(self) -> str:
        return "injected failure"

    def get_insert_uuid(self, uuid: str) -> str | None:
        if self.dry_run or self.status is not TxnStatus.SUCCESS:
            return None
        return self.insert_uuids.get(uuid)


class FakeSession:
    def __init__(
        self,
        *,
        outcomes: Iterable[Any] = (),
        schema: DatabaseSchema = NB_SCHEMA,
        stall: bool = False,
        die_after: Optional[int] = None,
    ) -> None:
        self.schema = schema
        self.name = "fake"
        self.outcomes = list(outcomes)
        self.stall = stall
        self.die_after = die_after
        self.version = 0
        self.changed = True
        self.advances = 0
        self.waits = 0
        self.closed = False
        self.transactions: list[FakeTransaction] = []
        self.data: dict[str, dict[str, dict[str, Any]]] = {}

    def current_version(self) -> int:
        return self.version

    def advance(self) -> None:
        self.advances += 1
        if self.changed:
            self.version += 1
            self.changed = False

    def is_alive(self) -> bool:
        return self.die_after is None or self.advances <= self.die_after

    def last_error(self) -> str | None:
        return None if self.is_alive() else "connection refused"

    def wait_for_change(self, timeout: float | None = None) -> None:
        self.waits += 1
        if self.stall:
            time.sleep(min(timeout, 0.01) if timeout is not None else 0.01)
        else:
            self.changed = True

    def begin_transaction(self, *, dry_run: bool = False) -> FakeTransaction:
        outcome = self.outcomes.pop(0) if self.outcomes else TxnStatus.SUCCESS
        txn = FakeTransaction(self, dry_run=dry_run, outcome=outcome)
        self.transactions.append(txn)
        return txn

    def add_row(self, table: str, **data: Any) -> str:
        uuid = str(uuid_mod.uuid4())
        self.data.setdefault(table, {})[uuid] = data
        return uuid

    def rows(self, table: str) -> Iterable[Row]:
        schema = self.schema.table(table)
        return [Row(schema, u, d) for u, d in self.data.get(table, {}).items()]

    def get_row(self, table: str, uuid: str) -> Row | None:
        data = self.data.get(table, {}).get(uuid)
        return None if data is None else Row(self.schema.table(table), uuid, data)

    def close(self) -> None:
        self.closed = True
