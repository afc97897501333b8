"""SQL-backed database session.

SqlDatabaseSession keeps an in-memory mirror of the store and a local
version counter that changes each time the mirror is refreshed. Changes are
made through SqlTransaction, which queues operations and applies them at
commit under optimistic concurrency: rows the transaction verified must
still carry the version it saw, otherwise the outcome is TRY_AGAIN.

At commit the store also enforces its data model: rows outside the root set
that nothing strongly references are garbage collected, weak references to
missing rows are dropped, and strong references to missing rows make the
transaction fail.
"""

from __future__ import annotations

import copy
import logging
import time
import uuid as uuid_mod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nbctl.exceptions import SessionFailedError
from nbctl.models.outcome import TxnStatus
from nbctl.schema import NB_SCHEMA, ColumnKind, DatabaseSchema, RefType
from nbctl.session.row import Row
from nbctl.storage.engine import create_session_factory, engine_for, init_db
from nbctl.storage.schema import RecordRow, StoreVersionRow, TxnLogRow

logger = logging.getLogger(__name__)


def _describe(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else _first_line(exc)


def _first_line(exc: BaseException) -> str:
    # SQLAlchemy appends a "Background on this error" link on its own line
    lines = str(exc).strip().splitlines()
    return lines[0] if lines else type(exc).__name__


@dataclass
class _Record:
    table: str
    data: dict[str, Any]
    version: int


class _Conflict(Exception):
    """Internal: the store changed under a verified or written row."""


class _IntegrityViolation(Exception):
    """Internal: the commit would leave a dangling strong reference."""


class SqlTransaction:
    """Transaction against a :class:`SqlDatabaseSession`."""

    def __init__(self, session: SqlDatabaseSession, *, dry_run: bool = False) -> None:
        self._session = session
        self._schema = session.schema
        self.dry_run = dry_run
        self._status = TxnStatus.UNCOMMITTED
        self._error = ""
        self._comments: list[str] = []
        self._tables: dict[str, str] = {}  # uuid -> table of every touched row
        self._inserted: set[str] = set()
        self._writes: dict[str, dict[str, Any]] = {}
        self._deleted: set[str] = set()
        self._verified: dict[str, int] = {}
        self._insert_uuids: dict[str, str] = {}

    @property
    def status(self) -> TxnStatus:
        return self._status

    def _check_open(self) -> None:
        if self._status is not TxnStatus.UNCOMMITTED:
            raise RuntimeError(f"transaction is {self._status}, not uncommitted")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _view(self, table: str, uuid: str) -> Row:
        schema = self._schema.table(table)
        if uuid in self._inserted:
            data = schema.defaults()
        else:
            data = dict(self._session._record(table, uuid).data)
        data.update(self._writes.get(uuid, {}))
        return Row(schema, uuid, data)

    def rows(self, table: str) -> Iterator[Row]:
        for uuid in list(self._session._table_cache(table)):
            if uuid not in self._deleted:
                yield self._view(table, uuid)
        for uuid in list(self._inserted):
            if self._tables[uuid] == table:
                yield self._view(table, uuid)

    def get_row(self, table: str, uuid: str) -> Row | None:
        if uuid in self._deleted:
            return None
        if uuid in self._inserted:
            return self._view(table, uuid) if self._tables[uuid] == table else None
        if uuid in self._session._table_cache(table):
            return self._view(table, uuid)
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_comment(self, text: str) -> None:
        self._comments.append(text)

    def insert(self, table: str, *, uuid: str | None = None) -> Row:
        self._check_open()
        self._schema.table(table)
        uuid = uuid or str(uuid_mod.uuid4())
        if uuid in self._tables or self._session._find_record(uuid) is not None:
            raise ValueError(f"row {uuid} already exists")
        self._tables[uuid] = table
        self._inserted.add(uuid)
        return self._view(table, uuid)

    def set(self, row: Row, column: str, value: Any) -> Row:
        self._check_open()
        row.table.column(column)
        if row.uuid in self._deleted:
            raise ValueError(f"{row!r} has been deleted in this transaction")
        self._tables[row.uuid] = row.table.name
        self._writes.setdefault(row.uuid, {})[column] = copy.deepcopy(value)
        return self._view(row.table.name, row.uuid)

    def delete(self, row: Row) -> None:
        self._check_open()
        self._writes.pop(row.uuid, None)
        if row.uuid in self._inserted:
            self._inserted.discard(row.uuid)
            del self._tables[row.uuid]
            return
        self._tables[row.uuid] = row.table.name
        self._deleted.add(row.uuid)

    def verify(self, row: Row, column: str) -> None:
        self._check_open()
        row.table.column(column)
        if row.uuid in self._inserted:
            return
        record = self._session._find_record(row.uuid)
        if record is not None:
            self._verified[row.uuid] = record.version

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self) -> TxnStatus:
        if self._status is not TxnStatus.UNCOMMITTED:
            return self._status
        if not (self._inserted or self._writes or self._deleted):
            self._status = TxnStatus.UNCHANGED
            return self._status

        db = self._session._session_factory()
        try:
            mapping, seqno = self._apply(db)
            if self.dry_run:
                db.rollback()
            else:
                db.commit()
                self._insert_uuids = mapping
            self._status = TxnStatus.SUCCESS
            logger.debug(
                "committed transaction at seqno %d%s", seqno,
                " (dry run)" if self.dry_run else "",
            )
        except _Conflict as exc:
            db.rollback()
            logger.debug("transaction conflict: %s", exc)
            self._status = TxnStatus.TRY_AGAIN
        except _IntegrityViolation as exc:
            db.rollback()
            self._error = str(exc)
            self._status = TxnStatus.ERROR
        except SQLAlchemyError as exc:
            db.rollback()
            self._error = _describe(exc)
            self._status = TxnStatus.ERROR
        finally:
            db.close()
        return self._status

    def _apply(self, db: Session) -> tuple[dict[str, str], int]:
        # Bumping the sequence number first takes the store's write lock
        bumped = db.execute(
            update(StoreVersionRow)
            .where(StoreVersionRow.id == 1)
            .values(seqno=StoreVersionRow.seqno + 1)
        )
        if bumped.rowcount != 1:
            raise _IntegrityViolation("store is not initialized")
        seqno = db.execute(
            select(StoreVersionRow.seqno).where(StoreVersionRow.id == 1)
        ).scalar_one()

        records = {r.uuid: r for r in db.execute(select(RecordRow)).scalars()}
        for uuid, seen in self._verified.items():
            record = records.get(uuid)
            if record is None or record.version != seen:
                raise _Conflict(f"row {uuid} changed since it was read")
        for uuid in (set(self._writes) - self._inserted) | self._deleted:
            if uuid not in records:
                raise _Conflict(f"row {uuid} no longer exists")

        mapping = {uuid: str(uuid_mod.uuid4()) for uuid in self._inserted}
        state = {
            uuid: _Record(r.table_name, dict(r.data_json), r.version)
            for uuid, r in records.items()
        }
        touched: set[str] = set()
        for uuid in self._deleted:
            state.pop(uuid, None)
        for uuid in self._inserted:
            table = self._tables[uuid]
            data = self._schema.table(table).defaults()
            state[mapping[uuid]] = _Record(table, data, seqno)
        for uuid, columns in self._writes.items():
            real = mapping.get(uuid, uuid)
            state[real].data.update(self._remap(state[real].table, columns, mapping))
            touched.add(real)
        touched.update(mapping.values())

        self._collect_garbage(state)
        self._check_references(state, touched)

        for uuid, record in records.items():
            if uuid not in state:
                db.delete(record)
        for uuid in touched:
            if uuid not in state:
                continue
            record = state[uuid]
            existing = records.get(uuid)
            if existing is None:
                db.add(RecordRow(
                    uuid=uuid,
                    table_name=record.table,
                    data_json=record.data,
                    version=seqno,
                ))
            else:
                existing.data_json = record.data
                existing.version = seqno
        now = datetime.now(timezone.utc)
        for comment in self._comments:
            db.add(TxnLogRow(seqno=seqno, comment=comment, created_at=now))
        db.flush()
        return mapping, seqno

    def _remap(
        self, table: str, columns: dict[str, Any], mapping: dict[str, str]
    ) -> dict[str, Any]:
        """Replace provisional UUIDs in reference columns with real ones."""
        schema = self._schema.table(table)
        result = {}
        for name, value in columns.items():
            column = schema.columns[name]
            if column.is_reference and value is not None:
                if column.kind is ColumnKind.SET:
                    value = [mapping.get(v, v) for v in value]
                elif column.kind is ColumnKind.MAP:
                    value = {k: mapping.get(v, v) for k, v in value.items()}
                else:
                    value = mapping.get(value, value)
            result[name] = value
        return result

    def _collect_garbage(self, state: dict[str, _Record]) -> None:
        """Delete non-root rows that no strong reference keeps alive."""
        while True:
            referenced: set[str] = set()
            for record in state.values():
                schema = self._schema.table(record.table)
                for name, column in schema.columns.items():
                    if column.ref_type is RefType.STRONG:
                        referenced.update(column.references(record.data.get(name)))
            orphans = [
                uuid for uuid, record in state.items()
                if not self._schema.table(record.table).is_root and uuid not in referenced
            ]
            if not orphans:
                return
            for uuid in orphans:
                logger.debug("garbage collecting %s row %s", state[uuid].table, uuid)
                del state[uuid]

    def _check_references(self, state: dict[str, _Record], touched: set[str]) -> None:
        for uuid, record in state.items():
            schema = self._schema.table(record.table)
            for name, column in schema.columns.items():
                if not column.is_reference:
                    continue
                value = record.data.get(name)
                dangling = [
                    ref for ref in column.references(value)
                    if ref not in state or state[ref].table != column.ref_table
                ]
                if not dangling:
                    continue
                if column.ref_type is RefType.STRONG:
                    raise _IntegrityViolation(
                        f"referential integrity violation: {record.table} row {uuid} "
                        f"column {name} refers to nonexistent row {dangling[0]}"
                    )
                record.data[name] = _without(column.kind, value, set(dangling))
                touched.add(uuid)

    def abort(self) -> None:
        if self._status is TxnStatus.UNCOMMITTED:
            self._status = TxnStatus.ABORTED
            self._writes.clear()
            self._inserted.clear()
            self._deleted.clear()

    def error_message(self) -> str:
        return self._error

    def get_insert_uuid(self, uuid: str) -> str | None:
        return self._insert_uuids.get(uuid)


def _without(kind: ColumnKind, value: Any, refs: set[str]) -> Any:
    if kind is ColumnKind.SET:
        return [v for v in value if v not in refs]
    if kind is ColumnKind.MAP:
        return {k: v for k, v in value.items() if v not in refs}
    return None


class SqlDatabaseSession:
    """Database session over a SQLAlchemy engine.

    The session does not connect until the first :meth:`advance`, mirroring
    a client that has not yet received its initial snapshot; its version is
    0 until then.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        schema: DatabaseSchema = NB_SCHEMA,
        name: str | None = None,
        poll_interval: float = 0.05,
        owns_engine: bool = False,
    ) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._schema = schema
        self._name = name or engine.url.render_as_string(hide_password=True)
        self._poll_interval = poll_interval
        self._owns_engine = owns_engine
        self._version = 0
        self._store_seqno: int | None = None
        self._cache: dict[str, dict[str, _Record]] = {}
        self._initialized = False
        self._alive = True
        self._last_error: str | None = None

    @classmethod
    def open(cls, db: str, **kwargs: Any) -> SqlDatabaseSession:
        """Open a session for a --db value (SQLAlchemy URL or file path).

        Raises:
            SessionFailedError: No engine can be built for ``db`` (bad URL,
                unknown dialect or missing database driver).
        """
        try:
            engine = engine_for(db)
        except (SQLAlchemyError, ImportError) as exc:
            raise SessionFailedError(db, _first_line(exc)) from exc
        return cls(engine, name=db, owns_engine=True, **kwargs)

    @property
    def schema(self) -> DatabaseSchema:
        return self._schema

    @property
    def name(self) -> str:
        return self._name

    def current_version(self) -> int:
        return self._version

    def is_alive(self) -> bool:
        return self._alive

    def last_error(self) -> str | None:
        return self._last_error

    def _fail(self, exc: SQLAlchemyError) -> None:
        self._alive = False
        self._last_error = _describe(exc)
        logger.warning("%s: connection lost: %s", self._name, self._last_error)

    def _read_seqno(self) -> int:
        with self._session_factory() as db:
            return db.execute(
                select(StoreVersionRow.seqno).where(StoreVersionRow.id == 1)
            ).scalar_one()

    def advance(self) -> None:
        if not self._alive:
            return
        try:
            if not self._initialized:
                init_db(self._engine, self._schema)
                self._initialized = True
            if self._read_seqno() != self._store_seqno:
                self._reload()
        except SQLAlchemyError as exc:
            self._fail(exc)

    def _reload(self) -> None:
        cache: dict[str, dict[str, _Record]] = {name: {} for name in self._schema.tables}
        with self._session_factory() as db, db.begin():
            seqno = db.execute(
                select(StoreVersionRow.seqno).where(StoreVersionRow.id == 1)
            ).scalar_one()
            for record in db.execute(select(RecordRow)).scalars():
                if record.table_name in cache:
                    cache[record.table_name][record.uuid] = _Record(
                        record.table_name, dict(record.data_json), record.version
                    )
        self._cache = cache
        self._store_seqno = seqno
        self._version += 1
        logger.debug("%s: loaded store seqno %d (version %d)", self._name, seqno, self._version)

    def wait_for_change(self, timeout: float | None = None) -> None:
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._alive:
            delay = self._poll_interval
            if deadline is not None:
                delay = min(delay, max(deadline - time.monotonic(), 0))
            time.sleep(delay)
            try:
                if self._read_seqno() != self._store_seqno:
                    return
            except SQLAlchemyError as exc:
                self._fail(exc)
                return
            if deadline is not None and time.monotonic() >= deadline:
                return

    def begin_transaction(self, *, dry_run: bool = False) -> SqlTransaction:
        return SqlTransaction(self, dry_run=dry_run)

    def _table_cache(self, table: str) -> dict[str, _Record]:
        self._schema.table(table)
        return self._cache.get(table, {})

    def _record(self, table: str, uuid: str) -> _Record:
        return self._table_cache(table)[uuid]

    def _find_record(self, uuid: str) -> _Record | None:
        for records in self._cache.values():
            if uuid in records:
                return records[uuid]
        return None

    def rows(self, table: str) -> Iterator[Row]:
        schema = self._schema.table(table)
        for uuid, record in list(self._table_cache(table).items()):
            yield Row(schema, uuid, record.data)

    def get_row(self, table: str, uuid: str) -> Row | None:
        record = self._table_cache(table).get(uuid)
        if record is None:
            return None
        return Row(self._schema.table(table), uuid, record.data)

    def close(self) -> None:
        if self._owns_engine:
            self._engine.dispose()
