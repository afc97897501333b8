"""Engine and session factory for the northbound store.

A ``--db`` value is either a SQLAlchemy URL or a SQLite file path. SQLite
stores are opened in WAL mode with a busy timeout so that one writer and
several polling readers can share the file.
"""

from __future__ import annotations

from sqlalchemy import Engine, create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker

from nbctl.schema import DatabaseSchema
from nbctl.storage.schema import Base, StoreMetaRow, StoreVersionRow

# Milliseconds a writer waits for the store lock before failing.
BUSY_TIMEOUT_MS = 5000


def _on_connect(dbapi_conn, connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    cursor.close()


def engine_for(db: str) -> Engine:
    """Create an engine for a ``--db`` value.

    Anything containing ``://`` is taken as a SQLAlchemy URL, e.g.
    ``postgresql://user@host/ovnnb``; ``:memory:`` is a private in-memory
    store; any other value names a SQLite file.

    Raises:
        sqlalchemy.exc.ArgumentError: The URL cannot be parsed.
        sqlalchemy.exc.NoSuchModuleError: The URL names an unknown dialect.
        ImportError: The dialect's database driver is not installed.
    """
    if "://" in db:
        url = db
    elif db == ":memory:":
        url = "sqlite://"
    else:
        url = f"sqlite:///{db}"
    engine = create_engine(url)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _on_connect)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the given engine.

    Uses expire_on_commit=False so rows read in a session stay usable after
    it commits.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine, schema: DatabaseSchema) -> None:
    """Create all tables and record the schema; idempotent."""
    Base.metadata.create_all(engine)

    SessionLocal = create_session_factory(engine)
    with SessionLocal() as session:
        if session.get(StoreVersionRow, 1) is None:
            session.add(StoreVersionRow(id=1, seqno=0))
        existing = session.execute(
            select(StoreMetaRow).where(StoreMetaRow.key == "schema_version")
        ).scalar_one_or_none()
        if existing is None:
            session.add(StoreMetaRow(key="schema_name", value=schema.name))
            session.add(StoreMetaRow(key="schema_version", value=schema.version))
        session.commit()
