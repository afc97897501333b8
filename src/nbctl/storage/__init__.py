"""SQLAlchemy storage for the northbound database."""

from nbctl.storage.engine import create_session_factory, engine_for, init_db
from nbctl.storage.schema import Base, RecordRow, StoreMetaRow, StoreVersionRow, TxnLogRow

__all__ = [
    "Base",
    "RecordRow",
    "StoreMetaRow",
    "StoreVersionRow",
    "TxnLogRow",
    "create_session_factory",
    "engine_for",
    "init_db",
]
