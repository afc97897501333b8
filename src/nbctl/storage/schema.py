"""SQLAlchemy ORM schema for the northbound store.

Every database row lives in ``records`` as a JSON document keyed by UUID;
the logical table it belongs to is a column. ``store_version`` holds the
store's sequence number, bumped by every commit; row versions record the
sequence number of the commit that last wrote them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all store ORM models."""

    pass


class RecordRow(Base):
    """One row of one logical table."""

    __tablename__ = "records"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True)
    table_name: Mapped[str] = mapped_column(String(64), nullable=False)
    data_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("ix_records_table", "table_name"),)


class StoreVersionRow(Base):
    """Single-row table holding the store sequence number."""

    __tablename__ = "store_version"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    seqno: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TxnLogRow(Base):
    """Audit trail: the comments attached to each committed transaction."""

    __tablename__ = "txn_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    seqno: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class StoreMetaRow(Base):
    """Key-value metadata (schema name and version)."""

    __tablename__ = "_nb_meta"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
