"""Configuration models for nbctl.

NbctlConfig holds the global, per-invocation settings assembled by the CLI.
TableStyle controls how structured command results are rendered.
"""

from __future__ import annotations

import enum
import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator

DEFAULT_RUNDIR = "/var/run/openvswitch"


class TableFormat(str, enum.Enum):
    """Output format for structured tables."""

    LIST = "list"
    TABLE = "table"
    CSV = "csv"
    JSON = "json"
    BARE = "bare"


class TableStyle(BaseModel):
    """How to render a structured table."""

    format: TableFormat = TableFormat.LIST
    headings: bool = True

    @classmethod
    def bare(cls) -> TableStyle:
        """Equivalent of --bare: values only, one per line."""
        return cls(format=TableFormat.BARE, headings=False)


def default_db() -> str:
    """Return the database used when neither --db nor OVN_NB_DB is given."""
    env = os.environ.get("OVN_NB_DB")
    if env:
        return env
    rundir = os.environ.get("OVS_RUNDIR", DEFAULT_RUNDIR)
    return f"sqlite:///{rundir}/ovnnb_db.sqlite"


class NbctlConfig(BaseModel):
    """Global settings for one nbctl invocation."""

    db: str = Field(default_factory=default_db)
    dry_run: bool = False
    oneline: bool = False
    timeout: Optional[float] = None  # None = wait forever
    table_style: TableStyle = Field(default_factory=TableStyle)
    poll_interval: float = 0.05

    @model_validator(mode="after")
    def _check_timeout(self) -> NbctlConfig:
        if self.timeout is not None and self.timeout < 0:
            raise ValueError(f"value {self.timeout:g} on -t or --timeout is invalid")
        return self
