from __future__ import annotations

from typing import Literal, Optional

from sqlalchemy import DDL, Table, event
from sqlmodel import Field, SQLModel

# v1 lock: active|updated|deleted
ACTIVE = "active"
UPDATED = "updated"
DELETED = "deleted"
LIFECYCLE_STATUSES = (ACTIVE, UPDATED, DELETED)

LifecycleStatus = Literal["active", "updated", "deleted"]


class VersionedRecord(SQLModel):
    """
    Columns shared by every physical record table.

    record_id is the authoritative order key; created_at is informational.
    """

    record_id: Optional[int] = Field(default=None, primary_key=True)
    status: str = Field(default=ACTIVE, max_length=20, index=True)
    created_at: str


class LogicalIdAllocation(SQLModel):
    # one row per logical entity ever created; the autoincrement key is the logical id
    logical_id: Optional[int] = Field(default=None, primary_key=True)
    allocated_at: str


def append_only(table: Table) -> None:
    """Abort UPDATE/DELETE on `table` (SQLite triggers, installed right after CREATE TABLE)."""
    name = table.name
    for verb in ("update", "delete"):
        ddl = DDL(
            f"""
            CREATE TRIGGER IF NOT EXISTS trg_{name}_no_{verb}
            BEFORE {verb.upper()} ON {name}
            BEGIN
              SELECT RAISE(ABORT, 'append-only: {name} cannot be {verb}d');
            END;
            """
        )
        event.listen(table, "after_create", ddl.execute_if(dialect="sqlite"))
