from __future__ import annotations

from typing import Optional

from sqlalchemy import Index, text
from sqlmodel import Field

from histcrud.modules.versioning.models import LogicalIdAllocation, VersionedRecord, append_only


class UserId(LogicalIdAllocation, table=True):
    __tablename__ = "user_ids"
    __table_args__ = {"sqlite_autoincrement": True}


# append-only (enforced by SQLite triggers)
class UserRecord(VersionedRecord, table=True):
    __tablename__ = "users"
    __table_args__ = (
        # exactly one creation row per logical user
        Index(
            "uq_users_user_id_active",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        {"sqlite_autoincrement": True},
    )

    user_id: int = Field(index=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=100)
    age: Optional[int] = Field(default=None)


append_only(UserRecord.__table__)
