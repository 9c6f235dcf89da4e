from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, col

from histcrud.modules.versioning import store
from histcrud.modules.versioning.store import VersionedEntity

from .models import UserId, UserRecord

USERS = VersionedEntity(
    kind="user",
    record_model=UserRecord,
    id_model=UserId,
    logical_key="user_id",
    fields=("name", "email", "age"),
)


def list_users(
    session: Session, limit: int, offset: int, include_deleted: bool = False
) -> Tuple[List[UserRecord], int]:
    return store.list_current(session, USERS, include_deleted=include_deleted, limit=limit, offset=offset)


def live_users(session: Session) -> List[UserRecord]:
    rows, _ = store.list_current(session, USERS)
    return rows


def get_user(session: Session, user_id: int) -> UserRecord:
    return store.resolve_current(session, USERS, user_id)


def create_user(session: Session, fields: Dict[str, Any], user_id: Optional[int] = None) -> UserRecord:
    return store.create_entity(session, USERS, fields, logical_id=user_id)


def update_user(session: Session, user_id: int, fields: Dict[str, Any]) -> UserRecord:
    return store.update_entity(session, USERS, user_id, fields)


def delete_user(session: Session, user_id: int) -> Tuple[UserRecord, bool]:
    return store.delete_entity(session, USERS, user_id)


def user_history(session: Session, user_id: int) -> List[UserRecord]:
    return store.read_history(session, USERS, user_id)


def search_users(session: Session, query: str) -> List[UserRecord]:
    """Case-insensitive substring match on each user's current name (tombstones included)."""
    pattern = "%" + query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
    rows, _ = store.list_current(
        session,
        USERS,
        include_deleted=True,
        where=[col(UserRecord.name).ilike(pattern, escape="\\")],
    )
    return rows
