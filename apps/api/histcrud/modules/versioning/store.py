"""
Append-only versioned records.

Every mutation of a logical entity inserts a new physical row; nothing is
ever updated or deleted in place. Reads project the row with the greatest
record_id per logical id ("latest-per-group").

Invariants:
    - record_id is assigned by the store and never reused
    - for a logical id, the row with the max record_id is the current state
    - a 'deleted' row is a tombstone; history stays queryable
    - logical ids come from a per-kind allocator table, never from MAX(id)+1
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Type

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, SQLModel, col, select

from histcrud.core.errors import NotFound, StoreFailure, ValidationFailure
from histcrud.core.observability import emit, now_iso

from .models import ACTIVE, DELETED, LIFECYCLE_STATUSES, UPDATED, VersionedRecord


@dataclass(frozen=True)
class VersionedEntity:
    kind: str
    record_model: Type[VersionedRecord]
    id_model: Type[SQLModel]
    logical_key: str
    fields: Tuple[str, ...]

    @property
    def logical_col(self) -> Any:
        return col(getattr(self.record_model, self.logical_key))

    @property
    def physical_col(self) -> Any:
        return col(self.record_model.record_id)


@contextmanager
def store_call(session: Session, entity: VersionedEntity, op: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        emit("error", "store.failure", str(e), None, __name__, kind=entity.kind, op=op)
        raise StoreFailure(f"{entity.kind} {op} failed", {"type": type(e).__name__}) from e


def _check_fields(entity: VersionedEntity, fields: Dict[str, Any]) -> None:
    unknown = sorted(set(fields) - set(entity.fields))
    if unknown:
        raise ValidationFailure(f"unknown {entity.kind} fields", {"fields": unknown})


def fields_of(entity: VersionedEntity, record: VersionedRecord) -> Dict[str, Any]:
    return {k: getattr(record, k) for k in entity.fields}


def current_ids(entity: VersionedEntity) -> Any:
    return (
        select(func.max(entity.physical_col).label("record_id"))
        .group_by(entity.logical_col)
        .subquery()
    )


# -------------------------
# Reads
# -------------------------
def resolve_current(session: Session, entity: VersionedEntity, logical_id: int) -> VersionedRecord:
    """Latest physical record for `logical_id`; tombstones are returned as-is."""
    stmt = (
        select(entity.record_model)
        .where(entity.logical_col == logical_id)
        .order_by(entity.physical_col.desc())
        .limit(1)
    )
    with store_call(session, entity, "resolve"):
        row = session.exec(stmt).first()
    if row is None:
        raise NotFound(f"{entity.kind} not found", {entity.logical_key: logical_id})
    return row


def list_current(
    session: Session,
    entity: VersionedEntity,
    *,
    include_deleted: bool = False,
    where: Sequence[ColumnElement] = (),
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[VersionedRecord], int]:
    m = entity.record_model
    cur = current_ids(entity)
    stmt = select(m).join(cur, entity.physical_col == cur.c.record_id)
    if not include_deleted:
        stmt = stmt.where(col(m.status) != DELETED)
    for clause in where:
        stmt = stmt.where(clause)

    with store_call(session, entity, "list"):
        total = session.exec(select(func.count()).select_from(stmt.subquery())).one()
        stmt = stmt.order_by(entity.logical_col)
        if limit is not None:
            stmt = stmt.offset(offset).limit(limit)
        rows = list(session.exec(stmt).all())
    return rows, int(total)


def read_history(session: Session, entity: VersionedEntity, logical_id: int) -> List[VersionedRecord]:
    stmt = (
        select(entity.record_model)
        .where(entity.logical_col == logical_id)
        .order_by(entity.physical_col.desc())
    )
    with store_call(session, entity, "history"):
        rows = list(session.exec(stmt).all())
    if not rows:
        raise NotFound(f"{entity.kind} not found", {entity.logical_key: logical_id})
    return rows


def is_live(session: Session, entity: VersionedEntity, logical_id: int) -> bool:
    try:
        return resolve_current(session, entity, logical_id).status != DELETED
    except NotFound:
        return False


# -------------------------
# Writes
# -------------------------
def allocate_logical_id(session: Session, entity: VersionedEntity, requested: Optional[int] = None) -> int:
    """Reserve a logical id in the allocator table (flushed, not committed)."""
    alloc = entity.id_model(logical_id=requested, allocated_at=now_iso())
    with store_call(session, entity, "allocate"):
        session.add(alloc)
        session.flush()
    return int(alloc.logical_id)


def append_mutation(
    session: Session,
    entity: VersionedEntity,
    logical_id: int,
    fields: Dict[str, Any],
    status: str,
) -> VersionedRecord:
    """
    Insert exactly one physical record carrying `fields` and `status`.

    The logical id must come from the allocator; 'updated'/'deleted' also
    need an existing record to carry forward. Anything else is NotFound.
    """
    if status not in LIFECYCLE_STATUSES:
        raise ValidationFailure("invalid lifecycle status", {"status": status, "allowed": list(LIFECYCLE_STATUSES)})
    _check_fields(entity, fields)

    with store_call(session, entity, "append"):
        allocated = session.get(entity.id_model, logical_id)
    if allocated is None:
        raise NotFound(f"{entity.kind} id was never allocated", {entity.logical_key: logical_id})
    if status != ACTIVE:
        resolve_current(session, entity, logical_id)

    data = {k: fields.get(k) for k in entity.fields}
    data[entity.logical_key] = logical_id
    record = entity.record_model(**data, status=status, created_at=now_iso())

    with store_call(session, entity, "append"):
        session.add(record)
        session.commit()
        session.refresh(record)

    emit(
        "info",
        "record.appended",
        f"{entity.kind} {logical_id} -> {status}",
        None,
        __name__,
        kind=entity.kind,
        logical_id=logical_id,
        record_id=record.record_id,
        status=status,
    )
    return record


def create_entity(
    session: Session,
    entity: VersionedEntity,
    fields: Dict[str, Any],
    logical_id: Optional[int] = None,
) -> VersionedRecord:
    _check_fields(entity, fields)
    # allocation and the 'active' row commit together
    lid = allocate_logical_id(session, entity, logical_id)
    return append_mutation(session, entity, lid, fields, ACTIVE)


def update_entity(
    session: Session,
    entity: VersionedEntity,
    logical_id: int,
    changes: Dict[str, Any],
) -> VersionedRecord:
    """
    Partial update: keys left out of `changes`, or given as None, keep their
    current value. A nullable field cannot be cleared through here.
    """
    current = resolve_current(session, entity, logical_id)
    if current.status == DELETED:
        raise NotFound(f"{entity.kind} is deleted", {entity.logical_key: logical_id, "status": DELETED})

    _check_fields(entity, changes)

    values = fields_of(entity, current)
    values.update({k: v for k, v in changes.items() if v is not None})
    return append_mutation(session, entity, logical_id, values, UPDATED)


def delete_entity(session: Session, entity: VersionedEntity, logical_id: int) -> Tuple[VersionedRecord, bool]:
    """
    Soft delete (idempotent):
    - appends a 'deleted' row carrying the current field values
    - repeat calls return the existing tombstone with already_deleted=True
    """
    current = resolve_current(session, entity, logical_id)
    if current.status == DELETED:
        return current, True
    return append_mutation(session, entity, logical_id, fields_of(entity, current), DELETED), False
