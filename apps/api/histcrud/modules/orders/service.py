from __future__ import annotations

from typing import Any, Dict, List, Tuple

from sqlmodel import Session, col, select

from histcrud.core.errors import NotFound, ValidationFailure
from histcrud.modules.users.models import UserRecord
from histcrud.modules.users.service import USERS
from histcrud.modules.versioning import store
from histcrud.modules.versioning.models import DELETED
from histcrud.modules.versioning.store import VersionedEntity

from .models import OrderId, OrderRecord

ORDERS = VersionedEntity(
    kind="order",
    record_model=OrderRecord,
    id_model=OrderId,
    logical_key="order_id",
    fields=("user_id", "product", "quantity", "total_price"),
)

# the owning user is fixed at creation
PATCHABLE_FIELDS = ("product", "quantity", "total_price")


def list_orders_with_users(session: Session) -> List[Tuple[OrderRecord, str]]:
    """Current live orders joined with their owner's current live name."""
    cur_orders = store.current_ids(ORDERS)
    cur_users = store.current_ids(USERS)
    stmt = (
        select(OrderRecord, UserRecord.name)
        .join(cur_orders, col(OrderRecord.record_id) == cur_orders.c.record_id)
        .join(UserRecord, col(UserRecord.user_id) == col(OrderRecord.user_id))
        .join(cur_users, col(UserRecord.record_id) == cur_users.c.record_id)
        .where(col(OrderRecord.status) != DELETED, col(UserRecord.status) != DELETED)
        .order_by(col(OrderRecord.user_id), col(OrderRecord.record_id).desc())
    )
    with store.store_call(session, ORDERS, "list"):
        rows = session.exec(stmt).all()
    return [(order, str(name)) for order, name in rows]


def get_order(session: Session, order_id: int) -> OrderRecord:
    return store.resolve_current(session, ORDERS, order_id)


def create_order(session: Session, fields: Dict[str, Any]) -> OrderRecord:
    user_id = fields.get("user_id")
    if user_id is None or not store.is_live(session, USERS, int(user_id)):
        raise ValidationFailure("user_id does not reference a live user", {"user_id": user_id})
    return store.create_entity(session, ORDERS, fields)


def update_order(session: Session, order_id: int, changes: Dict[str, Any]) -> OrderRecord:
    blocked = sorted(k for k in changes if k not in PATCHABLE_FIELDS)
    if blocked:
        raise ValidationFailure("fields cannot be changed on an order", {"fields": blocked})
    return store.update_entity(session, ORDERS, order_id, changes)


def delete_order(session: Session, order_id: int) -> Tuple[OrderRecord, bool]:
    return store.delete_entity(session, ORDERS, order_id)


def order_history(session: Session, order_id: int) -> List[OrderRecord]:
    return store.read_history(session, ORDERS, order_id)


def user_order_history(session: Session, user_id: int) -> List[OrderRecord]:
    """Every order record placed by `user_id`, newest first."""
    stmt = (
        select(OrderRecord)
        .where(col(OrderRecord.user_id) == user_id)
        .order_by(col(OrderRecord.record_id).desc())
    )
    with store.store_call(session, ORDERS, "history"):
        rows = list(session.exec(stmt).all())
    if not rows:
        raise NotFound("no orders found for this user", {"user_id": user_id})
    return rows
