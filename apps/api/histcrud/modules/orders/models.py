from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Index, text
from sqlmodel import Field

from histcrud.modules.versioning.models import LogicalIdAllocation, VersionedRecord, append_only


class OrderId(LogicalIdAllocation, table=True):
    __tablename__ = "order_ids"
    __table_args__ = {"sqlite_autoincrement": True}


# append-only (enforced by SQLite triggers)
class OrderRecord(VersionedRecord, table=True):
    __tablename__ = "orders"
    __table_args__ = (
        Index(
            "uq_orders_order_id_active",
            "order_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        {"sqlite_autoincrement": True},
    )

    order_id: int = Field(index=True)
    # logical user id; no FK since a user's physical rows change on every mutation
    user_id: int = Field(index=True)
    product: str = Field(max_length=255)
    quantity: int
    total_price: Decimal = Field(max_digits=10, decimal_places=2)


append_only(OrderRecord.__table__)
