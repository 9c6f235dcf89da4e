from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from histcrud.modules.users.schemas import UserOut
from histcrud.modules.versioning.models import LifecycleStatus


class OrderCreateIn(BaseModel):
    user_id: int
    product: str = Field(min_length=1, max_length=255)
    quantity: int = Field(ge=1)
    total_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class OrderPatchIn(BaseModel):
    product: Optional[str] = Field(default=None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(default=None, ge=1)
    total_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    record_id: int
    order_id: int
    user_id: int
    product: str
    quantity: int
    total_price: Decimal
    status: LifecycleStatus
    created_at: str


class OrderWithUserOut(OrderOut):
    user_name: str


class OrdersListOut(BaseModel):
    items: List[OrderWithUserOut]
    count: int


class OrderHistoryOut(BaseModel):
    order_id: int
    records: List[OrderOut]


class UserOrderHistoryOut(BaseModel):
    user_id: int
    records: List[OrderOut]


class OrderDeleteOut(BaseModel):
    order: OrderOut
    already_deleted: bool = False


class OrderFormOut(BaseModel):
    users: List[UserOut]
    countries: List[str] = Field(default_factory=list)
