from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from histcrud.modules.versioning.models import LifecycleStatus


class PageOut(BaseModel):
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    has_more: bool


class UserIn(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    age: int = Field(ge=0)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    record_id: int
    user_id: int
    name: str
    email: str
    age: Optional[int] = None
    status: LifecycleStatus
    created_at: str


class UsersListOut(BaseModel):
    items: List[UserOut]
    page: PageOut


class UserHistoryOut(BaseModel):
    user_id: int
    records: List[UserOut]


class UserDeleteOut(BaseModel):
    user: UserOut
    already_deleted: bool = False


class UserSearchOut(BaseModel):
    query: str
    items: List[UserOut]
    count: int
