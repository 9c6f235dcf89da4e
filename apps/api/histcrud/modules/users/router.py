from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from sqlmodel import Session

from histcrud.core.db import get_session

from .schemas import (
    PageOut,
    UserDeleteOut,
    UserHistoryOut,
    UserIn,
    UserOut,
    UserSearchOut,
    UsersListOut,
)
from .service import (
    create_user,
    delete_user,
    get_user,
    list_users,
    search_users,
    update_user,
    user_history,
)

router = APIRouter(tags=["users"])


def _clamp_limit(raw: int | None) -> int:
    # lock: default=50, max=200
    if raw is None:
        return 50
    try:
        v = int(raw)
    except Exception:
        return 50
    if v < 1:
        v = 1
    if v > 200:
        v = 200
    return v


def _clamp_offset(raw: int | None) -> int:
    if raw is None:
        return 0
    try:
        v = int(raw)
    except Exception:
        return 0
    return max(v, 0)


@router.get("/db/users", response_model=UsersListOut)
def api_list_users(
    limit: int | None = Query(None, description="Max items to return (default 50, max 200)"),
    offset: int | None = Query(None, description="Offset from start (default 0)"),
    include_deleted: bool = Query(False, description="Include users whose current record is a tombstone"),
    session: Session = Depends(get_session),
) -> UsersListOut:
    lim = _clamp_limit(limit)
    off = _clamp_offset(offset)
    items, total = list_users(session, limit=lim, offset=off, include_deleted=include_deleted)
    return UsersListOut(
        items=[UserOut.model_validate(u) for u in items],
        page=PageOut(limit=lim, offset=off, total=total, has_more=(off + lim) < total),
    )


@router.post("/db/users", response_model=UserOut, status_code=201)
def api_create_user(body: UserIn, session: Session = Depends(get_session)) -> UserOut:
    return UserOut.model_validate(create_user(session, body.model_dump()))


@router.get("/db/users/{user_id}", response_model=UserOut)
def api_get_user(user_id: int = Path(...), session: Session = Depends(get_session)) -> UserOut:
    return UserOut.model_validate(get_user(session, user_id))


@router.put("/db/users/{user_id}", response_model=UserOut)
def api_update_user(user_id: int, body: UserIn, session: Session = Depends(get_session)) -> UserOut:
    return UserOut.model_validate(update_user(session, user_id, body.model_dump()))


@router.delete("/db/users/{user_id}", response_model=UserDeleteOut)
def api_delete_user(user_id: int, session: Session = Depends(get_session)) -> UserDeleteOut:
    record, already = delete_user(session, user_id)
    return UserDeleteOut(user=UserOut.model_validate(record), already_deleted=already)


@router.get("/db/users/{user_id}/history", response_model=UserHistoryOut)
def api_user_history(user_id: int, session: Session = Depends(get_session)) -> UserHistoryOut:
    rows = user_history(session, user_id)
    return UserHistoryOut(user_id=user_id, records=[UserOut.model_validate(r) for r in rows])


@router.get("/db/search", response_model=UserSearchOut)
def api_search_users(
    query: str = Query(..., min_length=1, description="Substring of the user's name"),
    session: Session = Depends(get_session),
) -> UserSearchOut:
    rows = search_users(session, query)
    return UserSearchOut(query=query, items=[UserOut.model_validate(r) for r in rows], count=len(rows))
