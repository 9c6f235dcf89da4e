from __future__ import annotations

import asyncio

import httpx
from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from histcrud.core.db import get_session
from histcrud.core.observability import request_id_of
from histcrud.modules.countries.client import fetch_country_names, get_http_client
from histcrud.modules.users.schemas import UserOut
from histcrud.modules.users.service import live_users

from .schemas import (
    OrderCreateIn,
    OrderDeleteOut,
    OrderFormOut,
    OrderHistoryOut,
    OrderOut,
    OrderPatchIn,
    OrdersListOut,
    OrderWithUserOut,
    UserOrderHistoryOut,
)
from .service import (
    create_order,
    delete_order,
    get_order,
    list_orders_with_users,
    order_history,
    update_order,
    user_order_history,
)

router = APIRouter(tags=["orders"])


@router.get("/db/orders", response_model=OrdersListOut)
def api_list_orders(session: Session = Depends(get_session)) -> OrdersListOut:
    rows = list_orders_with_users(session)
    items = [
        OrderWithUserOut(**OrderOut.model_validate(order).model_dump(), user_name=name)
        for order, name in rows
    ]
    return OrdersListOut(items=items, count=len(items))


@router.get("/db/orders/add", response_model=OrderFormOut)
async def api_order_form(
    request: Request,
    session: Session = Depends(get_session),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> OrderFormOut:
    # users and countries are independent: fetch both at once
    users, countries = await asyncio.gather(
        run_in_threadpool(live_users, session),
        fetch_country_names(http_client, request.app.state.settings.countries_api_url, request_id_of(request)),
    )
    return OrderFormOut(users=[UserOut.model_validate(u) for u in users], countries=countries)


@router.post("/db/orders", response_model=OrderOut, status_code=201)
def api_create_order(body: OrderCreateIn, session: Session = Depends(get_session)) -> OrderOut:
    return OrderOut.model_validate(create_order(session, body.model_dump()))


@router.get("/db/orders/user/{user_id}/history", response_model=UserOrderHistoryOut)
def api_user_order_history(user_id: int, session: Session = Depends(get_session)) -> UserOrderHistoryOut:
    rows = user_order_history(session, user_id)
    return UserOrderHistoryOut(user_id=user_id, records=[OrderOut.model_validate(r) for r in rows])


@router.get("/db/orders/{order_id}", response_model=OrderOut)
def api_get_order(order_id: int, session: Session = Depends(get_session)) -> OrderOut:
    return OrderOut.model_validate(get_order(session, order_id))


@router.put("/db/orders/{order_id}", response_model=OrderOut)
def api_update_order(order_id: int, body: OrderPatchIn, session: Session = Depends(get_session)) -> OrderOut:
    return OrderOut.model_validate(update_order(session, order_id, body.model_dump(exclude_unset=True)))


@router.delete("/db/orders/{order_id}", response_model=OrderDeleteOut)
def api_delete_order(order_id: int, session: Session = Depends(get_session)) -> OrderDeleteOut:
    record, already = delete_order(session, order_id)
    return OrderDeleteOut(order=OrderOut.model_validate(record), already_deleted=already)


@router.get("/db/orders/{order_id}/history", response_model=OrderHistoryOut)
def api_order_history(order_id: int, session: Session = Depends(get_session)) -> OrderHistoryOut:
    rows = order_history(session, order_id)
    return OrderHistoryOut(order_id=order_id, records=[OrderOut.model_validate(r) for r in rows])
