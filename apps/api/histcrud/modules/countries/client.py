"""
REST Countries lookup for the order form.

Failures never propagate: the form still renders, just without countries.
"""
from __future__ import annotations

from typing import Any, List, Optional

import httpx
from fastapi import Request

from histcrud.core.observability import emit


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def _common_name(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    if isinstance(name, dict) and isinstance(name.get("common"), str):
        return name["common"]
    return None


async def fetch_country_names(
    client: httpx.AsyncClient,
    url: str,
    request_id: Optional[str] = None,
) -> List[str]:
    if not url:
        return []
    try:
        resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        emit("error", "countries.fetch_failed", f"Could not fetch countries from API: {e}", request_id, __name__)
        return []

    if not isinstance(data, list):
        emit("warning", "countries.invalid_payload", "No country data received from API or the response was invalid.", request_id, __name__)
        return []

    names = [n for n in (_common_name(item) for item in data) if n]
    return sorted(names, key=str.casefold)
