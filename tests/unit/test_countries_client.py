"""
Unit tests for the REST Countries lookup.

The upstream API is never contacted: every test wires an httpx.MockTransport.
"""

import httpx
import pytest

from histcrud.modules.countries.client import fetch_country_names

URL = "https://countries.test/v3.1/all"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_names_sorted_case_insensitively():
    payload = [
        {"name": {"common": "peru"}},
        {"name": {"common": "Albania"}},
        {"name": {"common": "Zambia"}},
        {"name": "malformed"},
        "junk",
    ]

    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        names = await fetch_country_names(client, URL)

    assert names == ["Albania", "peru", "Zambia"]


@pytest.mark.asyncio
async def test_http_error_gives_empty_list():
    async with _client(lambda request: httpx.Response(503, text="down")) as client:
        assert await fetch_country_names(client, URL) == []


@pytest.mark.asyncio
async def test_transport_error_gives_empty_list():
    def boom(request):
        raise httpx.ConnectError("unreachable", request=request)

    async with _client(boom) as client:
        assert await fetch_country_names(client, URL) == []


@pytest.mark.asyncio
async def test_non_list_payload_gives_empty_list():
    async with _client(lambda request: httpx.Response(200, json={"status": 404})) as client:
        assert await fetch_country_names(client, URL) == []


@pytest.mark.asyncio
async def test_invalid_json_gives_empty_list():
    async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
        assert await fetch_country_names(client, URL) == []


@pytest.mark.asyncio
async def test_empty_url_skips_lookup():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[])

    async with _client(handler) as client:
        assert await fetch_country_names(client, "") == []
    assert calls == []
