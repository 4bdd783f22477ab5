"""Tests for the identity provider HTTP client."""

import asyncio

import httpx
import pytest

from portal.integrations.identity.client import IdentityApiClient
from portal.integrations.identity.exceptions import IdentityApiError

pytestmark = pytest.mark.unit


def _client(handler, token="secret-token") -> IdentityApiClient:
    return IdentityApiClient(
        dni_url="https://identity.test/dni/",
        ruc_url="https://identity.test/ruc",
        token=token,
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


def test_fetch_dni_returns_provider_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"success": True, "data": {"numero": "12345678"}})

    payload = asyncio.run(_client(handler).fetch_dni("12345678"))

    assert payload == {"success": True, "data": {"numero": "12345678"}}
    assert seen["url"] == "https://identity.test/dni/12345678"
    assert seen["auth"] == "Bearer secret-token"


def test_fetch_ruc_uses_ruc_base_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"ruc": "20123456789"})

    asyncio.run(_client(handler).fetch_ruc("20123456789"))

    assert seen["url"] == "https://identity.test/ruc/20123456789"


def test_no_token_sends_no_authorization_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={})

    asyncio.run(_client(handler, token="").fetch_dni("12345678"))

    assert seen["auth"] is None


def test_error_status_carries_upstream_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"success": False, "error": "DNI no encontrado"})

    with pytest.raises(IdentityApiError) as exc_info:
        asyncio.run(_client(handler).fetch_dni("12345678"))

    assert exc_info.value.status_code == 404
    assert exc_info.value.upstream_error == "DNI no encontrado"


def test_error_status_without_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(IdentityApiError) as exc_info:
        asyncio.run(_client(handler).fetch_ruc("20123456789"))

    assert exc_info.value.status_code == 502
    assert exc_info.value.upstream_error is None


def test_transport_failure_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IdentityApiError) as exc_info:
        asyncio.run(_client(handler).fetch_dni("12345678"))

    assert exc_info.value.status_code is None
    assert exc_info.value.upstream_error is None


def test_non_object_body_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["unexpected"])

    with pytest.raises(IdentityApiError):
        asyncio.run(_client(handler).fetch_dni("12345678"))
