"""Tests for PropertyData response classification."""

import asyncio

import httpx
import pytest

from ukvaluation.data.base import (
    DEMAND_RENT, SOLD_PRICES,
    UpstreamError, UpstreamNetworkFailure, UpstreamSuccess, UpstreamTimeout,
)
from ukvaluation.data.propertydata_client import HttpPropertyData, MockPropertyData, is_type_unsupported
from ukvaluation.schemas import PropertyType, Purpose, ValuationRequest
from ukvaluation.services.valuation_service import ValuationService


def _client(handler):
    return HttpPropertyData("https://api.example.test/", "secret", timeout=10, transport=httpx.MockTransport(handler))


def _fetch(client, endpoint=DEMAND_RENT, query=None):
    return asyncio.run(client.fetch(endpoint, query or {"postcode": "SW1A"}))


def test_success_passes_key_and_query():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        return httpx.Response(200, json={"status": "success", "rent": {"average": 1200}})

    resp = _fetch(_client(handler), SOLD_PRICES, {"postcode": "SW1A 1AA", "type": "flat", "max_age": 12})

    assert isinstance(resp, UpstreamSuccess)
    assert resp.payload["rent"]["average"] == 1200
    assert seen["url"].path == "/sold-prices"
    assert seen["url"].params["key"] == "secret"
    assert seen["url"].params["postcode"] == "SW1A 1AA"
    assert seen["url"].params["type"] == "flat"
    assert seen["url"].params["max_age"] == "12"


def test_error_status_in_ok_body():
    resp = _fetch(_client(lambda r: httpx.Response(200, json={"status": "error", "code": "903", "message": "No data"})))
    assert resp == UpstreamError(code="903", message="No data", type_unsupported=False)


def test_type_unsupported_error_on_http_error():
    body = {"status": "error", "code": "902", "message": "Property type not available for this postcode"}
    resp = _fetch(_client(lambda r: httpx.Response(400, json=body)), SOLD_PRICES)
    assert isinstance(resp, UpstreamError)
    assert resp.type_unsupported


def test_http_error_without_envelope():
    resp = _fetch(_client(lambda r: httpx.Response(503, text="Service Unavailable")))
    assert isinstance(resp, UpstreamError)
    assert resp.code == "503"
    assert not resp.type_unsupported


def test_non_json_success_body():
    resp = _fetch(_client(lambda r: httpx.Response(200, text="<html>")))
    assert isinstance(resp, UpstreamError)
    assert resp.code == "invalid_json"


def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    assert isinstance(_fetch(_client(handler)), UpstreamTimeout)


def test_network_failure():
    def handler(request):
        raise httpx.ConnectError("name resolution failed", request=request)

    resp = _fetch(_client(handler))
    assert isinstance(resp, UpstreamNetworkFailure)
    assert "name resolution" in resp.reason


@pytest.mark.parametrize("code,message,expected", [
    ("902", "Property type not available", True),
    ("902", "Postcode not found", False),
    ("903", "Invalid type", False),
])
def test_type_unsupported_predicate(code, message, expected):
    assert is_type_unsupported(code, message) is expected


def test_mock_provider_is_deterministic():
    mock = MockPropertyData()
    first = asyncio.run(mock.fetch(SOLD_PRICES, {"postcode": "SW1A 1AA", "type": "flat"}))
    second = asyncio.run(mock.fetch(SOLD_PRICES, {"postcode": "SW1A 1AA", "type": "flat"}))
    assert isinstance(first, UpstreamSuccess)
    assert first == second
    low, high = first.payload["data"]["70pc_range"]
    assert low < first.payload["data"]["average"] < high


def test_undecodable_body_is_network_failure():
    def handler(request):
        return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip")

    resp = _fetch(_client(handler))
    assert isinstance(resp, UpstreamNetworkFailure)


def test_redirect_loop_is_network_failure(monkeypatch):
    client = _client(lambda r: httpx.Response(200, json={"status": "success"}))

    async def redirect_loop(endpoint, params):
        raise httpx.TooManyRedirects(
            "Exceeded maximum allowed redirects.", request=httpx.Request("GET", "https://api.example.test/")
        )

    monkeypatch.setattr(client, "_get", redirect_loop)
    assert isinstance(_fetch(client), UpstreamNetworkFailure)


def test_whole_call_is_bounded_by_timeout():
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json={"status": "success"})

    client = HttpPropertyData("https://api.example.test", "secret", timeout=0.05,
                              transport=httpx.MockTransport(handler))
    assert isinstance(_fetch(client), UpstreamTimeout)


def test_rent_tiers_continue_past_undecodable_body():
    seen = []

    def handler(request):
        seen.append(request.url.params["postcode"])
        if len(seen) == 1:
            return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip")
        return httpx.Response(200, json={"status": "success", "rent": {"average": 1000}})

    request = ValuationRequest(
        postal_code="SW1A 1AA", property_type=PropertyType.FLAT, purpose=Purpose.RENT, bedrooms=2
    )
    result = asyncio.run(ValuationService(_client(handler)).value(request))
    assert seen == ["SW1A", "SW1"]
    assert result.average_rent == 1000
