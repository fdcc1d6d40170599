import asyncio
import logging
from typing import Any, Mapping
from .base import (
    DEMAND_RENT, LOCAL_MARKET, SOLD_PRICES,
    MarketDataClient, UpstreamResponse, UpstreamSuccess, UpstreamError,
    UpstreamTimeout, UpstreamNetworkFailure, outcome_name,
)
from ..core.config import settings
from ..core.metrics import UPSTREAM_CALLS
from ..core.utils import fnv1a_32, seeded_rand, money_band
import httpx

logger = logging.getLogger(__name__)

# PropertyData answers "type not available here" with this code
TYPE_UNSUPPORTED_CODE = "902"

def is_type_unsupported(code: str, message: str) -> bool:
    return code == TYPE_UNSUPPORTED_CODE and "type" in message.lower()

def classify_error_body(body: Any, http_status: int) -> UpstreamError | None:
    """
    Provider-level error from a response body ({"status": "error", ...}).
    Returns None when the body is not an error envelope.
    """
    if not isinstance(body, dict) or body.get("status") != "error":
        return None
    code = str(body.get("code") or http_status)
    message = str(body.get("message") or "")
    return UpstreamError(code=code, message=message, type_unsupported=is_type_unsupported(code, message))

class HttpPropertyData(MarketDataClient):
    """
    PropertyData API over HTTP. One GET per fetch, bounded by the configured
    timeout, no retries: fallback policy lives in the valuation service.
    """
    def __init__(self, base_url: str, api_key: str | None, timeout: float = 10.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport  # tests inject httpx.MockTransport

    async def fetch(self, endpoint: str, query: Mapping[str, Any]) -> UpstreamResponse:
        resp = await self._call(endpoint, query)
        UPSTREAM_CALLS.labels(endpoint=endpoint, outcome=outcome_name(resp)).inc()
        return resp

    async def _get(self, endpoint: str, params: Mapping[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.get(f"{self.base_url}/{endpoint}", params=params)

    async def _call(self, endpoint: str, query: Mapping[str, Any]) -> UpstreamResponse:
        # Never log the key
        logger.info("Calling PropertyData /%s with %s", endpoint, dict(query))
        params = {"key": self.api_key or "", **query}
        try:
            # httpx timeouts are per phase; wait_for bounds the whole call
            r = await asyncio.wait_for(self._get(endpoint, params), self.timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.error("PropertyData /%s timed out after %ss", endpoint, self.timeout)
            return UpstreamTimeout()
        except httpx.TransportError as exc:
            logger.error("PropertyData /%s network failure: %s", endpoint, exc)
            return UpstreamNetworkFailure(reason=str(exc))
        except httpx.RequestError as exc:
            # Undecodable body, redirect loop and other request-level failures
            logger.error("PropertyData /%s request failed: %s", endpoint, exc)
            return UpstreamNetworkFailure(reason=str(exc))

        try:
            body = r.json()
        except ValueError:
            body = None

        error = classify_error_body(body, r.status_code)
        if error is None and r.is_error:
            error = UpstreamError(code=str(r.status_code), message=r.text[:200])
        if error is None and not isinstance(body, dict):
            error = UpstreamError(code="invalid_json", message="Response body is not a JSON object")
        if error is not None:
            logger.error("PropertyData /%s error %s: %s", endpoint, error.code, error.message)
            return error

        logger.info("PropertyData /%s responded with status %s", endpoint, r.status_code)
        return UpstreamSuccess(payload=body)

class MockPropertyData(MarketDataClient):
    """
    Deterministic stand-in for local development without an API key.
    Payloads mirror the provider's field layout and are seeded from the
    postcode, so the same query always yields the same figures.
    """
    async def fetch(self, endpoint: str, query: Mapping[str, Any]) -> UpstreamResponse:
        postcode = str(query.get("postcode", ""))
        seed = fnv1a_32(f"{endpoint}:{postcode}:{query.get('type', 'all')}")
        if endpoint in (DEMAND_RENT, LOCAL_MARKET):
            r = seeded_rand(seed, 5)
            payload = {
                "status": "success",
                "postcode": postcode,
                "rental_demand_rating": ["Low", "Balanced", "High", "Very high"][int(r[0] * 4) % 4],
                "total_for_rent": 20 + int(r[1] * 400),
                "days_on_market": 10 + int(r[2] * 60),
                "months_of_inventory": round(0.5 + r[3] * 5, 1),
                "rent": {"average": 900 + int(r[4] * 2100)},
                "yield": {"average": f"{round(3 + r[0] * 4, 1)}%"},
            }
        elif endpoint == SOLD_PRICES:
            r = seeded_rand(seed, 2)
            average = 150_000 + int(r[0] * 850_000)
            payload = {
                "status": "success",
                "postcode": postcode,
                "data": {
                    "average": average,
                    "70pc_range": money_band(average, 0.15),
                    "90pc_range": money_band(average, 0.30),
                    "points_analysed": 5 + int(r[1] * 95),
                },
            }
        else:
            resp = UpstreamError(code="404", message=f"Unknown endpoint {endpoint}")
            UPSTREAM_CALLS.labels(endpoint=endpoint, outcome=outcome_name(resp)).inc()
            return resp
        UPSTREAM_CALLS.labels(endpoint=endpoint, outcome="success").inc()
        return UpstreamSuccess(payload=payload)

def market_data_client() -> MarketDataClient:
    """
    Factory picks mock or http based on env flags.
    """
    if settings.MARKET_DATA_PROVIDER == "mock":
        return MockPropertyData()
    return HttpPropertyData(
        settings.PROPERTYDATA_BASE_URL,
        settings.PROPERTYDATA_API_KEY,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
    )
