"""Pytest fixtures for the valuation API tests."""

import os
import sys

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ukvaluation.data.base import UpstreamResponse  # noqa: E402


class ScriptedGateway:
    """In-memory market-data client replaying canned responses in call order."""

    def __init__(self, *responses: UpstreamResponse):
        self.responses = list(responses)
        self.calls: list[tuple[str, dict]] = []

    async def fetch(self, endpoint, query):
        self.calls.append((endpoint, dict(query)))
        if not self.responses:
            raise AssertionError(f"Unexpected extra call to /{endpoint} with {query}")
        return self.responses.pop(0)


@pytest.fixture
def scripted_gateway():
    """Factory: scripted_gateway(resp1, resp2, ...)."""
    return ScriptedGateway


@pytest.fixture
def rent_payload():
    """demand-rent body as returned by PropertyData."""
    return {
        "status": "success",
        "postcode": "SW1A",
        "rental_demand_rating": "Seller's market",
        "total_for_rent": 412,
        "days_on_market": 31,
        "months_of_inventory": 1.8,
        "rent": {"average": 1000},
        "yield": {"average": "3.9%"},
    }


@pytest.fixture
def sold_prices_payload():
    """sold-prices body as returned by PropertyData."""
    return {
        "status": "success",
        "postcode": "SW1A 1AA",
        "data": {
            "average": 500000,
            "70pc_range": [400000, 600000],
            "90pc_range": [350000, 700000],
            "points_analysed": 42,
        },
    }
