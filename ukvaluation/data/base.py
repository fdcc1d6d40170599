from typing import Any, Mapping, Optional, Protocol, Union
from dataclasses import dataclass, field
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.utils import as_number

# ----- Endpoints (path segment on the provider) -----

DEMAND_RENT = "demand-rent"
LOCAL_MARKET = "local-market"
SOLD_PRICES = "sold-prices"

# ----- Classified outcome of one upstream call -----

@dataclass(frozen=True)
class UpstreamSuccess:
    payload: Mapping[str, Any]

@dataclass(frozen=True)
class UpstreamError:
    code: str
    message: str
    # Provider says the property-type filter has no data for this area
    type_unsupported: bool = False

@dataclass(frozen=True)
class UpstreamTimeout:
    pass

@dataclass(frozen=True)
class UpstreamNetworkFailure:
    reason: str = field(default="")

UpstreamResponse = Union[UpstreamSuccess, UpstreamError, UpstreamTimeout, UpstreamNetworkFailure]

def outcome_name(resp: UpstreamResponse) -> str:
    """Short label for logs and metrics."""
    if isinstance(resp, UpstreamSuccess):
        return "success"
    if isinstance(resp, UpstreamError):
        return "error"
    if isinstance(resp, UpstreamTimeout):
        return "timeout"
    return "network_failure"

# ----- Provider payloads (validated, every field optional) -----
#
# Off-shape optional fields become None instead of failing the whole payload.

def _scalar(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    return value

def _mapping(value: Any) -> Any:
    return value if isinstance(value, dict) else None

def _text(value: Any) -> Any:
    return value if isinstance(value, str) else None

def _pair(value: Any) -> Any:
    if isinstance(value, (list, tuple)) and len(value) == 2 and all(as_number(v) is not None for v in value):
        return list(value)
    return None

class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

class AverageBlock(_Payload):
    average: Optional[Union[int, float, str]] = None

    @field_validator("average", mode="before")
    @classmethod
    def coerce_average(cls, value: Any) -> Any:
        return _scalar(value)

class RentMarketPayload(_Payload):
    """demand-rent / local-market response body."""
    postcode: Optional[str] = None
    rental_demand_rating: Any = None
    demand_rating: Any = None
    total_for_rent: Any = None
    days_on_market: Any = None
    months_of_inventory: Any = None
    rent: Optional[AverageBlock] = None
    yield_: Optional[AverageBlock] = Field(default=None, alias="yield")

    @field_validator("postcode", mode="before")
    @classmethod
    def coerce_postcode(cls, value: Any) -> Any:
        return _text(value)

    @field_validator("rent", "yield_", mode="before")
    @classmethod
    def coerce_block(cls, value: Any) -> Any:
        # e.g. "yield": "4.1%" instead of {"average": ...}
        return _mapping(value)

class SoldPricesData(_Payload):
    average: Optional[Union[int, float, str]] = None
    range_70: Optional[list[Union[int, float]]] = Field(default=None, alias="70pc_range")
    range_90: Optional[list[Union[int, float]]] = Field(default=None, alias="90pc_range")
    points_analysed: Optional[int] = None

    @field_validator("average", mode="before")
    @classmethod
    def coerce_average(cls, value: Any) -> Any:
        return _scalar(value)

    @field_validator("range_70", "range_90", mode="before")
    @classmethod
    def coerce_range(cls, value: Any) -> Any:
        return _pair(value)

    @field_validator("points_analysed", mode="before")
    @classmethod
    def coerce_points(cls, value: Any) -> Any:
        number = as_number(value)
        return int(number) if number is not None and number > 0 else None

class SoldPricesPayload(_Payload):
    """sold-prices response body."""
    postcode: Optional[str] = None
    data: Optional[SoldPricesData] = None

    @field_validator("postcode", mode="before")
    @classmethod
    def coerce_postcode(cls, value: Any) -> Any:
        return _text(value)

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, value: Any) -> Any:
        return _mapping(value)

# ----- Protocol (interface) -----

class MarketDataClient(Protocol):
    async def fetch(self, endpoint: str, query: Mapping[str, Any]) -> UpstreamResponse: ...
