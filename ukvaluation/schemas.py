from enum import Enum
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

class PropertyType(str, Enum):
    DETACHED = "detached"
    SEMI_DETACHED = "semi-detached"
    TERRACED = "terraced"
    FLAT = "flat"
    MAISONETTE = "maisonette"
    BUNGALOW = "bungalow"

class Purpose(str, Enum):
    SALE = "sale"
    RENT = "rent"

NA = "N/A"

class ValuationPayload(BaseModel):
    """
    Inbound JSON body as posted by the form. Fields are untyped here;
    services.validator turns them into a ValuationRequest.
    """
    model_config = ConfigDict(extra="ignore")

    postalCode: Optional[Any] = None
    propertyType: Optional[Any] = None
    purpose: Optional[Any] = None
    bedrooms: Optional[Any] = None
    floorArea: Optional[Any] = None

class ValuationRequest(BaseModel):
    """Validated request handed to the valuation service."""
    model_config = ConfigDict(frozen=True)

    postal_code: str
    property_type: PropertyType
    purpose: Purpose
    bedrooms: Optional[Literal[1, 2, 3, 4]] = None
    floor_area: Optional[float] = Field(default=None, gt=0)

class SaleValuation(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["sale"] = "sale"
    postcode: str
    property_type_used: str = Field(alias="propertyTypeUsed")
    used_type: str = Field(alias="usedType")
    average: Union[int, float, str] = NA
    range70: list[Union[int, float]] = Field(default_factory=list)
    range90: list[Union[int, float]] = Field(default_factory=list)
    points_analysed: int = Field(default=0, ge=0, alias="pointsAnalysed")
    note: Optional[str] = None

class RentValuation(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["rent"] = "rent"
    postcode: str
    rental_demand: Any = Field(default=NA, alias="rentalDemand")
    total_for_rent: Any = Field(default=NA, alias="totalForRent")
    days_on_market: Any = Field(default=NA, alias="daysOnMarket")
    months_of_inventory: Any = Field(default=NA, alias="monthsOfInventory")
    average_rent: Union[int, float, str] = Field(default=NA, alias="averageRent")
    original_average_rent: Union[int, float, str] = Field(default=NA, alias="originalAverageRent")
    yield_: Any = Field(default=NA, alias="yield")
    note: Optional[str] = None

ValuationResult = Union[SaleValuation, RentValuation]

class ErrorResponse(BaseModel):
    error: str
    code: str
