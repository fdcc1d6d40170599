import logging
from typing import Any

from ..core.errors import ValidationError
from ..schemas import PropertyType, Purpose, ValuationPayload, ValuationRequest

logger = logging.getLogger(__name__)

PROPERTY_TYPES = [t.value for t in PropertyType]
BEDROOM_CHOICES = {"1": 1, "2": 2, "3": 3, "4": 4}

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())

def _parse_bedrooms(value: Any) -> int | None:
    # Form posts "3"; API clients may post 3
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value in BEDROOM_CHOICES.values() else None
    if isinstance(value, str):
        return BEDROOM_CHOICES.get(value.strip())
    return None

def _parse_floor_area(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError("Floor area must be a positive number")
    try:
        area = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Floor area must be a positive number") from None
    if not area > 0 or area == float("inf"):
        raise ValidationError("Floor area must be a positive number")
    return area

def validate_request(body: ValuationPayload) -> ValuationRequest:
    """
    Check required fields and enumerations before any postcode work or
    upstream call. Raises ValidationError with a field-specific message.
    """
    if _is_blank(body.postalCode) or _is_blank(body.propertyType) or _is_blank(body.purpose):
        logger.info("Rejected request: missing required fields")
        raise ValidationError("Missing required fields: postalCode, propertyType, purpose")
    if not isinstance(body.postalCode, str):
        raise ValidationError("postalCode must be a string")

    if body.propertyType not in PROPERTY_TYPES:
        logger.info("Rejected request: invalid property type %r", body.propertyType)
        raise ValidationError(f"Invalid property type. Must be one of: {', '.join(PROPERTY_TYPES)}")

    if body.purpose not in (Purpose.SALE.value, Purpose.RENT.value):
        logger.info("Rejected request: invalid purpose %r", body.purpose)
        raise ValidationError("Purpose must be 'sale' or 'rent'")

    bedrooms = None
    if body.purpose == Purpose.RENT.value:
        bedrooms = _parse_bedrooms(body.bedrooms)
        if bedrooms is None:
            logger.info("Rejected request: missing or invalid bedrooms for rent")
            raise ValidationError("Number of bedrooms (1-4) is required for rental estimates")
    elif not _is_blank(body.bedrooms):
        # Optional for sales; kept only when it is a valid choice
        bedrooms = _parse_bedrooms(body.bedrooms)

    floor_area = None
    if not _is_blank(body.floorArea):
        floor_area = _parse_floor_area(body.floorArea)

    return ValuationRequest(
        postal_code=body.postalCode,
        property_type=PropertyType(body.propertyType),
        purpose=Purpose(body.purpose),
        bedrooms=bedrooms,
        floor_area=floor_area,
    )
