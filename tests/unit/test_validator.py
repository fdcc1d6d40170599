"""Tests for inbound request validation."""

import pytest

from ukvaluation.core.errors import ValidationError
from ukvaluation.schemas import PropertyType, Purpose, ValuationPayload
from ukvaluation.services.validator import validate_request


def _payload(**overrides):
    body = {"postalCode": "SW1A 1AA", "propertyType": "flat", "purpose": "sale"}
    body.update(overrides)
    return ValuationPayload(**body)


class TestRequiredFields:

    @pytest.mark.parametrize("field", ["postalCode", "propertyType", "purpose"])
    def test_missing_field(self, field):
        with pytest.raises(ValidationError, match="Missing required fields"):
            validate_request(_payload(**{field: None}))

    def test_blank_string_counts_as_missing(self):
        with pytest.raises(ValidationError, match="Missing required fields"):
            validate_request(_payload(postalCode="   "))


class TestEnumerations:

    def test_unknown_property_type(self):
        with pytest.raises(ValidationError) as exc:
            validate_request(_payload(propertyType="castle"))
        assert "detached, semi-detached, terraced, flat, maisonette, bungalow" in exc.value.message
        assert exc.value.status_code == 400

    def test_unknown_purpose(self):
        with pytest.raises(ValidationError, match="Purpose must be 'sale' or 'rent'"):
            validate_request(_payload(purpose="lease"))


class TestBedrooms:

    def test_rent_requires_bedrooms(self):
        with pytest.raises(ValidationError, match="bedrooms"):
            validate_request(_payload(purpose="rent"))

    @pytest.mark.parametrize("bedrooms", ["0", "5", 5, "two", True, 2.5])
    def test_rent_rejects_out_of_range(self, bedrooms):
        with pytest.raises(ValidationError):
            validate_request(_payload(purpose="rent", bedrooms=bedrooms))

    @pytest.mark.parametrize("bedrooms,expected", [("3", 3), (3, 3), (" 1 ", 1)])
    def test_rent_accepts_strings_and_ints(self, bedrooms, expected):
        req = validate_request(_payload(purpose="rent", bedrooms=bedrooms))
        assert req.bedrooms == expected
        assert req.purpose is Purpose.RENT

    def test_sale_ignores_missing_bedrooms(self):
        req = validate_request(_payload())
        assert req.bedrooms is None
        assert req.property_type is PropertyType.FLAT


class TestFloorArea:

    def test_optional(self):
        assert validate_request(_payload(floorArea="")).floor_area is None

    def test_numeric_string(self):
        assert validate_request(_payload(floorArea="85.5")).floor_area == 85.5

    @pytest.mark.parametrize("area", ["-10", 0, "big"])
    def test_rejects_non_positive(self, area):
        with pytest.raises(ValidationError, match="Floor area"):
            validate_request(_payload(floorArea=area))


def test_postcode_is_not_normalized_here():
    # Recovery happens in the valuation service, after validation
    assert validate_request(_payload(postalCode="sw1a1aa")).postal_code == "sw1a1aa"
