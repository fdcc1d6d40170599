import math

# UK rental multipliers relative to the area average (national trends)
BEDROOM_MULTIPLIERS = {1: 0.8, 2: 1.0, 3: 1.3, 4: 1.6}

def _round_half_up(value: float) -> int:
    # Built-in round() is banker's rounding; rents round .5 upwards
    return int(math.floor(value + 0.5))

def _format_pounds(value: float) -> str:
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")

def is_adjustable(base_rent: float, bedrooms: int) -> bool:
    """False when the scaled rent would not be a finite number."""
    return math.isfinite(base_rent * BEDROOM_MULTIPLIERS.get(bedrooms, 1.0))

def adjust(base_rent: float, bedrooms: int) -> tuple[int, str]:
    """
    Scale an area-average monthly rent to the requested bedroom count.

    Returns the adjusted rent (whole pounds) and a note explaining which
    average it was derived from. Unknown bedroom counts keep the average.
    Raises ValueError when the result is not finite (see is_adjustable).
    """
    if not is_adjustable(base_rent, bedrooms):
        raise ValueError(f"Rent {base_rent!r} cannot be scaled for {bedrooms} bedrooms")
    multiplier = BEDROOM_MULTIPLIERS.get(bedrooms, 1.0)
    adjusted = _round_half_up(base_rent * multiplier)
    note = f"Adjusted from area average (£{_format_pounds(base_rent)}) for a {bedrooms}-bedroom property."
    return adjusted, note
