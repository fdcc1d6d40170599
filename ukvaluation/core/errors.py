"""Error taxonomy for the valuation service.

Services raise these; ``main.py`` turns them into ``{error, code}`` JSON
envelopes with the matching HTTP status.
"""

from __future__ import annotations


class ValuationServiceError(Exception):
    """Base class for every client-visible valuation failure."""

    status_code: int = 500
    code: str = "upstream_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ValuationServiceError):
    """A required field is missing or holds a value outside its enumeration."""

    status_code = 400
    code = "validation_error"


class PostcodeFormatError(ValuationServiceError):
    """Postcode could not be recovered by normalization or auto-formatting."""

    status_code = 400
    code = "postcode_format"


class NoDataAvailable(ValuationServiceError):
    """Every fallback tier for the requested purpose came back unusable."""

    status_code = 404
    code = "no_data"


class UpstreamUnexpected(ValuationServiceError):
    """Provider or transport failure outside the fallback policy."""

    status_code = 500
    code = "upstream_error"

    def __init__(self, message: str = "Failed to fetch valuation. Please try again later."):
        super().__init__(message)
