import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import pydantic

from ..core import postcode as pc
from ..core.config import settings
from ..core.errors import NoDataAvailable, UpstreamUnexpected
from ..core.metrics import VALUATIONS
from ..core.utils import as_number
from ..data.base import (
    DEMAND_RENT, LOCAL_MARKET, SOLD_PRICES,
    MarketDataClient, RentMarketPayload, SoldPricesPayload,
    UpstreamError, UpstreamResponse, UpstreamSuccess, outcome_name,
)
from ..models.rent_adjuster import adjust, is_adjustable
from ..schemas import NA, Purpose, RentValuation, SaleValuation, ValuationRequest, ValuationResult

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ValuationContext:
    """Everything a fallback attempt may key its query on."""
    request: ValuationRequest
    postcode: str
    outcode: str

QueryBuilder = Callable[[ValuationContext], Optional[dict]]
Guard = Callable[[Optional[UpstreamResponse]], bool]

def _is_success(resp: UpstreamResponse) -> bool:
    return isinstance(resp, UpstreamSuccess)

@dataclass(frozen=True)
class FallbackAttempt:
    """
    One tier of the fallback policy.

    build_query returns None when the tier does not apply to this request
    (e.g. no parent outcode). `when`, if set, must accept the previous
    tier's response for this tier to run at all.
    """
    label: str
    endpoint: str
    build_query: QueryBuilder
    accepts: Callable[[UpstreamResponse], bool] = _is_success
    when: Optional[Guard] = None

@dataclass(frozen=True)
class FallbackOutcome:
    attempt: Optional[FallbackAttempt]  # tier that produced usable data, if any
    response: Optional[UpstreamResponse]  # last response seen
    tried: tuple = ()  # labels of the tiers actually called

def _parent_outcode_query(ctx: ValuationContext) -> Optional[dict]:
    parent = pc.parent_outcode(ctx.outcode)
    return {"postcode": parent} if parent else None

def _sale_query(ctx: ValuationContext, with_type: bool) -> dict:
    query = {"postcode": ctx.postcode}
    if with_type:
        query["type"] = ctx.request.property_type.value
    query["max_age"] = settings.SALE_MAX_AGE_MONTHS
    return query

def _type_unsupported(prev: Optional[UpstreamResponse]) -> bool:
    return isinstance(prev, UpstreamError) and prev.type_unsupported

RENT_ATTEMPTS: Sequence[FallbackAttempt] = (
    FallbackAttempt("outcode", DEMAND_RENT, lambda ctx: {"postcode": ctx.outcode}),
    FallbackAttempt("parent_outcode", DEMAND_RENT, _parent_outcode_query),
    FallbackAttempt("local_market", LOCAL_MARKET, lambda ctx: {"postcode": ctx.postcode}),
)

SALE_ATTEMPTS: Sequence[FallbackAttempt] = (
    FallbackAttempt("typed", SOLD_PRICES, lambda ctx: _sale_query(ctx, with_type=True)),
    FallbackAttempt(
        "all_types", SOLD_PRICES, lambda ctx: _sale_query(ctx, with_type=False),
        when=_type_unsupported,
    ),
)

async def run_fallbacks(
    gateway: MarketDataClient, attempts: Sequence[FallbackAttempt], ctx: ValuationContext
) -> FallbackOutcome:
    """
    Try each tier in order and stop at the first accepted response.
    Tiers are sequential: a tier only runs once the previous one is unusable.
    """
    last: Optional[UpstreamResponse] = None
    tried: list[str] = []
    for attempt in attempts:
        if attempt.when is not None and not attempt.when(last):
            logger.info("Skipping tier %s: guard not met after %s", attempt.label, outcome_name(last) if last else "none")
            break
        query = attempt.build_query(ctx)
        if query is None:
            logger.info("Skipping tier %s: not applicable to %s", attempt.label, ctx.postcode)
            continue
        last = await gateway.fetch(attempt.endpoint, query)
        tried.append(attempt.label)
        if attempt.accepts(last):
            logger.info("Tier %s (/%s) returned usable data", attempt.label, attempt.endpoint)
            return FallbackOutcome(attempt=attempt, response=last, tried=tuple(tried))
        logger.warning("Tier %s (/%s) unusable: %s", attempt.label, attempt.endpoint, outcome_name(last))
    return FallbackOutcome(attempt=None, response=last, tried=tuple(tried))

def _or_na(*values: Any) -> Any:
    # Provider fields are "missing" when absent, null, empty or zero
    for v in values:
        if v:
            return v
    return NA

def _range(values: Optional[list]) -> list:
    return list(values) if values and len(values) == 2 else []

class ValuationService:
    """
    Orchestrates:
      raw request → postcode recovery → fallback tiers over the gateway →
      payload validation → (rent) bedroom adjustment → result envelope
    """
    def __init__(self, gateway: MarketDataClient):
        self.gateway = gateway

    async def value(self, request: ValuationRequest) -> ValuationResult:
        full_postcode = pc.resolve(request.postal_code)
        ctx = ValuationContext(request=request, postcode=full_postcode, outcode=pc.outcode(full_postcode))
        logger.info("Valuing %s (%s, outcode %s) for %s",
                    ctx.postcode, request.property_type.value, ctx.outcode, request.purpose.value)

        if request.purpose is Purpose.RENT:
            return await self._value_rent(ctx)
        return await self._value_sale(ctx)

    async def _value_rent(self, ctx: ValuationContext) -> RentValuation:
        outcome = await run_fallbacks(self.gateway, RENT_ATTEMPTS, ctx)
        VALUATIONS.labels(purpose="rent", source=outcome.attempt.label if outcome.attempt else "none").inc()
        if outcome.attempt is None:
            logger.error("All rent data sources failed for %s", ctx.postcode)
            raise NoDataAvailable("No rental market data available for this area. Try a nearby postcode.")

        data = self._parse(RentMarketPayload, outcome.response)
        base_rent = data.rent.average if data.rent else None
        base = as_number(base_rent)
        bedrooms = ctx.request.bedrooms or 0

        average_rent: Any = NA
        note = None
        if base is not None and is_adjustable(base, bedrooms):
            average_rent, note = adjust(base, bedrooms)
        elif base is not None:
            logger.warning("Ignoring out-of-range rent average %r for %s", base_rent, ctx.postcode)

        result = RentValuation(
            postcode=data.postcode or ctx.postcode,
            rental_demand=_or_na(data.rental_demand_rating, data.demand_rating),
            total_for_rent=_or_na(data.total_for_rent),
            days_on_market=_or_na(data.days_on_market),
            months_of_inventory=_or_na(data.months_of_inventory),
            average_rent=average_rent,
            original_average_rent=_or_na(base_rent),
            yield_=_or_na(data.yield_.average if data.yield_ else None),
            note=note,
        )
        logger.info("Rent result for %s: %s", ctx.postcode, result.model_dump(by_alias=True))
        return result

    async def _value_sale(self, ctx: ValuationContext) -> SaleValuation:
        requested = ctx.request.property_type.value
        outcome = await run_fallbacks(self.gateway, SALE_ATTEMPTS, ctx)
        VALUATIONS.labels(purpose="sale", source=outcome.attempt.label if outcome.attempt else "none").inc()
        if outcome.attempt is None:
            last = outcome.response
            if "all_types" not in outcome.tried and not isinstance(last, UpstreamError):
                # Timeout / network failure before the provider could answer
                logger.error("Sold-prices lookup for %s failed: %s", ctx.postcode, outcome_name(last))
                raise UpstreamUnexpected()
            logger.error("No sale data for %s in %s (%s)", requested, ctx.postcode, outcome_name(last))
            raise NoDataAvailable(
                f"No recent sale data for {requested} properties in {ctx.postcode}. "
                "This area may not have this property type."
            )

        substituted = outcome.attempt.label == "all_types"
        if substituted:
            logger.warning("Property type '%s' not available in %s; using all types", requested, ctx.postcode)

        data = self._parse(SoldPricesPayload, outcome.response)
        block = data.data
        result = SaleValuation(
            postcode=data.postcode or ctx.postcode,
            property_type_used=f"{requested} (not found – showing area average)" if substituted else requested,
            used_type="all" if substituted else requested,
            average=_or_na(block.average if block else None),
            range70=_range(block.range_70 if block else None),
            range90=_range(block.range_90 if block else None),
            points_analysed=max(0, block.points_analysed or 0) if block else 0,
            note=(
                f'No recent sales for "{requested}" in this postcode. Showing overall area average.'
                if substituted else None
            ),
        )
        logger.info("Sale result for %s: %s", ctx.postcode, result.model_dump(by_alias=True))
        return result

    @staticmethod
    def _parse(model, resp: UpstreamResponse):
        try:
            return model.model_validate(resp.payload)
        except pydantic.ValidationError as exc:
            logger.error("Malformed %s payload: %s", model.__name__, exc)
            raise UpstreamUnexpected() from exc
