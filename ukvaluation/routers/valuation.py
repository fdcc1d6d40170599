import logging
from typing import Union
from fastapi import APIRouter, Depends
from ..schemas import ValuationPayload, SaleValuation, RentValuation, ErrorResponse
from ..services.valuation_service import ValuationService
from ..services.validator import validate_request
from ..data.propertydata_client import market_data_client

logger = logging.getLogger(__name__)

router = APIRouter()

def service_dep() -> ValuationService:
    # Stateless: a fresh gateway per request keeps requests isolated
    return ValuationService(market_data_client())

@router.post(
    "/valuation",
    response_model=Union[SaleValuation, RentValuation],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def post_valuation(
    body: ValuationPayload,
    svc: ValuationService = Depends(service_dep),
):
    logger.info("Incoming valuation request: %s", body.model_dump(exclude_none=True))
    request = validate_request(body)
    return await svc.value(request)
