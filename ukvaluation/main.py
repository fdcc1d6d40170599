import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Routers
from .routers.valuation import router as valuation_router

# Core modules
from .core.config import settings
from .core.errors import ValuationServiceError, UpstreamUnexpected
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint

logger = logging.getLogger(__name__)

def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})

def warn_on_missing_credentials() -> None:
    """Process-wide startup diagnostics; requests still run (and fail upstream)."""
    if settings.MARKET_DATA_PROVIDER != "mock" and not settings.PROPERTYDATA_API_KEY:
        logger.warning("PROPERTYDATA_API_KEY is not set; upstream calls will be rejected")

def create_app() -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    """
    configure_logging()  # Set up JSON logs + request-id filter
    warn_on_missing_credentials()

    app = FastAPI(
        title="UK Property Valuation API",
        version="1.0.0",
        description="Sale and rent estimates for UK postcodes from PropertyData market lookups.",
    )

    # CORS: allow the static form to call the API.
    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    # Observability middlewares
    app.add_middleware(CorrelationIdMiddleware)  # Adds/propagates X-Request-Id
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)       # Records req/latency metrics

    # Error envelopes: callers only ever see {"error": ..., "code": ...}
    @app.exception_handler(ValuationServiceError)
    async def valuation_error_handler(request: Request, exc: ValuationServiceError):
        return _error(exc.status_code, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def body_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request body: %s", exc.errors())
        return _error(400, "Request body must be a JSON object", "validation_error")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unexpected error in %s %s", request.method, request.url.path)
        fallback = UpstreamUnexpected()
        return _error(fallback.status_code, fallback.message, fallback.code)

    # Meta routes
    @app.get("/api/health", tags=["meta"])
    def health():
        return {"status": "ok"}

    @app.get("/api/ping", tags=["meta"])
    def ping():
        return {"pong": True}

    if settings.PROMETHEUS_ENABLED:
        # Standard Prometheus scrape endpoint
        app.add_route("/api/metrics", metrics_endpoint, methods=["GET"])

    # Business routes
    app.include_router(valuation_router, prefix="/api", tags=["valuation"])

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
