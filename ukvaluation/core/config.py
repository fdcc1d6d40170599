import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    PORT: int = int(os.getenv("PORT", "5000"))

    # Market data provider
    MARKET_DATA_PROVIDER: str = os.getenv("MARKET_DATA_PROVIDER", "http")  # http | mock
    PROPERTYDATA_API_KEY: str | None = os.getenv("PROPERTYDATA_API_KEY")
    PROPERTYDATA_BASE_URL: str = os.getenv("PROPERTYDATA_BASE_URL", "https://api.propertydata.co.uk")
    UPSTREAM_TIMEOUT_SECONDS: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10"))

    # Sold-prices lookback window, in months
    SALE_MAX_AGE_MONTHS: int = int(os.getenv("SALE_MAX_AGE_MONTHS", "12"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
