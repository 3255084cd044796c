"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database (empty means in-memory stores)
    database_url: str = ""

    # Store
    price_decimals: int = 2
    prices_include_tax: bool = False
    currency: str = "USD"
    timezone: str = "UTC"

    # Product catalog seed (JSON list of products, empty for none)
    catalog_file: str = ""

    # Collections
    default_per_page: int = 10
    max_per_page: int = 100

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "STOREAPI_"


settings = Settings()
