"""Configuration loader for the catalog query service.

Uses environment variables directly because Docker Compose loads both
shared and service-specific `.env` files.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), ".env"))

PRODUCTION_BASE_URL = "https://www.fashionandfriends.com/"
DEVELOPMENT_BASE_URL = "https://develop-pm.fashionandfriends.com/"


@dataclass
class CatalogQueryConfig:
    """Configuration for the catalog query service."""

    # OAuth1 credentials for the primary (store) API
    OAUTH_CONSUMER_KEY: str = os.getenv("OAUTH_CONSUMER_KEY", "")
    OAUTH_CONSUMER_SECRET: str = os.getenv("OAUTH_CONSUMER_SECRET", "")
    OAUTH_ACCESS_TOKEN: str = os.getenv("OAUTH_ACCESS_TOKEN", "")
    OAUTH_TOKEN_SECRET: str = os.getenv("OAUTH_TOKEN_SECRET", "")

    # "production" or "development"
    CATALOG_ENVIRONMENT: str = os.getenv("CATALOG_ENVIRONMENT", "production")
    PRIMARY_API_PATH: str = os.getenv("PRIMARY_API_PATH", "rest/V1/mobile/")
    # Requests addressed to this host are rewritten to the environment base URL
    PRIMARY_CANONICAL_HOST: str = os.getenv("PRIMARY_CANONICAL_HOST", "fashionandfriends.com")

    # Visual search (secondary) API
    VISUAL_SEARCH_DEFAULT_BASE_URL: str = os.getenv(
        "VISUAL_SEARCH_DEFAULT_BASE_URL", "https://eu-1.athenasearch.cloud/"
    )

    # HTTP
    HTTP_TIMEOUT_SECS: float = float(os.getenv("HTTP_TIMEOUT_SECS", 20.0))

    # Token policy
    TOKEN_REFRESH_MARGIN_SECS: int = int(os.getenv("TOKEN_REFRESH_MARGIN_SECS", "300"))
    TOKEN_FALLBACK_TTL_SECS: int = int(os.getenv("TOKEN_FALLBACK_TTL_SECS", str(365 * 24 * 60 * 60)))

    # Listing
    DEFAULT_CATEGORY_PARAM: str = os.getenv("DEFAULT_CATEGORY_PARAM", "category2")
    CUSTOMER_GROUP_ID: int = int(os.getenv("CUSTOMER_GROUP_ID", "0"))
    PREFER_CONSOLIDATED_CATEGORIES: bool = (
        os.getenv("PREFER_CONSOLIDATED_CATEGORIES", "false").lower() == "true"
    )

    # Session preferences storage - set to True to keep everything in process memory
    USE_IN_MEMORY_PREFERENCES: bool = os.getenv("USE_IN_MEMORY_PREFERENCES", "true").lower() == "true"
    PREFERENCES_KEY_PREFIX: str = os.getenv("PREFERENCES_KEY_PREFIX", "catalog-query:")

    # Redis configuration for session preferences
    REDIS_HOST: str = os.getenv("REDIS_HOST", "redis")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def primary_base_url_for(self, environment: str) -> str:
        """Environment base URL; unknown environments fall back to production"""
        if environment == "development":
            return DEVELOPMENT_BASE_URL
        return PRODUCTION_BASE_URL

    @property
    def PRIMARY_BASE_URL(self) -> str:
        """Get the environment base URL for the primary API"""
        return self.primary_base_url_for(self.CATALOG_ENVIRONMENT)

    @property
    def PRIMARY_API_BASE_URL(self) -> str:
        """Get the full base URL for primary API mobile endpoints"""
        return f"{self.PRIMARY_BASE_URL}{self.PRIMARY_API_PATH}"

    @property
    def REDIS_URL(self) -> str:
        """Get Redis connection URL"""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


# Create config instance
config = CatalogQueryConfig()
