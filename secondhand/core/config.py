"""
Application configuration

SECURITY: Defaults are fail-safe for production.
- DEBUG defaults to False
- Supabase credentials have no usable defaults in production
- Runtime validation catches insecure configurations
"""
import json
import logging
import os
from typing import List, Union

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = ["*"]

# Fixed set of listing categories offered by the client
LISTING_CATEGORIES = [
    "Electronics",
    "Clothing",
    "Home & Garden",
    "Books",
    "Sports",
    "Toys & Games",
    "Furniture",
    "Other",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App - defaults are PRODUCTION safe
    APP_NAME: str = "Secondhand Marketplace"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # Every route is mounted under this prefix
    API_PREFIX: str = "/make-server"

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: Union[str, List[str]] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            if not v or v.strip() == "":
                return DEFAULT_CORS_ORIGINS
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("API_PREFIX", mode="before")
    @classmethod
    def normalize_prefix(cls, v):
        if not v:
            return ""
        v = "/" + str(v).strip("/")
        return "" if v == "/" else v

    # Entity store (Redis). Empty URL = in-memory store (development/tests only)
    REDIS_URL: str = ""
    KV_NAMESPACE: str = "kv_store"

    # Identity provider (Supabase Auth / GoTrue)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_ANON_KEY: str = ""
    AUTH_TIMEOUT_SECONDS: float = 10.0

    # Storage (S3 compatible)
    S3_BUCKET: str = "secondhand-images"
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_ENDPOINT: str = ""  # Leave empty for AWS, set for R2/MinIO
    MAX_IMAGE_UPLOAD_BYTES: int = 5 * 1024 * 1024
    IMAGE_URL_EXPIRY_SECONDS: int = 7 * 24 * 3600  # SigV4 presign ceiling

    STORAGE_INIT_ON_STARTUP: bool = True

    # Listings
    ENFORCE_LISTING_CATEGORIES: bool = True
    DEMO_USERNAME_MARKER: str = "demo_user_"

    # Checkout batches left pending this long are resumed on startup
    CHECKOUT_RECONCILE_ON_STARTUP: bool = True
    CHECKOUT_RECONCILE_AFTER_SECONDS: int = 300

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_AUTH: str = "5/minute"
    RATE_LIMIT_CHECKOUT: str = "10/minute"

    @model_validator(mode="after")
    def validate_production_config(self):
        """Runtime validation to catch insecure production configurations."""
        if self.ENVIRONMENT == "production":
            errors = []

            if self.DEBUG:
                errors.append(
                    "DEBUG=True is forbidden in production. "
                    "Set DEBUG=false or ENVIRONMENT=development"
                )

            if not self.SUPABASE_URL or not self.SUPABASE_SERVICE_ROLE_KEY:
                errors.append(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required in production."
                )

            if not self.REDIS_URL:
                errors.append(
                    "REDIS_URL is required in production. The in-memory store is not shared "
                    "between instances and is lost on restart."
                )

            for origin in self.CORS_ORIGINS:
                if origin == "*":
                    errors.append("Wildcard '*' CORS origin is forbidden in production")
                elif "localhost" in origin or "127.0.0.1" in origin:
                    errors.append(f"Localhost CORS origin '{origin}' is forbidden in production")

            if errors:
                raise ValueError(
                    "PRODUCTION SECURITY VIOLATIONS:\n" + "\n".join(f"  - {e}" for e in errors)
                )

        return self


try:
    settings = Settings()
except Exception:
    # In development, allow fallback defaults
    if os.getenv("ENVIRONMENT", "development") == "development":
        logger.warning(
            "Settings validation failed, using development defaults. "
            "Set SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY and REDIS_URL in .env file."
        )
        os.environ.setdefault("ENVIRONMENT", "development")
        settings = Settings(ENVIRONMENT="development")
    else:
        raise
