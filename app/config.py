"""
Configuration management using Pydantic settings.
Handles the managed backend URL and public key, storefront defaults and environment variables.
"""

from pydantic import validator
from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application configuration
    app_name: str = "Marketplace Storefront API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    testing: bool = False

    # Managed backend configuration - required, there is no local database
    supabase_url: str
    supabase_anon_key: str

    # Optional local verification of backend-issued access tokens
    supabase_jwt_secret: Optional[str] = None
    supabase_jwt_audience: str = "authenticated"
    jwt_algorithm: str = "HS256"

    # Backend object names
    listings_table: str = "listings"
    profiles_table: str = "profiles"
    admin_status_rpc: str = "get_current_user_admin_status"
    supabase_storage_bucket: str = "listing-images"

    # Storefront defaults
    default_currency: str = "KSH"
    default_whatsapp_number: str = "+254712345678"

    # Image upload configuration
    max_images_per_listing: int = 10
    max_image_size: int = 5 * 1024 * 1024  # 5MB
    allowed_image_types: List[str] = ["image/jpeg", "image/png", "image/gif", "image/webp"]

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173", "http://localhost:8080"]
    session_cookie_name: str = "access_token"

    # Pagination defaults
    default_page_size: int = 20
    max_page_size: int = 100

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @validator("supabase_url", pre=True)
    def validate_supabase_url(cls, v):
        """Require an absolute http(s) backend URL without a trailing slash."""
        if not v or not str(v).strip():
            raise ValueError("SUPABASE_URL is required")
        v = str(v).strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("SUPABASE_URL must start with http:// or https://")
        return v

    @validator("supabase_anon_key", pre=True)
    def validate_supabase_anon_key(cls, v):
        """Require the public API key."""
        if not v or not str(v).strip():
            raise ValueError("SUPABASE_ANON_KEY is required")
        return str(v).strip()

    @validator("supabase_jwt_secret", pre=True)
    def empty_jwt_secret_is_none(cls, v):
        """Treat an empty secret as not configured."""
        if v is None or not str(v).strip():
            return None
        return v

    @validator("environment")
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing" or self.testing

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def verifies_tokens_locally(self) -> bool:
        """Access tokens are decoded locally when the JWT secret is known."""
        return self.supabase_jwt_secret is not None

    @property
    def supabase_host(self) -> str:
        """Backend host without scheme, safe to expose in health output."""
        return self.supabase_url.split("://", 1)[-1]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Missing SUPABASE_URL or SUPABASE_ANON_KEY raises here, which aborts startup.
    """
    return Settings()


# Global settings instance
settings = get_settings()
