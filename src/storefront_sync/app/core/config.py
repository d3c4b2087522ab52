"""
Storefront Sync - Library Configuration

Centralized configuration for the credential, adapter and synchronization
components. Provides type-safe settings with environment variable integration.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Storefront sync configuration settings."""

    # Application settings
    app_name: str = Field(default="Storefront Sync")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Storage settings
    storage_backend: str = Field(default="memory")  # memory, redis
    redis_host: str = Field(default="redis")
    redis_port: int = Field(default=6379)
    redis_password: Optional[str] = Field(default=None)
    redis_db: int = Field(default=0)
    redis_key_prefix: str = Field(default="")

    # OAuth settings
    oauth_client_id: str = Field(default="DEMO_CLIENT_ID")
    oauth_client_secret: Optional[str] = Field(default=None)
    oauth_redirect_base_url: str = Field(default="http://localhost:3000")
    oauth_verify_state: bool = Field(default=True)
    token_client: str = Field(default="simulated")  # simulated, http
    token_ttl_seconds: int = Field(default=3600)

    # Optional Fernet key for credentials at rest
    credential_encryption_key: Optional[str] = Field(default=None)

    # Sync settings
    default_sync_interval: int = Field(default=60)  # minutes
    min_sync_interval: int = Field(default=15)  # minutes

    # Adapter settings
    adapter_mode: str = Field(default="simulated")  # simulated, live
    fault_seed: Optional[int] = Field(default=None)
    latency_scale: float = Field(default=1.0)
    http_timeout_seconds: int = Field(default=30)
    http_max_retries: int = Field(default=3)
    webhook_callback_url: str = Field(default="http://localhost:8000/api/v1/webhooks")

    # Square settings
    square_api_url: str = Field(default="https://connect.squareup.com/v2")
    square_api_version: str = Field(default="2023-09-25")
    square_location_id: Optional[str] = Field(default=None)
    square_currency: str = Field(default="GBP")

    # Shopify settings
    shopify_shop_domain: Optional[str] = Field(default=None)
    shopify_api_version: str = Field(default="2024-01")
    shopify_location_id: Optional[int] = Field(default=None)

    # Logging settings
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STOREFRONT_",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
