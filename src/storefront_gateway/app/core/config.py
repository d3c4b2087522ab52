"""
Storefront Gateway - Configuration
Configuration management for the dashboard API gateway.
"""

import logging
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """API Gateway configuration settings."""

    # Application settings
    app_name: str = Field(default="Storefront Gateway")
    app_version: str = Field(default="0.1.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # Server settings
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    reload: bool = Field(default=True)

    # Seed the in-memory catalog with the dashboard's placeholder products
    demo_catalog: bool = Field(default=True)

    # CORS settings
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"]
    )
    cors_allow_credentials: bool = Field(default=True)

    # Logging settings
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=".env", env_prefix="GATEWAY_", case_sensitive=False, extra="ignore")


# Global settings instance
settings = Settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)
logger.info(f"Storefront gateway configuration loaded for {settings.environment} environment")
