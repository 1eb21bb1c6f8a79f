"""
Configuration for the ledger Query API.

Uses pydantic-settings for environment variable loading.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Query API configuration loaded from environment."""

    # Bind address
    host: str = Field(default="0.0.0.0", description="Query API bind host")
    port: int = Field(default=3002, ge=1, le=65535, description="Query API bind port")

    # Path layout, /x-nmos/query/<api_version>/
    api_version: str = Field(default="v1.0", description="Query API version path segment")

    # CORS
    cors_max_age: int = Field(default=3600, description="Access-Control-Max-Age in seconds")

    model_config = {"env_prefix": "LEDGER_QUERY_"}

    @property
    def base_path(self) -> str:
        """Mount point of the resource routes."""
        return f"/x-nmos/query/{self.api_version}"
