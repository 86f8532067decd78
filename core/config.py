"""
Service configuration.
"""
import json
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator


class RedisSettings(BaseModel):
    url: Optional[str] = None
    max_connections: int = 10
    default_ttl: int = 300
    namespace: str = "paystack-payments"


class Settings(BaseSettings):
    """Service settings"""

    PROJECT_NAME: str = Field(default="Paystack Payment Provider")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    redis: RedisSettings = Field(default_factory=RedisSettings)

    CORS_ORIGINS: list = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # request body logging
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """Accept a JSON array or a comma separated string."""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                try:
                    arr = json.loads(s)
                except json.JSONDecodeError:
                    arr = None
                if isinstance(arr, list):
                    return arr
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
