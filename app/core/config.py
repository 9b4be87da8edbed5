"""
Application configuration settings.
"""
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_reload: bool = Field(default=False)

    # Database
    database_url: str = Field(...)

    # Identity provider (issues the bearer tokens we verify)
    auth_jwt_secret: str = Field(..., description="Shared secret used to sign provider JWTs")
    auth_jwt_algorithm: str = Field(default="HS256")
    auth_jwt_audience: Optional[str] = Field(default="authenticated")

    # Generation pipeline collaborators
    generation_service_url: str = Field(default="http://localhost:8100")
    write_service_url: str = Field(default="http://localhost:8100")
    generation_service_api_key: Optional[str] = Field(default=None)
    generation_service_timeout: float = Field(default=30.0)

    # Workflow client
    workflow_api_url: str = Field(default="http://localhost:8000/v1")
    generation_poll_interval: float = Field(default=5.0, gt=0)

    # Generation queue
    queue_max_attempts: int = Field(default=3, ge=1)

    # Webhooks
    webhook_timeout: float = Field(default=10.0)

    # Celery
    celery_broker_url: str = Field(default="redis://localhost:6379/1")
    celery_result_backend: str = Field(default="redis://localhost:6379/2")

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_calls: int = Field(default=100)
    rate_limit_period: int = Field(default=60)

    # CORS
    cors_origins: str = Field(default="http://localhost:3000,https://localhost:3000")
    cors_allow_credentials: bool = Field(default=True)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
