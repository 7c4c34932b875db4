"""
Configuration Management

Centralized configuration using Pydantic Settings for type safety
and environment variable integration. Values are read from the process
environment and from a local ``.env`` file.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

load_dotenv()


_ENV_CONFIG = {
    "env_file": ".env",
    "env_file_encoding": "utf-8",
    "case_sensitive": True,
    "extra": "ignore",
}


class DatabaseSettings(BaseSettings):
    """Database configuration settings"""

    DATABASE_URL: str = Field(default="sqlite:///./hrportal.db")
    DB_ECHO: bool = Field(default=False)
    DB_POOL_SIZE: int = Field(default=10, ge=1)
    DB_MAX_OVERFLOW: int = Field(default=20, ge=0)
    DB_POOL_RECYCLE: int = Field(default=3600, ge=-1)
    DB_CONFLICT_RETRY_ATTEMPTS: int = Field(default=3, ge=1)

    model_config = _ENV_CONFIG

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


class CacheSettings(BaseSettings):
    """Cache backend configuration"""

    CACHE_BACKEND: str = Field(default="memory")
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    CACHE_NAMESPACE: str = Field(default="hrportal")
    HOLIDAY_CACHE_TTL_SECONDS: int = Field(default=3600, ge=0)

    model_config = _ENV_CONFIG

    @field_validator("CACHE_BACKEND")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("CACHE_BACKEND must be 'memory' or 'redis'")
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings"""

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")
    LOG_FILE: Optional[str] = Field(default=None)
    LOG_SQL_QUERIES: bool = Field(default=False)
    ENABLE_STRUCTURED_LOGGING: bool = Field(default=False)

    model_config = _ENV_CONFIG

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported LOG_LEVEL: {v}")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v


class WorkflowSettings(BaseSettings):
    """Approval workflow limits"""

    REJECTION_REASON_MIN_LENGTH: int = Field(default=10, ge=1)
    COMMENT_MAX_LENGTH: int = Field(default=2000, ge=1)
    FORM_DATA_MAX_LENGTH: int = Field(default=10000, ge=1)
    BULK_APPROVAL_LIMIT: int = Field(default=50, ge=1)
    DEFAULT_QUIZ_PASSING_SCORE: int = Field(default=70, ge=0, le=100)

    model_config = _ENV_CONFIG


class VacationSettings(BaseSettings):
    """Vacation entitlement rules"""

    DEFAULT_ANNUAL_DAYS: int = Field(default=26, ge=0)
    MAX_ON_DEMAND_DAYS: int = Field(default=4, ge=0)
    CIRCUMSTANTIAL_DAYS_PER_EVENT: int = Field(default=2, ge=0)
    APPROVER_CANCEL_GRACE_DAYS: int = Field(default=1, ge=0)

    model_config = _ENV_CONFIG


class Settings(BaseSettings):
    """Aggregate application settings"""

    APP_NAME: str = Field(default="hrportal")
    ENVIRONMENT: str = Field(default="development")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)
    vacation: VacationSettings = Field(default_factory=VacationSettings)

    model_config = _ENV_CONFIG


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
