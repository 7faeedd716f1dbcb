"""
Engine configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit structured JSON logs")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return str(v).upper()

    # ==========================================================================
    # Formula Engine
    # ==========================================================================
    formula_debug: bool = Field(
        default=False,
        description="Log compile and evaluation failures at DEBUG level",
    )
    formula_max_depth: int = Field(
        default=200,
        ge=1,
        description="Maximum AST nesting depth the evaluator will walk",
    )
    formula_inference_sample_size: int = Field(
        default=10,
        ge=1,
        description="Rows sampled when inferring a formula's result type",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
