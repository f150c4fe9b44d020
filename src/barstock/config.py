"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost/barstock"

    # Redis (Celery broker)
    redis_url: str = "redis://localhost:6379/0"

    # Bulk writes
    bulk_write_chunk_size: int = 10  # concurrent writes per wave

    # Duplicate detection
    duplicate_similarity_threshold: float = 0.6

    # Ingredient import
    import_price_tolerance: float = 0.01
    import_suggestion_min_score: float = 80.0  # rapidfuzz score, 0-100

    # Per-user app settings defaults
    default_oz_interpretation: str = "auto"
    default_target_pour_cost: float = 20.0
    default_unit_preference: str = "oz"

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def origins(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
