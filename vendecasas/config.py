from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Document store connection string
    DATABASE_URL: str = "sqlite:///./vendecasas.db"

    LOG_LEVEL: str = "INFO"

    PORT: int = 3000

    # Comma-separated list, "*" allows any origin
    CORS_ORIGINS: str = "*"

    # How many times create() re-reads the max sequential id after a conflict
    ID_ALLOCATION_ATTEMPTS: int = 5

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()
