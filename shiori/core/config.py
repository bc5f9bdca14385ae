from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Shiori"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = "development"  # development, production

    # Logging and error tracking
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str = ""

    # Database
    DATABASE_URL: str = "sqlite:///./shiori.db"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    # External catalogs
    BOOKMETER_BASE_URL: str = "https://bookmeter.com"
    OPEN_LIBRARY_BASE_URL: str = "https://openlibrary.org"
    OPEN_LIBRARY_COVERS_URL: str = "https://covers.openlibrary.org"
    OPEN_LIBRARY_PAGE_SIZE: int = 20

    # HTTP
    HTTP_TIMEOUT_SECONDS: float = 10.0
    HTTP_USER_AGENT: str = "Shiori/1.0 (personal library tracker)"

    # Bulk import pacing (minimum seconds between page fetches, 0 disables)
    IMPORT_PAGE_INTERVAL_SECONDS: float = 0.5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
