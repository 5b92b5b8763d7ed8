from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Vulnboard"
    API_V1_STR: str = "/api/v1"

    MONGODB_URL: str
    DATABASE_NAME: str = "vulnboard"
    KNOWLEDGE_DATABASE_NAME: str = "knowledge"

    # Redis Cache Settings
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_PREFIX: str = "vb:"
    CACHE_DEFAULT_TTL_HOURS: int = 24

    # In-process package metadata cache
    PACKAGE_METADATA_CACHE_SIZE: int = 1024
    PACKAGE_METADATA_CACHE_TTL_SECONDS: int = 3600

    # Vulnerability list pagination
    PAGINATION_MAX_ENTRIES_PER_PAGE: int = 100
    PAGINATION_DEFAULT_ENTRIES_PER_PAGE: int = 20

    # Dashboard date windows (months back from now)
    DASHBOARD_WEEKLY_DEFAULT_MONTHS: int = 1
    DASHBOARD_DEFAULT_MONTHS: int = 2

    # Max concurrent knowledge lookups per request
    ENRICHMENT_CONCURRENCY: int = 10

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
