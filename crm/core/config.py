"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_POOL_TIMEOUT_SECONDS: int = 2  # Wait for a free connection
    DB_POOL_RECYCLE_SECONDS: int = 30  # Drop idle connections
    SLOW_QUERY_THRESHOLD_MS: int = 100

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 24 * 7

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 120  # General API
    RATE_LIMIT_TRACKING: int = 300  # Analytics event ingestion
    RATE_LIMIT_PUBLIC_FORMS: int = 10  # Public form submissions

    # Analytics
    ANALYTICS_MAX_RANGE_DAYS: int = 366 * 5

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets


settings = Settings()
