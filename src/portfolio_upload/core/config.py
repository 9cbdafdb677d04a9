"""Configuration management for the Portfolio Upload API."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from portfolio_upload.storage.base import StoragePolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "portfolio-upload-api"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Storage Configuration
    STORAGE_BACKEND: str = "local"  # "gcs" or "local"
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""
    LOCAL_STORAGE_PATH: str = "data/uploads"
    STORAGE_RETRIES: int = 3
    STORAGE_TIMEOUT_SECONDS: float = 30.0

    # Reporting service (upload notifications)
    REPORT_UPLOAD_API_URI: str = ""  # empty = notifications disabled
    REPORT_UPLOAD_API_PATH: str = "/portman-web/upload"
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0
    NOTIFICATION_RETRIES: int = 2

    CORS_ALLOW_ORIGINS: str = "*"  # Comma-separated

    @property
    def storage_policy(self) -> StoragePolicy:
        """Retry and timeout policy handed to the object store."""
        return StoragePolicy(
            retries=self.STORAGE_RETRIES,
            per_call_timeout=self.STORAGE_TIMEOUT_SECONDS,
        )

    @property
    def reporting_enabled(self) -> bool:
        return bool(self.REPORT_UPLOAD_API_URI)

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS_ALLOW_ORIGINS into a list."""
        return [origin.strip() for origin in self.CORS_ALLOW_ORIGINS.split(",") if origin.strip()]


# Singleton settings instance
settings = Settings()
