"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "sealsign"
    postgres_password: str = "sealsign_dev_password"
    postgres_db: str = "sealsign"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    # Redis (Celery broker for notification delivery)
    redis_url: str = "redis://localhost:6379/0"

    # MinIO / S3
    minio_endpoint: str = "localhost:9000"
    minio_access_key: Optional[str] = None  # Required in non-dev
    minio_secret_key: Optional[str] = None  # Required in non-dev
    minio_bucket: str = "sealsign-documents"
    minio_use_ssl: bool = False
    minio_region: Optional[str] = None  # set to skip the bucket-location lookup when presigning
    blob_connect_timeout_seconds: float = 5.0
    blob_read_timeout_seconds: float = 30.0
    blob_max_retries: int = 3
    blob_retry_backoff_seconds: float = 0.5

    # API
    api_port: int = 8000
    api_host: str = "0.0.0.0"
    environment: str = "development"
    frontend_url: str = "http://localhost:3000"

    # Owner authentication (tokens issued by the identity provider)
    jwt_secret_key: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"

    # Signing sessions
    signing_token_secret: str = "dev-signing-secret-change-in-production"
    signing_token_algorithm: str = "HS256"
    signing_token_ttl_seconds: int = 31 * 24 * 3600  # outlives the request so late visits record EXPIRED
    signature_request_ttl_days: int = 30
    document_view_url_ttl_seconds: int = 3600  # 1 hour

    # Documents
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MB
    seal_stamp_text: str = "Digitally Signed"

    # Notifications
    notifier_backend: str = "log"  # celery, log, memory
    mail_from: str = "noreply@sealsign.local"
    mail_from_name: str = "SealSign"

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() in ("development", "dev", "test")

    def validate_production_settings(self):
        """Validate settings for production environment."""
        if self.is_development:
            return
        if not self.minio_access_key or not self.minio_secret_key:
            raise ValueError(
                "MINIO_ACCESS_KEY and MINIO_SECRET_KEY are required in production. "
                "Do not use default credentials."
            )
        if self.signing_token_secret.startswith("dev-"):
            raise ValueError(
                "SIGNING_TOKEN_SECRET must be set outside development. "
                "Signing tokens minted with the default secret are forgeable."
            )
        if self.jwt_secret_key.startswith("dev-"):
            raise ValueError("JWT_SECRET_KEY must be set outside development.")
        if self.notifier_backend != "celery":
            raise ValueError(
                f"NOTIFIER_BACKEND={self.notifier_backend} is not allowed in production. "
                "Use NOTIFIER_BACKEND=celery."
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
