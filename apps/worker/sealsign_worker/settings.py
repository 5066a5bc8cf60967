"""Worker settings - consolidated with API settings for consistency."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings - consistent with API settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Environment
    environment: str = "development"

    # Mail (SMTP)
    mail_username: Optional[str] = None
    mail_password: Optional[str] = None
    mail_from: str = "noreply@sealsign.local"
    mail_from_name: str = "SealSign"
    mail_server: str = "localhost"
    mail_port: int = 587
    mail_starttls: bool = True
    mail_ssl_tls: bool = False
    mail_validate_certs: bool = True

    # Delivery retries
    email_max_retries: int = 5
    email_retry_backoff_max_seconds: int = 600

    @property
    def mail_configured(self) -> bool:
        return bool(self.mail_username and self.mail_password)

    def validate_production_settings(self):
        """Validate settings for production environment."""
        env = self.environment.lower()
        if env not in ("development", "test", "dev"):
            if not self.mail_configured:
                raise ValueError(
                    "MAIL_USERNAME and MAIL_PASSWORD are required in production. "
                    "Signers cannot be reached without SMTP credentials."
                )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
