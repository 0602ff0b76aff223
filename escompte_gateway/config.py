"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./escomptes.db"
    auto_create_schema: bool = True

    # Service
    service_name: str = "escompte-gateway"
    log_level: str = "INFO"

    # Business defaults
    default_authorization: float = 200_000.0  # Ceiling used until the first PUT /api/configuration
    currency: str = "DH"

    # Audit log
    log_retention_limit: int = 10_000

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 500


settings = Settings()
