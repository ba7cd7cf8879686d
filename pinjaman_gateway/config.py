"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (server-side blob store)
    database_url: str = "sqlite:///./pinjaman.db"
    config_id: str = "main"

    # Remote state store used by the persistence adapter
    state_api_base: str = "http://localhost:5000"

    # Local cache (offline copy of the whole state)
    local_cache_path: str = "./web-pinjaman-data.json"
    save_debounce_seconds: float = 1.5

    # Service
    service_name: str = "pinjaman-gateway"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0
    sync_timeout_seconds: float = 10.0

    # Imports
    default_borrower_limit: int = 3_000_000


settings = Settings()
