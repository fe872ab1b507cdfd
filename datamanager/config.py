from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "DataManager"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./datamanager.db"

    # Security settings
    secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    root_role: str = "root"

    # Cultures known to the system, used when a data set restricts nothing
    available_cultures: list[str] = ["de-DE", "en-US", "pl-PL"]

    # Batch sizes
    materialization_batch_size: int = 500
    sweep_batch_size: int = 250

    # Concurrent first-write races are retried this many times
    save_retry_attempts: int = 3

    # Webhooks
    webhook_timeout_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
