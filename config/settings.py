"""Configuration settings for the HSSE audit engine."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = ""
    sql_echo: bool = False

    # Event Dispatch Configuration
    raise_on_handler_error: bool = False

    # Worker Configuration
    overdue_poll_interval: int = 300  # seconds
    overdue_batch_size: int = 100

    # Tracing Configuration
    tracing_enabled: bool = True
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
