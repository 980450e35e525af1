"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./data/tradecalc.db"
    database_echo: bool = False

    # Formula engine
    preview_row_limit: int = 10
    max_rows_per_call: int = 1000

    # Backend
    backend_host: str = "0.0.0.0"
    backend_port: int = 9200
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "", "extra": "ignore"}


settings = Settings()
