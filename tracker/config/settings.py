from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    api_base_url: str = "http://localhost:8080"
    api_version: str = "/api/v1"
    api_timeout_seconds: int = 10
    extraction_timeout_seconds: int = 60

    auth_token_path: str = "~/.tracker/auth.json"

    max_upload_files: int = 10
    max_transaction_age_years: int = 30
    fuzzy_search_limit: int = 10
