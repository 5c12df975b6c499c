from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Внешний сервис генерации текста
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    generation_max_attempts: int = 2
    generation_retry_backoff_seconds: float = 2.0
    generation_max_response_chars: int = 1_000_000
    generation_max_concurrency: int = 4

    upload_dir: str = "uploads"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # PostgreSQL variables for Docker
    postgres_user: str = ""
    postgres_password: str = ""
    postgres_db: str = ""

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
