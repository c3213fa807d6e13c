from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    secret_key: str = "dev-secret-change-me"
    database_path: str = "data/coderush.db"

    # JWT settings
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Code verification (OpenAI-compatible chat completions endpoint)
    codestral_api_url: str = ""
    codestral_api_key: str = ""
    codestral_model: str = "codestral-latest"
    verify_timeout_seconds: float = 30.0

    cors_allow_origins: list[str] = ["*"]

    class Config:
        env_file = ".env"


settings = Settings()

# Ensure data directory exists
Path(settings.database_path).parent.mkdir(parents=True, exist_ok=True)
