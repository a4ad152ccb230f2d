from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

# Project root (the directory holding pyproject.toml and the data/ folder)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # Database (remote relational backend)
    DATABASE_URL: str = f"sqlite:///{_PROJECT_ROOT / 'data' / 'commitments.db'}"

    # JWT carrying the session context
    JWT_SECRET: str = "change-this-secret-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 480  # 8 hours

    # App
    APP_NAME: str = "Commitments Admin"
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # CORS; override with CORS_ORIGINS as a JSON array
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Storage: "local" (JSON blobs under DATA_DIR) or "remote" (DATABASE_URL)
    STORAGE_BACKEND: str = "local"
    DATA_DIR: Path = _PROJECT_ROOT / "data" / "store"
    EXPORTS_DIR: Path = _PROJECT_ROOT / "data" / "exports"

    # Records table
    PAGE_SIZE: int = 20

    # Header defaults
    DEFAULT_REASON_CODE: str = "PO07"
    DEFAULT_CURRENCY_CODE: str = "RSD"

    # Bootstrap admin pair, written on first start when none is stored
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "Admin123!"

    # Outgoing mail; simulated when SMTP_HOST is empty
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_SENDER: str = "no-reply@commitments.local"
    EMAIL_APP_NAME: str = "Kumulativne Obaveze"

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
