from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

# Development SQLite file in the project root
DEFAULT_SQLITE_PATH = Path(__file__).resolve().parents[1] / "pilates_studio.sqlite"


class Settings(BaseSettings):
    """Environment-driven configuration (env vars or `.env`)."""

    app_name: str = "Pilates Studio API"
    environment: str = "development"

    # Database
    database_url: str | None = None
    sqlite_path: Path = DEFAULT_SQLITE_PATH
    database_echo: bool = False

    # JWT
    jwt_secret: str = "CHANGE_ME_DEV_SECRET"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "PilatesStudioAPI"
    jwt_audience: str = "PilatesStudioClients"
    jwt_expire_minutes: int = 60
    refresh_token_expire_days: int = 7

    # Password hashing / lockout
    bcrypt_rounds: int = 12
    max_failed_logins: int = 5
    lockout_minutes: int = 5
    password_reset_minutes: int = 60

    # CORS
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    cors_allow_credentials: bool = True

    # Logging
    log_level: str = "INFO"
    slow_request_ms: int = 3000

    # Cache
    analytics_cache_seconds: int = 60

    # Seed
    seed_on_startup: bool = True
    admin_email: str | None = None
    admin_password: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def resolved_database_url(self) -> str:
        """SQLite outside production, the configured MySQL server in production."""
        if not self.is_production:
            return f"sqlite:///{self.sqlite_path}"
        if not self.database_url:
            raise RuntimeError("DATABASE_URL must be set when ENVIRONMENT=production")
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
