from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = False  # asyncpg takes SSL via connect_args, not sslmode
    auto_create_tables: bool = False  # prefer Alembic outside local dev

    # JWT (tokens are issued by the auth service, verified here)
    secret_key: str
    access_token_expire_minutes: int = 15
    algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Scheduling rules
    slot_duration_minutes: int = Field(30, gt=0)
    # Off keeps slots in range declaration order, as doctors entered them
    sort_slots_chronologically: bool = False
    # Off leaves "cannot complete before the visit" to the caller
    enforce_completion_after_start: bool = False

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
