from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
import os

from dotenv import load_dotenv

# Load environment variables from the project root .env (if present).
PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(PROJECT_ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Process-wide configuration.

    Built once from the environment and handed to the components that need
    it (token authenticator, mailer, database engine).
    """

    database_url: str = "sqlite:///./taskapi.db"
    secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    sendgrid_api_key: Optional[str] = None
    sendgrid_email: str = "noreply@example.com"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            secret_key=os.getenv("SECRET_KEY", cls.secret_key),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            access_token_expire_minutes=_env_int(
                "ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes
            ),
            cors_origins=_env_list("CORS_ORIGINS", "http://localhost:3000"),
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY") or None,
            sendgrid_email=os.getenv("SENDGRID_EMAIL", cls.sendgrid_email),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            log_file=os.getenv("LOG_FILE") or None,
        )


@lru_cache()
def get_settings() -> Settings:
    """FastAPI dependency returning the cached settings."""
    return Settings.from_env()
