# core/config.py

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env
load_dotenv()


def _flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings(BaseModel):
    SECRET_KEY: str = "dev_secret_change_me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 8

    # "memory" keeps everything in process, "database" goes through SQLAlchemy
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite+aiosqlite:///./members.db"
    DATABASE_ECHO: bool = False

    APP_ENV: str = "production"
    SEED_DEMO_DATA: bool = False

    SESSION_COOKIE_NAME: str = "sid"
    SESSION_TTL_DAYS: int = 30
    SESSION_CHECK_PERIOD_SECONDS: int = 3600

    VERIFICATION_CODE_TTL_MINUTES: int = 10
    VERIFICATION_RETENTION_HOURS: int = 24

    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = "noreply@example.com"
    MAIL_FROM_NAME: str = "Membership Portal"
    MAIL_PORT: int = 587
    MAIL_SERVER: Optional[str] = None
    MAIL_STARTTLS: bool = True
    MAIL_SSL_TLS: bool = False

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"


settings = Settings(
    SECRET_KEY=os.getenv("SECRET_KEY", "dev_secret_change_me"),
    ALGORITHM=os.getenv("ALGORITHM", "HS256"),
    ACCESS_TOKEN_EXPIRE_MINUTES=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480")),
    STORAGE_BACKEND=os.getenv("STORAGE_BACKEND", "memory"),
    DATABASE_URL=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./members.db"),
    DATABASE_ECHO=_flag("DATABASE_ECHO"),
    APP_ENV=os.getenv("APP_ENV", "production"),
    SEED_DEMO_DATA=_flag("SEED_DEMO_DATA"),
    SESSION_COOKIE_NAME=os.getenv("SESSION_COOKIE_NAME", "sid"),
    SESSION_TTL_DAYS=int(os.getenv("SESSION_TTL_DAYS", "30")),
    SESSION_CHECK_PERIOD_SECONDS=int(os.getenv("SESSION_CHECK_PERIOD_SECONDS", "3600")),
    VERIFICATION_CODE_TTL_MINUTES=int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "10")),
    VERIFICATION_RETENTION_HOURS=int(os.getenv("VERIFICATION_RETENTION_HOURS", "24")),
    MAIL_USERNAME=os.getenv("MAIL_USERNAME", ""),
    MAIL_PASSWORD=os.getenv("MAIL_PASSWORD", ""),
    MAIL_FROM=os.getenv("MAIL_FROM", "noreply@example.com"),
    MAIL_FROM_NAME=os.getenv("MAIL_FROM_NAME", "Membership Portal"),
    MAIL_PORT=int(os.getenv("MAIL_PORT", "587")),
    MAIL_SERVER=os.getenv("MAIL_SERVER"),
    MAIL_STARTTLS=_flag("MAIL_STARTTLS", "True"),
    MAIL_SSL_TLS=_flag("MAIL_SSL_TLS"),
)
