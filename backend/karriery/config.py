"""Application settings and configuration helpers."""
from functools import lru_cache
import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    database_url: str = Field(default="sqlite:///./karriery.db", alias="DATABASE_URL")
    storage_backend: str = Field(default="sql", alias="STORAGE_BACKEND")
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    # Sessions live for a week, matching the old PHP user_sessions rows
    access_token_expires_minutes: int = Field(default=60 * 24 * 7)
    admin_email: str = Field(default="admin", alias="ADMIN_EMAIL")
    admin_password: str = Field(default="admin", alias="ADMIN_PASSWORD")
    upload_dir: str = Field(default="./uploads/profiles", alias="UPLOAD_DIR")
    backup_dir: str = Field(default="./backups", alias="BACKUP_DIR")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


def _env(name: str) -> str:
    return os.getenv(name.upper(), Settings.model_fields[name].default)


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings(
        database_url=_env("database_url"),
        storage_backend=_env("storage_backend"),
        secret_key=_env("secret_key"),
        access_token_expires_minutes=int(
            os.getenv(
                "ACCESS_TOKEN_EXPIRES_MINUTES",
                Settings.model_fields["access_token_expires_minutes"].default,
            )
        ),
        admin_email=_env("admin_email"),
        admin_password=_env("admin_password"),
        upload_dir=_env("upload_dir"),
        backup_dir=_env("backup_dir"),
    )
