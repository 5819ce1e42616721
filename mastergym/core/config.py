from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, ValidationError, field_validator


class Settings(BaseModel):
    bot_token: str
    api_base_url: HttpUrl = Field(default="http://localhost:8080", validate_default=True)
    api_username: str | None = None
    api_password: str | None = None
    backup_token: str | None = None
    admin_telegram_ids: list[int] = Field(default_factory=list)
    state_file: Path = Path(".mastergym-state.json")
    digest_hour: int = Field(default=9, ge=0, le=23)
    environment: Literal["local", "staging", "production"] = "local"

    @field_validator("admin_telegram_ids", mode="before")
    @classmethod
    def _split_ids(cls, value: object) -> object:
        # ADMIN_TELEGRAM_IDS comes in as "123,456"
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @property
    def is_debug(self) -> bool:
        return self.environment == "local"

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_username and self.api_password)

    def is_admin(self, telegram_user_id: int) -> bool:
        if not self.admin_telegram_ids:
            return True
        return telegram_user_id in self.admin_telegram_ids


def _build_settings() -> Settings:
    # Load .env file once on first settings build (for local development)
    load_dotenv()

    optional = {
        "api_base_url": os.getenv("API_BASE_URL"),
        "api_username": os.getenv("API_USERNAME"),
        "api_password": os.getenv("API_PASSWORD"),
        "backup_token": os.getenv("BACKUP_TOKEN"),
        "admin_telegram_ids": os.getenv("ADMIN_TELEGRAM_IDS"),
        "state_file": os.getenv("STATE_FILE"),
        "digest_hour": os.getenv("DIGEST_HOUR"),
    }

    try:
        return Settings(
            bot_token=os.environ["BOT_TOKEN"],
            environment=os.getenv("ENVIRONMENT", "local"),
            **{key: value for key, value in optional.items() if value},
        )
    except KeyError as exc:
        raise RuntimeError("Missing required environment variables: BOT_TOKEN") from exc
    except ValidationError as exc:
        raise RuntimeError(f"Invalid settings: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Reads environment variables once and validates them with Pydantic.
    """

    return _build_settings()
