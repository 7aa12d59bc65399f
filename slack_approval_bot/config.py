"""Pydantic-based configuration helpers for the approval bot."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_SHORTCUT_CALLBACK_ID = "socket-mode-shortcut"


class AppSettings(BaseModel):
    """Settings required to connect the bot over Socket Mode."""

    bot_token: str = Field(..., alias="SLACK_BOT_TOKEN")
    app_token: str = Field(..., alias="SLACK_APP_TOKEN")
    approval_channel: str | None = Field(None, alias="APPROVAL_CHANNEL")
    greeting_keyword: str = Field("hello", alias="GREETING_KEYWORD")
    shortcut_callback_id: str = Field(DEFAULT_SHORTCUT_CALLBACK_ID, alias="SHORTCUT_CALLBACK_ID")
    shutdown_timeout: float = Field(5.0, alias="SHUTDOWN_TIMEOUT")
    supervise_interval: float = Field(10.0, alias="SUPERVISE_INTERVAL")

    @field_validator("bot_token", "app_token")
    @classmethod
    def _ensure_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Token must not be empty")
        return value

    @field_validator("app_token")
    @classmethod
    def _ensure_app_level(cls, value: str) -> str:
        if not value.startswith("xapp-"):
            raise ValueError("Socket Mode requires an app-level token (xapp-...)")
        return value

    @field_validator("approval_channel", mode="before")
    @classmethod
    def _blank_channel_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("shutdown_timeout", "supervise_interval")
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Intervals must be greater than zero")
        return value


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of offending env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(os.environ)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        invalid = [str(error["loc"][0]) for error in exc.errors() if error["type"] != "missing"]
        parts = []
        if missing:
            parts.append(f"Missing required environment variables: {_format_missing(missing)}")
        if invalid:
            parts.append(f"Invalid environment variables: {_format_missing(invalid)}")
        raise ConfigError("; ".join(parts)) from exc
