from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import ConfigError, read_raw_toml, resolve_config_path
from .piston import DEFAULT_PISTON_URL
from .telegram.client import DEFAULT_API_ROOT

TOKEN_ENV = "TELEGRAM_BOT_TOKEN"


class BotSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    bot_token: str
    api_root: str = DEFAULT_API_ROOT
    piston_url: str = DEFAULT_PISTON_URL
    timeout_s: float = Field(default=120, gt=0)

    @field_validator("bot_token", "api_root", "piston_url")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be a non-empty string")
        return value


def _format_errors(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"`{loc}`: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def validate_settings_data(
    data: Mapping[str, Any], *, config_path: Path
) -> BotSettings:
    try:
        return BotSettings.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid config in {config_path}: {_format_errors(exc)}"
        ) from None


def load_settings(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> tuple[BotSettings, Path]:
    env = os.environ if environ is None else environ
    config_path = path or resolve_config_path(env)
    token = env.get(TOKEN_ENV, "").strip()
    data: dict[str, Any] = {}
    if config_path.exists() or not token:
        data = read_raw_toml(config_path)
    if token:
        data["bot_token"] = token
    return validate_settings_data(data, config_path=config_path), config_path


def load_settings_if_exists(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> tuple[BotSettings, Path] | None:
    env = os.environ if environ is None else environ
    config_path = path or resolve_config_path(env)
    if not config_path.exists() and not env.get(TOKEN_ENV, "").strip():
        return None
    return load_settings(config_path, environ=env)
