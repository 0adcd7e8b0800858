from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomli_w

CONFIG_ENV = "CODERUNNER_CONFIG"
HOME_CONFIG_PATH = Path.home() / ".coderunner" / "coderunner.toml"


class ConfigError(Exception):
    pass


def resolve_config_path(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    override = env.get(CONFIG_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return HOME_CONFIG_PATH


def dump_toml(config: Mapping[str, Any]) -> str:
    return tomli_w.dumps(
        {key: value for key, value in config.items() if value is not None}
    )


def read_raw_toml(path: Path) -> dict[str, Any]:
    if path.exists() and not path.is_file():
        raise ConfigError(f"Config path {path} exists but is not a file.") from None
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {path}.") from None
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Malformed TOML in {path}: {exc}") from None


def write_raw_toml(config: Mapping[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.tmp")
    tmp_path.write_text(dump_toml(config), encoding="utf-8")
    os.replace(tmp_path, path)
