"""Configuration loading for kbase.

A config file is TOML. Top-level tables mirror AppConfig (``[storage]``,
``[bulk_import]``, ``[upload]``, ``[logging]``); ``[profiles.<name>]`` tables
hold overrides merged key by key over the base file when that profile is
selected. String values may reference the environment as ``${VAR}`` or
``${VAR:-default}``. ``KBASE_`` environment variables (``KBASE_UPLOAD__MAX_FILE_SIZE``)
override everything in the file.

Any problem with the file surfaces as ConfigError naming the file.
"""

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from kbase.config.schema import AppConfig
from kbase.observability.logging import get_logger

logger = get_logger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def config_search_paths() -> list[Path]:
    """Where kbase looks for a config file, in order."""
    return [
        Path.cwd() / "config.toml",
        Path.home() / ".kbase" / "config.toml",
        Path("/etc/kbase/config.toml"),
    ]


def _expand(value: str) -> str:
    def lookup(match: re.Match) -> str:
        name, default = match.group(1).strip(), match.group(2)
        resolved = os.getenv(name, default)
        if resolved is None:
            logger.warning("env_var_not_found", var_name=name)
            return match.group(0)
        return resolved

    return _ENV_REFERENCE.sub(lookup, value)


def _substitute_env_vars(obj: Any) -> Any:
    """Expand ``${VAR}`` references in every string of a parsed config.

    Unset variables without a default are left as written.
    """
    if isinstance(obj, dict):
        return {key: _substitute_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    if isinstance(obj, str):
        return _expand(obj)
    return obj


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Overlay one config dict on another, merging nested tables."""
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_file(config_path: Path, profile: Optional[str]) -> dict[str, Any]:
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML: {e}", config_path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}", config_path) from e

    profiles = data.pop("profiles", {})
    if profile:
        if profile not in profiles:
            known = ", ".join(sorted(profiles)) or "none"
            raise ConfigError(f"Unknown profile '{profile}' (defined: {known})", config_path)
        data = _merge(data, profiles[profile])
        logger.info("applied_profile", profile=profile)

    logger.info("loaded_config_file", path=str(config_path))
    return _substitute_env_vars(data)


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def load_config(
    config_path: Optional[Path] = None,
    profile: Optional[str] = None,
    env_file: Optional[Path] = None,
) -> AppConfig:
    """Load and validate the application configuration.

    Priority (highest to lowest):
    1. ``KBASE_`` environment variables (including those from ``env_file``)
    2. The selected profile
    3. The base config file
    4. Defaults

    A missing ``config_path`` is not an error; defaults apply.

    Raises:
        ConfigError: If the file is unreadable, not TOML, names an unknown
            profile, or holds values AppConfig rejects
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
        logger.info("loaded_env_file", path=str(env_file))

    file_data: dict[str, Any] = {}
    if config_path and config_path.exists():
        file_data = _read_file(config_path, profile)
    elif profile:
        raise ConfigError(f"Unknown profile '{profile}' (no config file)", config_path)

    try:
        config = AppConfig(**file_data)
    except ValidationError as e:
        raise ConfigError(_describe(e), config_path) from e

    logger.info(
        "config_loaded",
        store_type=config.storage.store_type,
        default_owner=config.default_owner,
        max_title_length=config.bulk_import.max_title_length,
    )
    return config


def get_default_config_path() -> Path:
    """First existing path from config_search_paths(), else ./config.toml."""
    candidates = config_search_paths()
    for path in candidates:
        if path.exists():
            return path
    return candidates[0]


class ConfigError(Exception):
    """Configuration could not be loaded."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)
