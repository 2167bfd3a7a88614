"""Configuration loading from files and environment.

Supports:
- TOML config files
- Environment variables (RAGCOURSE_* prefix)
- .env files
- Activation profiles ([profiles.<name>] sections, several may be active)
"""

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from ragcourse.config.schema import AppConfig, ConfigError
from ragcourse.observability.logging import get_logger

logger = get_logger(__name__)

# Comma-separated list of active profiles, e.g. "rag,networked"
PROFILES_ENV_VAR = "RAGCOURSE_PROFILES"


def _substitute_env_vars(obj: Any) -> Any:
    """Recursively substitute environment variables in a data structure.

    Supports formats:
    - ${VAR_NAME}
    - ${VAR_NAME:-default}

    Args:
        obj: Input data (dict, list, str, etc.)

    Returns:
        Data structure with environment variables substituted
    """
    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_var(match):
            var_expr = match.group(1)
            if ":-" in var_expr:
                var_name, default_value = var_expr.split(":-", 1)
                return os.getenv(var_name.strip(), default_value)
            var_name = var_expr.strip()
            value = os.getenv(var_name)
            if value is None:
                # Leave the placeholder in place
                logger.warning(
                    "env_var_not_found",
                    var_name=var_name,
                    suggestion="Check that the environment variable is set",
                )
                return match.group(0)
            return value

        return re.sub(r"\$\{([^}]+)\}", replace_var, obj)
    else:
        return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested tables merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def parse_profiles(value: Optional[str | Sequence[str]]) -> list[str]:
    """Turn "rag, networked" or ["rag", "networked"] into a clean list."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [name.strip().lower() for name in value if name and name.strip()]


def load_config(
    config_path: Optional[Path] = None,
    profiles: Optional[Sequence[str]] = None,
    env_file: Optional[Path] = None,
) -> AppConfig:
    """Load application configuration.

    Active profiles are taken from, in order of preference: the ``profiles``
    argument, the RAGCOURSE_PROFILES environment variable, and the
    ``active_profiles`` key of the config file.

    Priority of values (highest to lowest):
    1. Environment variables
    2. Active profile sections, in the order given
    3. Config file
    4. Defaults

    Args:
        config_path: Path to TOML config file
        profiles: Profiles to activate
        env_file: Path to .env file

    Returns:
        Loaded and validated configuration

    Raises:
        ConfigError: If the file cannot be parsed or values fail validation
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
        logger.info("loaded_env_file", path=str(env_file))

    config_data: dict[str, Any] = {}
    if config_path and config_path.exists():
        try:
            with open(config_path, "rb") as f:
                config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(
                message=f"Invalid TOML in {config_path}: {e}",
                path=str(config_path),
                original_error=e,
            ) from e
        logger.info("loaded_config_file", path=str(config_path))

    profile_sections = config_data.pop("profiles", {})

    active = parse_profiles(profiles)
    if not active:
        active = parse_profiles(os.getenv(PROFILES_ENV_VAR))
    if not active:
        active = parse_profiles(config_data.get("active_profiles"))

    for name in active:
        if name in profile_sections:
            config_data = _deep_merge(config_data, profile_sections[name])
            logger.info("applied_profile", profile=name)

    config_data["active_profiles"] = active
    config_data = _substitute_env_vars(config_data)

    try:
        config = AppConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(
            message=f"Invalid configuration: {e}",
            path=str(config_path) if config_path else None,
            original_error=e,
        ) from e

    logger.info(
        "config_loaded",
        profiles=config.active_profiles,
        log_level=config.logging.level.value,
        embedding_model=config.embedding.model_name,
        chat_provider=config.chat.provider.value,
        vector_backend=config.vector_store.backend.value,
    )

    return config


def get_default_config_path() -> Path:
    """Get the default config file path.

    Searches in order:
    1. ./ragcourse.toml
    2. ~/.ragcourse/config.toml
    """
    search_paths = [
        Path.cwd() / "ragcourse.toml",
        Path.home() / ".ragcourse" / "config.toml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    # Nothing found; load_config skips missing files
    return search_paths[0]
