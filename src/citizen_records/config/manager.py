"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading and management functionality,
including support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from citizen_records.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from citizen_records.config.schema import Config, LoggingConfig, RolesConfig
from citizen_records.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "CITIZEN_RECORDS_"

# Values of CITIZEN_RECORDS_STATE_FILE selecting the in-memory ledger
IN_MEMORY_STATE_VALUES = ("", "none", "memory")

# (environment suffix, section, field, converter)
_ENV_OVERRIDES: list[tuple[str, str, str, Callable[[str], Any]]] = [
    ("STATE_FILE", "ledger", "state_file", lambda v: None if v.lower() in IN_MEMORY_STATE_VALUES else v),
    ("VARIANT", "ledger", "variant", str.lower),
    ("MAX_COMMIT_RETRIES", "ledger", "max_commit_retries", int),
    ("ROLE_SELF", "roles", "self_role", str),
    ("ROLE_DOMAIN_USER", "roles", "domain_user", str),
    ("ROLE_DOMAIN_ADMIN", "roles", "domain_admin", str),
    ("ROLE_REGISTRY_ADMIN", "roles", "registry_admin", str),
    ("LOG_LEVEL", "logging", "level", str),
    ("LOG_FILE", "logging", "log_file", str),
    ("REDACT_PII", "logging", "redact_pii", lambda v: _parse_bool(v)),
    ("SERVER_HOST", "server", "host", str),
    ("SERVER_PORT", "server", "port", int),
    ("CLIENT_BASE_URL", "client", "base_url", str),
    ("CLIENT_TIMEOUT", "client", "timeout", int),
    ("CLIENT_MAX_RETRIES", "client", "max_retries", int),
]


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (CITIZEN_RECORDS_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("custom/config.json"))
        >>> config.ledger.variant
        <RecordVariant.HEALTH: 'health'>
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If JSON is malformed or unreadable
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            ) from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a JSON object"
            )
        logger.info(f"Loaded configuration from {config_path}")
        return config_dict

    logger.info(
        f"Config file not found: {config_path}. Using default configuration."
    )
    # Return a deep copy of defaults to avoid mutation
    return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with CITIZEN_RECORDS_ prefix.

    Environment variables follow the pattern: CITIZEN_RECORDS_<FIELD>
    For example: CITIZEN_RECORDS_VARIANT, CITIZEN_RECORDS_LOG_LEVEL

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied

    Raises:
        ConfigurationError: If an override cannot be converted
    """
    for suffix, section, field_name, convert in _ENV_OVERRIDES:
        env_name = f"{ENV_PREFIX}{suffix}"
        raw = os.getenv(env_name)
        if raw is None:
            continue
        try:
            value = convert(raw)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid value for {env_name}: {raw!r}. Error: {e}"
            ) from e
        config_dict.setdefault(section, {})[field_name] = value
        logger.debug(f"Override: {field_name} from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string.

    Args:
        value: String value to parse (case-insensitive)

    Returns:
        Boolean value
    """
    return value.lower() in ("true", "1", "yes", "on")


def get_roles_config(config: Config) -> RolesConfig:
    """Get attestation role mapping.

    Example:
        >>> config = load_config()
        >>> get_roles_config(config).registry_admin
        'govt_admin'
    """
    return config.roles


def get_logging_config(config: Config) -> LoggingConfig:
    """Get logging configuration.

    Example:
        >>> config = load_config()
        >>> get_logging_config(config).level
        'INFO'
    """
    return config.logging
