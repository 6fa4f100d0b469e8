"""Config module.

This module provides configuration management functionality.
"""

from citizen_records.config.manager import (
    get_logging_config,
    get_roles_config,
    load_config,
)
from citizen_records.config.schema import (
    ClientConfig,
    Config,
    LedgerConfig,
    LoggingConfig,
    RolesConfig,
    ServerConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    # Helper functions
    "get_logging_config",
    "get_roles_config",
    # Configuration models
    "ClientConfig",
    "Config",
    "LedgerConfig",
    "LoggingConfig",
    "RolesConfig",
    "ServerConfig",
]
