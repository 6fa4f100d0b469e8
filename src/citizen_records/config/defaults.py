"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

# Default configuration dictionary
# This is used as a fallback when no configuration file is present
DEFAULT_CONFIG: dict[str, Any] = {
    "ledger": {
        # Local file-backed ledger
        "state_file": "data/ledger.json",
        # Health visits as sub-records
        "variant": "health",
        # Re-execute an invocation up to 3 times on a commit conflict
        "max_commit_retries": 3,
    },
    "roles": {
        # Default attestation role strings
        "self_role": "person",
        "domain_user": "healthcare_user",
        "domain_admin": "healthcare_admin",
        "registry_admin": "govt_admin",
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/citizen-records.log",
        # Do not redact PII by default (user must opt-in for privacy)
        "redact_pii": False,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 8080,
    },
    "client": {
        "base_url": "http://127.0.0.1:8080",
        "timeout": 30,
        "max_retries": 3,
        "backoff_factor": 0.3,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/config.json"
