"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from citizen_records.models.citizen import RecordVariant

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LedgerConfig(BaseModel):
    """Configuration for the hosting ledger.

    Attributes:
        state_file: JSON state file for the file-backed ledger. When None the
            ledger lives in memory only.
        variant: Sub-record shape of this deployment (health or academic)
        max_commit_retries: Times a conflicting invocation is re-executed
            before it is rejected
    """

    state_file: Optional[Path] = Field(
        default=Path("data/ledger.json"),
        description="Ledger state file (None for in-memory)",
    )
    variant: RecordVariant = Field(
        default=RecordVariant.HEALTH,
        description="Sub-record variant: health or academic",
    )
    max_commit_retries: int = Field(
        default=3,
        ge=0,
        le=100,
        description="Re-executions of a conflicting invocation",
    )


class RolesConfig(BaseModel):
    """Attestation role strings for each abstract access-control role.

    Attributes:
        self_role: Role attribute of a citizen acting as themselves
        domain_user: Role attribute of domain (e.g. healthcare) staff
        domain_admin: Role attribute of domain administrators
        registry_admin: Role attribute of the registry authority, the only
            role allowed to create citizens
    """

    self_role: str = Field(default="person", min_length=1)
    domain_user: str = Field(default="healthcare_user", min_length=1)
    domain_admin: str = Field(default="healthcare_admin", min_length=1)
    registry_admin: str = Field(default="govt_admin", min_length=1)

    @model_validator(mode="after")
    def validate_distinct(self) -> "RolesConfig":
        """Validate that no two abstract roles share an attestation string.

        Returns:
            Validated RolesConfig instance

        Raises:
            ValueError: If a role string is mapped twice
        """
        values = [
            self.self_role,
            self.domain_user,
            self.domain_admin,
            self.registry_admin,
        ]
        if len(set(values)) != len(values):
            raise ValueError(
                f"Role attribute values must be distinct, got: {', '.join(values)}"
            )
        return self


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_pii: Whether to redact names, government ids and birth dates
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Path = Field(
        default=Path("logs/citizen-records.log"),
        description="Log file path",
    )
    redact_pii: bool = Field(
        default=False,
        description="Redact PII from logs",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Args:
            v: Log level string

        Returns:
            Validated log level (uppercase)

        Raises:
            ValueError: If log level is not valid
        """
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return v_upper


class ServerConfig(BaseModel):
    """Configuration for the HTTP ledger host.

    Attributes:
        host: Bind address
        port: Bind port
    """

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8080, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port range.

        Raises:
            ValueError: If port is outside 1-65535
        """
        if not 1 <= v <= 65535:
            raise ValueError(f"Invalid port {v}. Must be between 1 and 65535")
        return v


class ClientConfig(BaseModel):
    """Configuration for talking to a remote HTTP ledger host.

    Attributes:
        base_url: Host base URL
        timeout: Request timeout in seconds
        max_retries: Retry attempts for connection failures and 5xx responses
        backoff_factor: Exponential backoff factor for retries
    """

    base_url: str = Field(default="http://127.0.0.1:8080")
    timeout: int = Field(default=30, ge=1)
    max_retries: int = Field(default=3, ge=0)
    backoff_factor: float = Field(default=0.3, ge=0.0)

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL is valid HTTP/HTTPS.

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid URL: {v}. Must start with http:// or https://"
            )
        return v.rstrip("/")


class Config(BaseModel):
    """Root configuration model.

    Example:
        >>> config = Config(ledger=LedgerConfig(variant="academic"))
        >>> config.ledger.variant.value
        'academic'
        >>> config.roles.registry_admin
        'govt_admin'
    """

    ledger: LedgerConfig = LedgerConfig()
    roles: RolesConfig = RolesConfig()
    logging: LoggingConfig = LoggingConfig()
    server: ServerConfig = ServerConfig()
    client: ClientConfig = ClientConfig()
