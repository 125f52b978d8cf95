# vault_provider/config/config_models.py
"""
Configuration models for the Vault provider.

This module provides the Pydantic models for the persisted provider descriptor
(the `provider.vault` block of a SecretStore) and for the operator-side
settings that control how the HTTP client is assembled and how logging is
configured.

Design Decisions:
-----------------
- All models use `extra='forbid'` to catch typos and invalid fields in YAML
  configuration files early, preventing silent misconfiguration.

- The persisted descriptor uses camelCase field names (`caProvider`). Those
  names are kept as aliases so existing configuration round-trips unchanged,
  while Python code uses snake_case attributes (`populate_by_name=True`).

- Descriptor models are frozen. A build call receives an immutable view of
  the descriptor for its whole duration.

- Empty CA provider names, keys, or inline data are deliberately accepted
  here. They surface later as resolution failures with a precise reason
  rather than as a generic validation error.

- No logging occurs within this module because the logging configuration
  itself is defined here. Logging must be configured by the caller after
  loading config.

Usage:
------
    import yaml
    from vault_provider.config.config_models import StoreConfig

    with open('store.yaml', 'r') as config_file:
        raw_config = yaml.safe_load(config_file)

    config = StoreConfig.model_validate(raw_config)
"""

from enum import Enum
from pathlib import Path
from typing import Any, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

# =============================================================================
# Public API
# =============================================================================

__all__: list[str] = [
    'CAProvider',
    'CAProviderType',
    'ClientSettings',
    'LogLevelName',
    'LoggingConfig',
    'ProviderSpec',
    'StoreConfig',
    'StoreKind',
    'VaultProvider',
]

# =============================================================================
# Type Aliases
# =============================================================================

# Valid logging level names recognized by Python's logging module.
LogLevelName = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

LOG_LEVEL_VALUES: frozenset[int] = frozenset({10, 20, 30, 40, 50})

LOG_LEVEL_NAME_TO_INT: dict[LogLevelName, int] = {
    'DEBUG': 10,
    'INFO': 20,
    'WARNING': 30,
    'ERROR': 40,
    'CRITICAL': 50,
}

# KV secrets engine versions understood by the backend client.
KVVersion = Literal['v1', 'v2']


# =============================================================================
# Enumerations
# =============================================================================


class CAProviderType(str, Enum):
    """Kinds of source a CA provider can read trust material from."""

    CONFIG_MAP = 'ConfigMap'
    SECRET = 'Secret'
    INLINE = 'Inline'


class StoreKind(str, Enum):
    """Scope of the store that owns the provider descriptor."""

    SECRET_STORE = 'SecretStore'
    CLUSTER_SECRET_STORE = 'ClusterSecretStore'


# =============================================================================
# Provider Descriptor
# =============================================================================


class CAProvider(BaseModel):
    """Declarative reference to where CA certificates should be fetched from.

    Attributes:
        provider_type: Source kind (persisted as `type`).
        name: Name of the ConfigMap or Secret holding the certificates.
        key: Field within the object's data holding the PEM bundle.
        namespace: Namespace override. When None, the namespace of the store
            is used.
        data: PEM text for the `Inline` source kind. Ignored by other kinds.
    """

    model_config = ConfigDict(extra='forbid', frozen=True, populate_by_name=True)

    provider_type: CAProviderType = Field(
        alias='type',
        description='Source kind: ConfigMap, Secret, or Inline',
    )
    name: str = Field(
        default='',
        description='Name of the object holding the CA bundle',
    )
    key: str = Field(
        default='',
        description='Field within the object data holding PEM certificates',
    )
    namespace: str | None = Field(
        default=None,
        description='Namespace override; defaults to the store namespace',
    )
    data: str | None = Field(
        default=None,
        description='Inline PEM certificates (Inline kind only)',
    )

    @field_validator('namespace')
    @classmethod
    def normalize_empty_namespace(cls, namespace: str | None) -> str | None:
        """Treat an empty namespace the same as an absent one.

        Args:
            namespace: Namespace override from the descriptor.

        Returns:
            The namespace, or None if it was empty or whitespace-only.
        """
        if namespace is None or not namespace.strip():
            return None
        return namespace


class VaultProvider(BaseModel):
    """Connection descriptor for a Vault server.

    Only `server` and `caProvider` drive the secure transport. The remaining
    fields are carried for the backend client: `namespace` is sent as the
    `X-Vault-Namespace` header and `auth` is passed through untouched.

    Attributes:
        server: Vault address. May be malformed; a bad value only affects the
            SNI hostname, never the build itself.
        path: Mount path of the KV secrets engine.
        version: KV secrets engine version.
        namespace: Vault Enterprise namespace.
        ca_provider: Optional trust source (persisted as `caProvider`).
        auth: Authentication block, opaque to this package.
    """

    model_config = ConfigDict(extra='forbid', frozen=True, populate_by_name=True)

    server: str = Field(description='Vault server URL, e.g. https://vault:8200')
    path: str | None = Field(
        default=None,
        description='Mount path of the KV secrets engine',
    )
    version: KVVersion = Field(
        default='v2',
        description='KV secrets engine version',
    )
    namespace: str | None = Field(
        default=None,
        description='Vault Enterprise namespace (X-Vault-Namespace header)',
    )
    ca_provider: CAProvider | None = Field(
        default=None,
        alias='caProvider',
        description='Where to fetch CA certificates used to verify the server',
    )
    auth: dict[str, Any] | None = Field(
        default=None,
        description='Authentication settings, passed through unchanged',
    )


class ProviderSpec(BaseModel):
    """The `provider` block of a store; only Vault is supported."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    vault: VaultProvider


# =============================================================================
# Client Settings
# =============================================================================


class ClientSettings(BaseModel):
    """Settings for the HTTP client built around the secure transport.

    Attributes:
        request_timeout: Connection and read timeout as [connect, read] seconds.
        max_connections: Maximum total connections allowed in the pool.
        max_keepalive_connections: Maximum idle connections kept alive.
        use_truststore: When True and no CA provider is configured, verify the
            server against the operating system trust store (via the
            `truststore` library) instead of the bundled certifi roots.
    """

    model_config = ConfigDict(extra='forbid')

    request_timeout: tuple[int, int] = Field(
        default=(10, 60),
        description='[connect_timeout, read_timeout] in seconds; both positive',
    )
    max_connections: int = Field(
        default=10,
        ge=1,
        le=100,
        description='Maximum total connections in the pool (1-100)',
    )
    max_keepalive_connections: int = Field(
        default=5,
        ge=0,
        le=100,
        description='Maximum idle keepalive connections (0-100)',
    )
    use_truststore: bool = Field(
        default=False,
        description='Use the OS trust store when no CA provider is configured',
    )

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout_values_positive(
        cls, timeout: tuple[int, int]
    ) -> tuple[int, int]:
        """Ensure both timeout values are positive integers.

        Args:
            timeout: Tuple of [connect_timeout, read_timeout] in seconds.

        Returns:
            The validated timeout tuple.

        Raises:
            ValueError: If either timeout value is non-positive.
        """
        connect_timeout, read_timeout = timeout

        if connect_timeout <= 0:
            raise ValueError(
                f'connect_timeout must be positive, got: {connect_timeout}'
            )
        if read_timeout <= 0:
            raise ValueError(f'read_timeout must be positive, got: {read_timeout}')

        return timeout


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Configuration for application logging output.

    Console output is always enabled. File output is enabled by providing a
    file_path; file_level then defaults to DEBUG.

    Attributes:
        file_path: Path to log file. None disables file logging.
            Extension .log is appended automatically if missing.
        console_level: Minimum log level for console output.
        file_level: Minimum log level for file output.
    """

    model_config = ConfigDict(extra='forbid')

    file_path: Path | None = Field(
        default=None,
        description='Log file path (.log extension auto-added). None disables file logging.',
    )
    console_level: LogLevelName | int = Field(
        default='INFO',
        description="Console log level: 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL', or int",
    )
    file_level: LogLevelName | int | None = Field(
        default=None,
        description='File log level. None disables file logging.',
    )

    @field_validator('file_path', mode='before')
    @classmethod
    def normalize_log_file_path(cls, path_value: str | Path | None) -> Path | None:
        """Normalize path and ensure .log extension."""
        if path_value is None:
            return None

        path_string: str = str(path_value)

        if not path_string.lower().endswith('.log'):
            path_string = f'{path_string}.log'

        return Path(path_string)

    @field_validator('console_level', 'file_level', mode='after')
    @classmethod
    def validate_numeric_log_level(
        cls, level_value: LogLevelName | int | None
    ) -> LogLevelName | int | None:
        """Validate numeric log levels are standard Python logging values.

        Raises:
            ValueError: If numeric level is not a standard logging value.
        """
        if level_value is None or isinstance(level_value, str):
            return level_value

        if level_value not in LOG_LEVEL_VALUES:
            raise ValueError(
                f'Numeric log level must be one of {sorted(LOG_LEVEL_VALUES)}, '
                f'got: {level_value}'
            )

        return level_value

    @model_validator(mode='after')
    def ensure_file_logging_configuration_consistency(self) -> Self:
        """Ensure file_path and file_level are consistently configured.

        Raises:
            ValueError: If file_level is set but file_path is missing.
        """
        has_file_path: bool = self.file_path is not None
        has_file_level: bool = self.file_level is not None

        if has_file_path and not has_file_level:
            self.file_level = 'DEBUG'

        if has_file_level and not has_file_path:
            raise ValueError(
                'file_level is specified but file_path is missing. '
                'Provide file_path to enable file logging, or remove file_level.'
            )

        return self

    def get_console_level_int(self) -> int:
        """Convert console_level to numeric value for logging module."""
        if isinstance(self.console_level, int):
            return self.console_level
        return LOG_LEVEL_NAME_TO_INT[self.console_level]

    def get_file_level_int(self) -> int | None:
        """Convert file_level to numeric value, None if file logging is off."""
        if self.file_level is None:
            return None
        if isinstance(self.file_level, int):
            return self.file_level
        return LOG_LEVEL_NAME_TO_INT[self.file_level]


# =============================================================================
# Root Configuration
# =============================================================================


class StoreConfig(BaseModel):
    """Root configuration: one store, its Vault provider, and client settings.

    Store Scope Rules:
        A namespaced `SecretStore` may only read trust material from its own
        namespace, so `caProvider.namespace` must be left unset. A
        `ClusterSecretStore` has no namespace of its own to fall back on, so
        ConfigMap and Secret CA providers must name one explicitly.

    Attributes:
        kind: Store scope.
        namespace: Namespace of the store; fallback for CA lookups.
        provider: Provider block holding the Vault descriptor.
        client: HTTP client settings.
        logging: Application logging configuration.
    """

    model_config = ConfigDict(extra='forbid')

    kind: StoreKind = Field(
        default=StoreKind.SECRET_STORE,
        description='SecretStore or ClusterSecretStore',
    )
    namespace: str = Field(
        min_length=1,
        description='Namespace of the store, used as the CA lookup fallback',
    )
    provider: ProviderSpec = Field(
        description='Provider block; must contain a vault entry',
    )
    client: ClientSettings = Field(
        default_factory=ClientSettings,
        description='HTTP client settings',
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description='Application logging configuration',
    )

    @model_validator(mode='after')
    def validate_ca_provider_namespace_scope(self) -> Self:
        """Enforce the store scope rules for the CA provider namespace.

        Returns:
            The validated configuration.

        Raises:
            ValueError: If the CA provider namespace conflicts with the store kind.
        """
        ca_provider: CAProvider | None = self.provider.vault.ca_provider
        if ca_provider is None:
            return self

        if self.kind is StoreKind.SECRET_STORE and ca_provider.namespace is not None:
            raise ValueError(
                'caProvider.namespace must not be set for a namespaced '
                f'SecretStore (got {ca_provider.namespace!r})'
            )

        requires_object: bool = ca_provider.provider_type is not CAProviderType.INLINE
        if (
            self.kind is StoreKind.CLUSTER_SECRET_STORE
            and requires_object
            and ca_provider.namespace is None
        ):
            raise ValueError(
                'caProvider.namespace is required for a ClusterSecretStore '
                f'using a {ca_provider.provider_type.value} CA provider'
            )

        return self

    @property
    def vault(self) -> VaultProvider:
        """Shortcut to the Vault provider descriptor."""
        return self.provider.vault
