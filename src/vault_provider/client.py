# vault_provider/client.py
"""
Vault backend client facade.

VaultClient is the constructor-side caller of the secure config builder. It
builds a SecureClientConfig exactly once, during __init__, and owns it until
closed. A build failure propagates out of the constructor, so a VaultClient
instance always carries a complete configuration; there is no
half-configured client.

Secret read/write operations, authentication, and token renewal are left to
the code that uses `http_client`.

Usage:
------
    config = load_config('config/store.yaml')
    store = KubernetesObjectStore.from_environment()

    with VaultClient.from_config(config, store) as vault:
        response = vault.http_client.get(f'{vault.address}/v1/sys/health')
"""

import logging
from types import TracebackType
from typing import Self

import httpx

from vault_provider.config import ClientSettings, StoreConfig, VaultProvider
from vault_provider.context import RequestContext
from vault_provider.object_store import ObjectStore
from vault_provider.secure_config import SecureClientConfig, SecureConfigBuilder

__all__: list[str] = ['VaultClient']

logger: logging.Logger = logging.getLogger(__name__)


class VaultClient:
    """
    Holds the secure HTTP client for one Vault provider.

    Thread Safety:
        The underlying httpx.Client is thread-safe for concurrent requests.
        Construction shares no state with other VaultClient instances.

    Example:
        >>> with VaultClient(provider, store, namespace='secrets') as vault:
        ...     vault.config.tls.server_name
        'vault.example.com'
    """

    def __init__(
        self,
        provider: VaultProvider,
        object_store: ObjectStore,
        namespace: str,
        settings: ClientSettings | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """
        Build the client configuration.

        Args:
            provider: Vault provider descriptor.
            object_store: Store used to resolve the CA provider, if any.
            namespace: Namespace of the owning store.
            settings: HTTP client settings.
            context: Cancellation and deadline for the CA lookup.

        Raises:
            TrustSourceError: If the configured CA material is unobtainable.
        """
        builder = SecureConfigBuilder.for_object_store(object_store, settings)
        self._provider: VaultProvider = provider
        self._config: SecureClientConfig = builder.build(provider, namespace, context)

        for warning in self._config.warnings:
            logger.debug('Client built with warning: %s', warning)

        logger.info(
            'Initialized VaultClient: server=%r, namespace=%r',
            provider.server,
            namespace,
        )

    @classmethod
    def from_config(
        cls,
        config: StoreConfig,
        object_store: ObjectStore,
        context: RequestContext | None = None,
    ) -> Self:
        """
        Create a client from a loaded store configuration.

        Args:
            config: Validated StoreConfig.
            object_store: Store used to resolve the CA provider.
            context: Cancellation and deadline for the CA lookup.

        Returns:
            Initialized VaultClient.
        """
        return cls(
            provider=config.vault,
            object_store=object_store,
            namespace=config.namespace,
            settings=config.client,
            context=context,
        )

    @property
    def provider(self) -> VaultProvider:
        """Descriptor this client was built from."""
        return self._provider

    @property
    def config(self) -> SecureClientConfig:
        """The secure configuration built at construction."""
        return self._config

    @property
    def http_client(self) -> httpx.Client:
        """HTTP client carrying the secure transport."""
        return self._config.http_client

    @property
    def address(self) -> str:
        """Vault server address."""
        return self._config.address

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """
        Close the HTTP client and release connection pool resources.

        Safe to call multiple times.
        """
        self._config.close()
        logger.debug('VaultClient closed')

    def __enter__(self) -> Self:
        """Enter context manager, returning self."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager, closing the HTTP client."""
        self.close()
