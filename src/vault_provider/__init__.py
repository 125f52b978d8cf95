# vault_provider/__init__.py
"""
Vault Provider - secure Vault client configuration with pluggable CA sources.

Builds httpx clients for talking to a Vault server over TLS, where the CA
certificates used to verify the server come from a ConfigMap, a Secret, or
inline PEM data referenced by the provider descriptor, and the TLS SNI
hostname is derived from the configured server URL.

Quick Start:
    >>> from vault_provider import KubernetesObjectStore, VaultClient, load_config
    >>>
    >>> config = load_config('config/store.yaml')
    >>> store = KubernetesObjectStore.from_environment()
    >>> with VaultClient.from_config(config, store) as vault:
    ...     vault.http_client.get(f'{vault.address}/v1/sys/health')

Lower-level building blocks:
    - CAResolverRegistry: resolves a CAProvider to PEM bytes
    - SecureConfigBuilder: turns a VaultProvider into a SecureClientConfig
    - RequestContext: cancellation and deadline for object store lookups

Failure policy:
    - Unobtainable CA material raises a TrustSourceError subclass.
    - A malformed server URL only leaves the SNI hostname empty and is
      reported in SecureClientConfig.warnings.
"""

__version__ = '0.1.0'

from vault_provider.ca_resolver import (
    CAResolver,
    CAResolverRegistry,
    ResolvedTrustMaterial,
    ResolverNotFoundError,
    TrustFieldMissingError,
    TrustMaterialInvalidError,
    TrustSourceAccessError,
    TrustSourceCancelledError,
    TrustSourceError,
    TrustSourceNotFoundError,
)
from vault_provider.client import VaultClient
from vault_provider.common import setup_logger
from vault_provider.config import (
    CAProvider,
    CAProviderType,
    ClientSettings,
    StoreConfig,
    StoreKind,
    VaultProvider,
    load_config,
)
from vault_provider.context import (
    ContextCancelledError,
    DeadlineExceededError,
    RequestContext,
)
from vault_provider.object_store import (
    InMemoryObjectStore,
    KubernetesObjectStore,
    ObjectDocument,
    ObjectKind,
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
)
from vault_provider.secure_config import (
    SecureClientConfig,
    SecureConfigBuilder,
    TLSClientConfig,
    new_config,
)

__all__: list[str] = [
    'CAProvider',
    'CAProviderType',
    'CAResolver',
    'CAResolverRegistry',
    'ClientSettings',
    'ContextCancelledError',
    'DeadlineExceededError',
    'InMemoryObjectStore',
    'KubernetesObjectStore',
    'ObjectDocument',
    'ObjectKind',
    'ObjectNotFoundError',
    'ObjectStore',
    'ObjectStoreError',
    'RequestContext',
    'ResolvedTrustMaterial',
    'ResolverNotFoundError',
    'SecureClientConfig',
    'SecureConfigBuilder',
    'StoreConfig',
    'StoreKind',
    'TLSClientConfig',
    'TrustFieldMissingError',
    'TrustMaterialInvalidError',
    'TrustSourceAccessError',
    'TrustSourceCancelledError',
    'TrustSourceError',
    'TrustSourceNotFoundError',
    'VaultClient',
    'VaultProvider',
    '__version__',
    'load_config',
    'new_config',
    'setup_logger',
]
