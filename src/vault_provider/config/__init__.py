"""
Configuration Package for the Vault provider.

Exposes the configuration models and the loader function.
"""

from vault_provider.config.config_models import (
    CAProvider,
    CAProviderType,
    ClientSettings,
    LoggingConfig,
    ProviderSpec,
    StoreConfig,
    StoreKind,
    VaultProvider,
)
from vault_provider.config.loader import load_config

__all__: list[str] = [
    'CAProvider',
    'CAProviderType',
    'ClientSettings',
    'LoggingConfig',
    'ProviderSpec',
    'StoreConfig',
    'StoreKind',
    'VaultProvider',
    'load_config',
]
