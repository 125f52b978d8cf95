"""
Shared pytest fixtures for vault_provider tests.

Fixtures are automatically discovered by pytest.
"""

from typing import Any

import pytest

from vault_provider.config import CAProvider, CAProviderType, VaultProvider
from vault_provider.context import RequestContext
from vault_provider.object_store import InMemoryObjectStore
from vault_provider.secure_config import SecureConfigBuilder

TEST_NAMESPACE: str = 'test-namespace'
TEST_CA_CONFIG_MAP: str = 'test-ca-bundle'
TEST_CA_SECRET: str = 'test-ca-secret'
TEST_CA_KEY: str = 'ca.crt'

# DigiCert Global Root CA
TEST_CA_CERT: str = """-----BEGIN CERTIFICATE-----
MIIDrzCCApegAwIBAgIQCDvgVpBCRrGhdWrJWZHHSjANBgkqhkiG9w0BAQUFADBh
MQswCQYDVQQGEwJVUzEVMBMGA1UEChMMRGlnaUNlcnQgSW5jMRkwFwYDVQQLExB3
d3cuZGlnaWNlcnQuY29tMSAwHgYDVQQDExdEaWdpQ2VydCBHbG9iYWwgUm9vdCBD
QTAeFw0wNjExMTAwMDAwMDBaFw0zMTExMTAwMDAwMDBaMGExCzAJBgNVBAYTAlVT
MRUwEwYDVQQKEwxEaWdpQ2VydCBJbmMxGTAXBgNVBAsTEHd3dy5kaWdpY2VydC5j
b20xIDAeBgNVBAMTF0RpZ2lDZXJ0IEdsb2JhbCBSb290IENBMIIBIjANBgkqhkiG
9w0BAQEFAAOCAQ8AMIIBCgKCAQEA4jvhEXLeqKTTo1eqUKKPC3eQyaKl7hLOllsB
CSDMAZOnTjC3U/dDxGkAV53ijSLdhwZAAIEJzs4bg7/fzTtxRuLWZscFs3YnFo97
nh6Vfe63SKMI2tavegw5BmV/Sl0fvBf4q77uKNd0f3p4mVmFaG5cIzJLv07A6Fpt
43C/dxC//AH2hdmoRBBYMql1GNXRor5H4idq9Joz+EkIYIvUX7Q6hL+hqkpMfT7P
T19sdl6gSzeRntwi5m3OFBqOasv+zbMUZBfHWymeMr/y7vrTC0LUq7dBMtoM1O/4
gdW7jVg/tRvoSSiicNoxBN33shbyTApOB6jtSj1etX+jkMOvJwIDAQABo2MwYTAO
BgNVHQ8BAf8EBAMCAYYwDwYDVR0TAQH/BAUwAwEB/zAdBgNVHQ4EFgQUA95QNVbR
TLtm8KPiGxvDl7I90VUwHwYDVR0jBBgwFoAUA95QNVbRTLtm8KPiGxvDl7I90VUw
DQYJKoZIhvcNAQEFBQADggEBAMucN6pIExIK+t1EnE9SsPTfrgT1eXkIoyQY/Esr
hMAtudXH/vTBH1jLuG2cenTnmCmrEbXjcKChzUyImZOMkXDiqw8cvpOp/2PV5Adg
06O/nVsJ8dWO41P0jmP6P6fbtGbfYmbW0W5BjfIttep3Sp+dWOIrWcBAI+0tKIJF
PnlUkiaY4IBIqDfv8NZ5YBberOgOzW6sRBc4L0na4UU+Krk2U886UAb3LujEV0ls
YSEY1QSteDwsOoBrp+uvFRTp2InBuThs4pFsiv9kuXclVzDAGySj4dzp30d8tbQk
CAUw7C29C79Fv1C5qfPrmAESrciIxpg0X40KPMbp1ZWVbd4=
-----END CERTIFICATE-----
"""


# =============================================================================
# Object Store Fixtures
# =============================================================================


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    """
    Provide an in-memory store holding the test CA in a ConfigMap and a Secret.

    Returns:
        InMemoryObjectStore with both objects in TEST_NAMESPACE.
    """
    store = InMemoryObjectStore()
    store.add_config_map(TEST_NAMESPACE, TEST_CA_CONFIG_MAP, {TEST_CA_KEY: TEST_CA_CERT})
    store.add_secret(TEST_NAMESPACE, TEST_CA_SECRET, {TEST_CA_KEY: TEST_CA_CERT})
    return store


@pytest.fixture
def context() -> RequestContext:
    """Provide a background context with no deadline."""
    return RequestContext.background()


# =============================================================================
# Descriptor Fixtures
# =============================================================================


@pytest.fixture
def config_map_ca_provider() -> CAProvider:
    """Provide a CA provider pointing at the test ConfigMap."""
    return CAProvider(
        provider_type=CAProviderType.CONFIG_MAP,
        name=TEST_CA_CONFIG_MAP,
        key=TEST_CA_KEY,
    )


@pytest.fixture
def secret_ca_provider() -> CAProvider:
    """Provide a CA provider pointing at the test Secret."""
    return CAProvider(
        provider_type=CAProviderType.SECRET,
        name=TEST_CA_SECRET,
        key=TEST_CA_KEY,
    )


@pytest.fixture
def inline_ca_provider() -> CAProvider:
    """Provide a CA provider carrying the test CA inline."""
    return CAProvider(provider_type=CAProviderType.INLINE, data=TEST_CA_CERT)


@pytest.fixture
def vault_provider(config_map_ca_provider: CAProvider) -> VaultProvider:
    """Provide a Vault descriptor with a ConfigMap CA provider."""
    return VaultProvider(
        server='https://vault.example.com:8200',
        ca_provider=config_map_ca_provider,
    )


@pytest.fixture
def builder(object_store: InMemoryObjectStore) -> SecureConfigBuilder:
    """Provide a builder reading from the test object store."""
    return SecureConfigBuilder.for_object_store(object_store)


# =============================================================================
# Raw Configuration Fixtures
# =============================================================================


@pytest.fixture
def raw_store_config() -> dict[str, Any]:
    """
    Provide a store configuration as it appears in YAML.

    Returns:
        Dictionary using the persisted camelCase field names.
    """
    return {
        'kind': 'SecretStore',
        'namespace': TEST_NAMESPACE,
        'provider': {
            'vault': {
                'server': 'https://vault.example.com:8200',
                'path': 'secret',
                'version': 'v2',
                'caProvider': {
                    'type': 'ConfigMap',
                    'name': TEST_CA_CONFIG_MAP,
                    'key': TEST_CA_KEY,
                },
            },
        },
        'client': {
            'request_timeout': [5, 30],
        },
        'logging': {
            'console_level': 'DEBUG',
        },
    }
