# vault_provider/common/__init__.py

from vault_provider.common.logger import setup_logger
from vault_provider.common.truststore_context import build_truststore_ssl_context

__all__: list[str] = [
    'build_truststore_ssl_context',
    'setup_logger',
]
