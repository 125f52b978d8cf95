# vault_provider/common/truststore_context.py
"""
SSL Context Factory using the System Trust Store.

Builds SSL contexts that verify certificates against the operating system's
native trust store rather than Python's bundled certifi roots.

Used as the baseline verification mode when no CA provider is configured and
`ClientSettings.use_truststore` is enabled, e.g. in clusters where the Vault
certificate is issued by an internal CA that is installed on the nodes.

Dependencies:
    - truststore: Imported lazily, so environments that never enable
      `use_truststore` do not need it at import time.
"""

import ssl
from ssl import SSLContext

__all__: list[str] = ['build_truststore_ssl_context']


def build_truststore_ssl_context() -> SSLContext:
    """
    Create an SSLContext using truststore for system certificate validation.

    Returns:
        SSLContext: Configured SSLContext using OS trust store.

    Raises:
        RuntimeError: If truststore is not installed.
    """
    try:
        import truststore  # noqa: PLC0415
    except ImportError as import_error:
        raise RuntimeError(
            'truststore is required when use_truststore=True; '
            'install it with: pip install truststore'
        ) from import_error

    ssl_context: SSLContext = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    return ssl_context
