# vault_provider/secure_config.py
"""
Secure client configuration for talking to Vault over TLS.

The builder turns a VaultProvider descriptor into a ready-to-use httpx client
whose transport trusts exactly the CA material the descriptor points at, and
whose TLS handshakes present the server's hostname as SNI.

Build Steps:
------------
1. Baseline: default transport verification (certifi roots, or the OS trust
   store when `ClientSettings.use_truststore` is set), no custom trust store,
   no SNI override.
2. CA resolution, only when `caProvider` is set: the PEM bundle is resolved
   through the CAResolverRegistry and loaded into a fresh SSLContext that
   contains only those certificates. Any failure is raised to the caller.
3. SNI derivation, only after step 2 succeeded: the host of `server` (port
   and IPv6 brackets stripped) becomes the SNI hostname. A server string
   that does not parse, or has no host, leaves the SNI hostname empty and
   adds a warning to the result. It never fails the build.

Failure Classes:
----------------
Trust material that was explicitly requested but cannot be obtained must not
fall back to the system roots, so every TrustSourceError propagates. A bad
server string only loses the SNI override; the connection library still
derives a hostname from the request URL. The two paths are kept apart by
types: CA problems are exceptions, endpoint problems are `ServerNameResult`
warnings, and only the latter feed `SecureClientConfig.warnings`.

Usage:
------
    builder = SecureConfigBuilder.for_object_store(store)
    config = builder.build(provider, 'secrets', RequestContext.with_timeout(10))
    response = config.http_client.get(f'{config.address}/v1/sys/health')
"""

import logging
import ssl
from ssl import SSLContext
from typing import Self
from urllib.parse import SplitResult, urlsplit

import httpx
from pydantic import BaseModel, ConfigDict

from vault_provider.ca_resolver import (
    CAResolverRegistry,
    ResolvedTrustMaterial,
    TrustMaterialInvalidError,
)
from vault_provider.common import build_truststore_ssl_context
from vault_provider.config import CAProvider, ClientSettings, VaultProvider
from vault_provider.context import RequestContext
from vault_provider.object_store import ObjectStore

__all__: list[str] = [
    'SNI_HOSTNAME_EXTENSION',
    'VAULT_NAMESPACE_HEADER',
    'SecureClientConfig',
    'SecureConfigBuilder',
    'ServerNameHook',
    'ServerNameResult',
    'TLSClientConfig',
    'build_trust_store',
    'derive_server_name',
    'new_config',
]

logger: logging.Logger = logging.getLogger(__name__)

# httpx request extension read by httpcore when opening a TLS connection
SNI_HOSTNAME_EXTENSION: str = 'sni_hostname'
VAULT_NAMESPACE_HEADER: str = 'X-Vault-Namespace'


# =============================================================================
# Result Types
# =============================================================================


class TLSClientConfig(BaseModel):
    """
    TLS settings applied to the transport.

    Attributes:
        root_cas: Verification context seeded only with the resolved CA
            certificates. None means the default trust store is used.
        ca_pem: The PEM bytes loaded into `root_cas`, exactly as resolved.
        ca_source: Where `ca_pem` came from.
        server_name: SNI hostname override; empty when unset.
    """

    model_config = ConfigDict(extra='forbid', frozen=True, arbitrary_types_allowed=True)

    root_cas: SSLContext | None = None
    ca_pem: bytes | None = None
    ca_source: str | None = None
    server_name: str = ''


class SecureClientConfig(BaseModel):
    """
    A fully assembled client configuration, owned by the caller.

    Attributes:
        address: Server string as configured.
        tls: TLS settings used by the transport.
        transport: The transport carrying the TLS settings.
        http_client: Client sending every request through `transport`.
        warnings: Non-fatal problems found while building.
    """

    model_config = ConfigDict(extra='forbid', frozen=True, arbitrary_types_allowed=True)

    address: str
    tls: TLSClientConfig
    transport: httpx.HTTPTransport
    http_client: httpx.Client
    warnings: tuple[str, ...] = ()

    def close(self) -> None:
        """Close the HTTP client and its transport."""
        self.http_client.close()


class ServerNameResult(BaseModel):
    """
    Outcome of deriving an SNI hostname: a name, or a warning, never an error.

    Attributes:
        server_name: Hostname to send as SNI; empty when none could be derived.
        warning: Why no hostname was derived, None on success.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    server_name: str = ''
    warning: str | None = None


# =============================================================================
# Building Blocks
# =============================================================================


def _host_as_written(netloc: str) -> str:
    """Host part of a netloc with userinfo, port and IPv6 brackets removed."""
    host_and_port: str = netloc.rpartition('@')[2]
    if host_and_port.startswith('['):
        return host_and_port[1:].partition(']')[0]
    return host_and_port.partition(':')[0]


def derive_server_name(server: str) -> ServerNameResult:
    """
    Extract the hostname to present as SNI from a server URL.

    Works uniformly for DNS names and IP literals; any port is dropped and
    IPv6 brackets are removed. The host keeps the case it was written in.
    A URL whose port is not a valid number is treated as unparseable.

    Args:
        server: Server URL as configured, possibly malformed.

    Returns:
        ServerNameResult with either a hostname or a warning.

    Example:
        >>> derive_server_name('https://vault.example.com:8200').server_name
        'vault.example.com'
        >>> derive_server_name('://invalid-url').server_name
        ''
    """
    try:
        url_parts: SplitResult = urlsplit(server)
        parsed_host: str | None = url_parts.hostname
        # Raises ValueError for a non-numeric or out-of-range port
        url_parts.port  # noqa: B018
    except ValueError as parse_error:
        return ServerNameResult(
            warning=f'Cannot parse server URL {server!r}: {parse_error}'
        )

    if not parsed_host:
        return ServerNameResult(warning=f'Server URL {server!r} has no host')

    host: str = _host_as_written(url_parts.netloc)

    if any(character.isspace() or not character.isprintable() for character in host):
        return ServerNameResult(
            warning=f'Server URL {server!r} has an invalid host {host!r}'
        )

    return ServerNameResult(server_name=host)


def build_trust_store(
    material: ResolvedTrustMaterial,
    descriptor: CAProvider,
) -> SSLContext:
    """
    Create a client SSLContext that trusts only the given certificates.

    Args:
        material: Resolved PEM bundle.
        descriptor: CA provider the bundle came from, for error reporting.

    Returns:
        SSLContext with certificate and hostname verification enabled.

    Raises:
        TrustMaterialInvalidError: If the bytes hold no loadable certificate.
    """
    try:
        return ssl.create_default_context(cadata=material.pem.decode('ascii'))
    except (ssl.SSLError, ValueError) as error:
        raise TrustMaterialInvalidError(
            f'Failed to load CA certificates from {material.source}: {error}',
            source_kind=descriptor.provider_type,
            namespace=descriptor.namespace,
            name=descriptor.name,
            key=descriptor.key,
        ) from error


class ServerNameHook:
    """
    httpx request hook that pins the SNI hostname for every request.

    Attributes:
        server_name: Hostname sent in the TLS ClientHello.
    """

    def __init__(self, server_name: str) -> None:
        self.server_name: str = server_name

    def __call__(self, request: httpx.Request) -> None:
        request.extensions[SNI_HOSTNAME_EXTENSION] = self.server_name

    def __repr__(self) -> str:
        return f'ServerNameHook(server_name={self.server_name!r})'


# =============================================================================
# Builder
# =============================================================================


class SecureConfigBuilder:
    """
    Builds SecureClientConfig instances from VaultProvider descriptors.

    The builder is stateless between calls: it holds only the resolver
    registry and client settings, both read-only, so one instance may be
    shared by threads building clients concurrently. Every build returns
    new objects and keeps no reference to them.

    Example:
        >>> builder = SecureConfigBuilder.for_object_store(store)
        >>> config = builder.build(provider, 'secrets')
        >>> config.tls.server_name
        'vault.example.com'
    """

    def __init__(
        self,
        resolvers: CAResolverRegistry,
        settings: ClientSettings | None = None,
    ) -> None:
        """
        Initialize the builder.

        Args:
            resolvers: Registry used to resolve CA providers.
            settings: HTTP client settings. Defaults to ClientSettings().
        """
        self._resolvers: CAResolverRegistry = resolvers
        self._settings: ClientSettings = settings or ClientSettings()

    @classmethod
    def for_object_store(
        cls,
        object_store: ObjectStore,
        settings: ClientSettings | None = None,
    ) -> Self:
        """Builder using the built-in resolvers over `object_store`."""
        return cls(CAResolverRegistry.for_object_store(object_store), settings)

    @property
    def settings(self) -> ClientSettings:
        """HTTP client settings applied to every build."""
        return self._settings

    def build(
        self,
        spec: VaultProvider,
        namespace: str,
        context: RequestContext | None = None,
    ) -> SecureClientConfig:
        """
        Build a client configuration for `spec`.

        Args:
            spec: Vault provider descriptor.
            namespace: Namespace of the owning store; fallback namespace for
                CA lookups.
            context: Cancellation and deadline for CA lookups. Defaults to a
                background context.

        Returns:
            A complete configuration with a usable HTTP client.

        Raises:
            TrustSourceError: If a configured CA provider cannot be resolved
                or its material cannot be loaded.
            ResolverNotFoundError: If the CA provider kind is not registered.
            RuntimeError: If use_truststore is set but truststore is missing.
        """
        context = context or RequestContext.background()
        warnings: list[str] = []
        tls_config = TLSClientConfig()
        verify: SSLContext | bool

        if spec.ca_provider is not None:
            material: ResolvedTrustMaterial = self._resolvers.resolve(
                spec.ca_provider, namespace, context
            )
            root_cas: SSLContext = build_trust_store(material, spec.ca_provider)

            server_name_result: ServerNameResult = derive_server_name(spec.server)
            if server_name_result.warning is not None:
                logger.warning(
                    'SNI hostname left unset: %s', server_name_result.warning
                )
                warnings.append(server_name_result.warning)

            tls_config = TLSClientConfig(
                root_cas=root_cas,
                ca_pem=material.pem,
                ca_source=material.source,
                server_name=server_name_result.server_name,
            )
            verify = root_cas
        else:
            logger.debug('No CA provider configured; using default trust store')
            verify = self._baseline_verify()

        transport, http_client = self._build_http_client(spec, tls_config, verify)

        logger.info(
            'Built secure client config: server=%r, ca_source=%s, server_name=%r',
            spec.server,
            tls_config.ca_source or 'default',
            tls_config.server_name,
        )

        return SecureClientConfig(
            address=spec.server,
            tls=tls_config,
            transport=transport,
            http_client=http_client,
            warnings=tuple(warnings),
        )

    def _baseline_verify(self) -> SSLContext | bool:
        """Verification used when no CA provider is configured."""
        if self._settings.use_truststore:
            logger.debug('Building SSLContext from the OS trust store')
            return build_truststore_ssl_context()
        return True

    def _build_http_client(
        self,
        spec: VaultProvider,
        tls_config: TLSClientConfig,
        verify: SSLContext | bool,
    ) -> tuple[httpx.HTTPTransport, httpx.Client]:
        """Assemble the transport and the client that sends through it."""
        connect_timeout: int
        read_timeout: int
        connect_timeout, read_timeout = self._settings.request_timeout

        transport = httpx.HTTPTransport(
            verify=verify,
            limits=httpx.Limits(
                max_connections=self._settings.max_connections,
                max_keepalive_connections=self._settings.max_keepalive_connections,
            ),
        )

        headers: dict[str, str] = {}
        if spec.namespace:
            headers[VAULT_NAMESPACE_HEADER] = spec.namespace

        request_hooks: list[ServerNameHook] = []
        if tls_config.server_name:
            request_hooks.append(ServerNameHook(tls_config.server_name))

        http_client = httpx.Client(
            transport=transport,
            headers=headers,
            timeout=httpx.Timeout(
                connect=connect_timeout,
                read=read_timeout,
                write=connect_timeout,
                pool=connect_timeout,
            ),
            event_hooks={'request': request_hooks, 'response': []},
        )
        return transport, http_client


def new_config(
    spec: VaultProvider,
    namespace: str,
    object_store: ObjectStore,
    context: RequestContext | None = None,
    settings: ClientSettings | None = None,
) -> SecureClientConfig:
    """
    One-shot helper: build a configuration with the built-in resolvers.

    See SecureConfigBuilder.build for arguments and errors.
    """
    builder = SecureConfigBuilder.for_object_store(object_store, settings)
    return builder.build(spec, namespace, context)
