# vault_provider/ca_resolver.py
"""
CA material resolution from pluggable trust sources.

A CAProvider descriptor names a kind of source (ConfigMap, Secret, Inline)
and where in it the PEM bundle lives. Each source kind has one CAResolver
implementation; the CAResolverRegistry maps kinds to resolvers and is the
single entry point used by the secure config builder.

Design Decisions:
-----------------
- One resolver per source kind. Supporting a new kind means adding a
  CAProviderType member and a CAResolver subclass, then passing it to the
  registry. Callers of `CAResolverRegistry.resolve()` do not change.

- Immutable after initialization: the registry is frozen with
  MappingProxyType, so concurrent build calls can share one instance.

- No retries and no caching. Every call performs at most one object store
  lookup and returns the stored bytes unchanged.

- Every failure is fatal to the caller and maps to exactly one exception
  class below, so callers can tell a missing object from a missing field
  from an unreachable store.

Usage:
------
    registry = CAResolverRegistry.for_object_store(store)
    material = registry.resolve(ca_provider, 'secrets', RequestContext.background())
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from types import MappingProxyType
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict

from vault_provider.config import CAProvider, CAProviderType
from vault_provider.context import ContextCancelledError, RequestContext
from vault_provider.object_store import (
    ObjectDocument,
    ObjectKind,
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
)

__all__: list[str] = [
    'CAResolver',
    'CAResolverRegistry',
    'ConfigMapCAResolver',
    'InlineCAResolver',
    'ResolvedTrustMaterial',
    'ResolverNotFoundError',
    'SecretCAResolver',
    'TrustFieldMissingError',
    'TrustMaterialInvalidError',
    'TrustSourceAccessError',
    'TrustSourceCancelledError',
    'TrustSourceError',
    'TrustSourceNotFoundError',
]

logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Exception Hierarchy
# =============================================================================


class TrustSourceError(Exception):
    """
    Base exception for trust material that was requested but is unusable.

    Catch this to handle every fatal CA resolution failure.

    Attributes:
        source_kind: Kind of CA provider that failed.
        namespace: Namespace the lookup targeted, None for inline sources.
        name: Object name from the descriptor.
        key: Field name from the descriptor.
    """

    def __init__(
        self,
        message: str,
        source_kind: CAProviderType,
        namespace: str | None = None,
        name: str = '',
        key: str = '',
    ) -> None:
        super().__init__(message)
        self.source_kind: CAProviderType = source_kind
        self.namespace: str | None = namespace
        self.name: str = name
        self.key: str = key


class TrustSourceNotFoundError(TrustSourceError):
    """Raised when the referenced object does not exist."""


class TrustFieldMissingError(TrustSourceError):
    """Raised when the object exists but the requested field is absent or empty."""


class TrustSourceAccessError(TrustSourceError):
    """Raised when the object store lookup itself failed."""


class TrustSourceCancelledError(TrustSourceAccessError):
    """Raised when the lookup was cancelled or ran past its deadline."""


class TrustMaterialInvalidError(TrustSourceError):
    """Raised when resolved bytes cannot be loaded as PEM certificates."""


class ResolverNotFoundError(Exception):
    """
    Raised when no resolver is registered for a CA provider kind.

    Attributes:
        source_kind: The kind that was requested.
        available_kinds: Kinds the registry can resolve.
    """

    def __init__(
        self,
        source_kind: CAProviderType,
        available_kinds: list[CAProviderType],
    ) -> None:
        self.source_kind: CAProviderType = source_kind
        self.available_kinds: list[CAProviderType] = available_kinds
        super().__init__(
            f"No CA resolver registered for '{source_kind.value}'. "
            f'Available: {", ".join(sorted(kind.value for kind in available_kinds))}'
        )


# =============================================================================
# Result
# =============================================================================


class ResolvedTrustMaterial(BaseModel):
    """
    PEM bytes extracted from a trust source.

    Attributes:
        pem: Certificate bundle exactly as stored, never re-encoded.
        source: Human-readable description of where it came from.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    pem: bytes
    source: str


# =============================================================================
# Resolvers
# =============================================================================


class CAResolver(ABC):
    """Resolves CA material for exactly one CAProviderType."""

    source_kind: ClassVar[CAProviderType]

    @abstractmethod
    def resolve(
        self,
        descriptor: CAProvider,
        namespace: str,
        context: RequestContext,
    ) -> ResolvedTrustMaterial:
        """
        Fetch the PEM bundle described by `descriptor`.

        Args:
            descriptor: CA provider descriptor of this resolver's kind.
            namespace: Fallback namespace when the descriptor sets none.
            context: Cancellation and deadline for any lookup.

        Returns:
            Non-empty PEM bytes and their source.

        Raises:
            TrustSourceError: One of its subclasses, on any failure.
        """


class ObjectFieldCAResolver(CAResolver):
    """
    Shared logic for sources that are one field of a stored object.

    Subclasses only pick the object kind to read.
    """

    object_kind: ClassVar[ObjectKind]

    def __init__(self, object_store: ObjectStore) -> None:
        self._object_store: ObjectStore = object_store

    def resolve(
        self,
        descriptor: CAProvider,
        namespace: str,
        context: RequestContext,
    ) -> ResolvedTrustMaterial:
        target_namespace: str = descriptor.namespace or namespace
        reference: str = f'{self.object_kind.value} {target_namespace}/{descriptor.name}'
        error_fields: dict[str, Any] = {
            'source_kind': self.source_kind,
            'namespace': target_namespace,
            'name': descriptor.name,
            'key': descriptor.key,
        }

        if not descriptor.name:
            raise TrustSourceNotFoundError(
                f'CA provider of type {self.source_kind.value} has no object name',
                **error_fields,
            )

        try:
            document: ObjectDocument = self._object_store.get(
                self.object_kind,
                target_namespace,
                descriptor.name,
                context,
            )
        except ContextCancelledError as error:
            raise TrustSourceCancelledError(
                f'Lookup of {reference} aborted: {error}', **error_fields
            ) from error
        except ObjectNotFoundError as error:
            raise TrustSourceNotFoundError(
                f'{reference} not found', **error_fields
            ) from error
        except ObjectStoreError as error:
            raise TrustSourceAccessError(
                f'Failed to read {reference}: {error}', **error_fields
            ) from error

        pem: bytes | None = document.data.get(descriptor.key) if descriptor.key else None
        if not pem:
            available_fields: str = ', '.join(sorted(document.data)) or '<none>'
            raise TrustFieldMissingError(
                f'{reference} has no non-empty field {descriptor.key!r} '
                f'(available: {available_fields})',
                **error_fields,
            )

        logger.debug(
            'Resolved CA material from %s key %r (%d bytes)',
            reference,
            descriptor.key,
            len(pem),
        )
        return ResolvedTrustMaterial(pem=pem, source=f'{reference}[{descriptor.key}]')


class ConfigMapCAResolver(ObjectFieldCAResolver):
    """Reads CA material from a ConfigMap field."""

    source_kind = CAProviderType.CONFIG_MAP
    object_kind = ObjectKind.CONFIG_MAP


class SecretCAResolver(ObjectFieldCAResolver):
    """Reads CA material from a Secret field."""

    source_kind = CAProviderType.SECRET
    object_kind = ObjectKind.SECRET


class InlineCAResolver(CAResolver):
    """Returns PEM text embedded directly in the descriptor."""

    source_kind = CAProviderType.INLINE

    def resolve(
        self,
        descriptor: CAProvider,
        namespace: str,
        context: RequestContext,
    ) -> ResolvedTrustMaterial:
        if not descriptor.data:
            raise TrustFieldMissingError(
                'Inline CA provider has no data',
                source_kind=self.source_kind,
            )
        return ResolvedTrustMaterial(
            pem=descriptor.data.encode('utf-8'),
            source='inline data',
        )


# =============================================================================
# Registry
# =============================================================================


class CAResolverRegistry:
    """
    Immutable mapping from CA provider kind to resolver.

    Example:
        >>> registry = CAResolverRegistry.for_object_store(store)
        >>> registry.resolve(descriptor, 'secrets', RequestContext.background()).pem
        b'-----BEGIN CERTIFICATE-----...'
    """

    def __init__(self, resolvers: Iterable[CAResolver]) -> None:
        """
        Initialize the registry.

        Args:
            resolvers: One resolver per supported kind. A later resolver for
                the same kind replaces an earlier one.
        """
        self._resolvers: MappingProxyType[CAProviderType, CAResolver] = (
            MappingProxyType({resolver.source_kind: resolver for resolver in resolvers})
        )

        logger.debug(
            'CAResolverRegistry initialized: %s',
            ', '.join(kind.value for kind in self._resolvers),
        )

    @classmethod
    def for_object_store(cls, object_store: ObjectStore) -> Self:
        """Registry with the built-in resolvers reading from `object_store`."""
        return cls(
            [
                ConfigMapCAResolver(object_store),
                SecretCAResolver(object_store),
                InlineCAResolver(),
            ]
        )

    def get(self, source_kind: CAProviderType) -> CAResolver:
        """
        Get the resolver for a kind.

        Raises:
            ResolverNotFoundError: If no resolver is registered for it.
        """
        try:
            return self._resolvers[source_kind]
        except KeyError:
            raise ResolverNotFoundError(
                source_kind, list(self._resolvers.keys())
            ) from None

    def list_kinds(self) -> list[CAProviderType]:
        """Kinds this registry can resolve."""
        return list(self._resolvers.keys())

    def resolve(
        self,
        descriptor: CAProvider,
        namespace: str,
        context: RequestContext,
    ) -> ResolvedTrustMaterial:
        """
        Dispatch to the resolver registered for `descriptor.provider_type`.

        Raises:
            ResolverNotFoundError: If the kind is not registered.
            TrustSourceError: From the resolver.
        """
        resolver: CAResolver = self.get(descriptor.provider_type)
        return resolver.resolve(descriptor, namespace, context)
