# vault_provider/object_store.py
"""
Read-only object store collaborators for CA material lookups.

The CA resolver only ever needs a single operation: fetch one namespaced
ConfigMap or Secret and read its data mapping. This module defines that
contract (ObjectStore) and two implementations:

- KubernetesObjectStore: reads from the Kubernetes API through the official
  `kubernetes` client. ConfigMap `data` values are UTF-8 encoded; ConfigMap
  `binaryData` and Secret `data` values arrive base64-encoded and are decoded.
- InMemoryObjectStore: a dictionary-backed store for local runs and tests.

Both honor the RequestContext: the context is checked before the lookup. The
Kubernetes store runs the API read on a worker thread, passes the remaining
time as the request timeout, and re-checks the context while it waits, so a
cancel from another thread aborts the lookup without waiting for the read.

Error Contract:
---------------
- ObjectNotFoundError: the object does not exist.
- ObjectStoreError: any other failure talking to the store.
- ContextCancelledError / DeadlineExceededError: propagated from the context.
"""

import base64
import binascii
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Any, Self

import urllib3
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.exceptions import ApiException
from kubernetes.config import ConfigException
from pydantic import BaseModel, ConfigDict, Field

from vault_provider.context import (
    ContextCancelledError,
    DeadlineExceededError,
    RequestContext,
)

__all__: list[str] = [
    'InMemoryObjectStore',
    'KubernetesObjectStore',
    'ObjectDocument',
    'ObjectKind',
    'ObjectNotFoundError',
    'ObjectStore',
    'ObjectStoreError',
]

logger: logging.Logger = logging.getLogger(__name__)

HTTP_STATUS_NOT_FOUND: int = 404

# Longest a read waits before re-checking its context for a cancel
CONTEXT_POLL_INTERVAL_SECONDS: float = 0.05


# =============================================================================
# Models
# =============================================================================


class ObjectKind(str, Enum):
    """Kinds of document the store can serve."""

    CONFIG_MAP = 'ConfigMap'
    SECRET = 'Secret'


class ObjectDocument(BaseModel):
    """
    A fetched document: identity plus its data mapping.

    Attributes:
        kind: Document kind.
        namespace: Namespace the document lives in.
        name: Document name.
        data: Field name to raw value. Values are always bytes, whatever
            encoding the backing store used on the wire.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    kind: ObjectKind
    namespace: str
    name: str
    data: dict[str, bytes] = Field(default_factory=dict)

    @property
    def reference(self) -> str:
        """Human-readable `Kind namespace/name` reference."""
        return f'{self.kind.value} {self.namespace}/{self.name}'


# =============================================================================
# Exceptions
# =============================================================================


class ObjectStoreError(Exception):
    """
    Raised when the object store cannot serve a lookup.

    Attributes:
        kind: Kind of the requested object.
        namespace: Namespace of the requested object.
        name: Name of the requested object.
    """

    def __init__(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        message: str,
    ) -> None:
        self.kind: ObjectKind = kind
        self.namespace: str = namespace
        self.name: str = name
        super().__init__(message)


class ObjectNotFoundError(ObjectStoreError):
    """Raised when the requested object does not exist."""

    def __init__(self, kind: ObjectKind, namespace: str, name: str) -> None:
        super().__init__(
            kind,
            namespace,
            name,
            f'{kind.value} {namespace}/{name} not found',
        )


# =============================================================================
# Store Contract
# =============================================================================


class ObjectStore(ABC):
    """Read-only, namespaced key/value document lookup."""

    @abstractmethod
    def get(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        context: RequestContext,
    ) -> ObjectDocument:
        """
        Fetch a single document.

        Args:
            kind: Document kind.
            namespace: Namespace to read from.
            name: Document name.
            context: Cancellation and deadline for the lookup.

        Returns:
            The fetched document.

        Raises:
            ObjectNotFoundError: If the document does not exist.
            ObjectStoreError: On any other store failure.
            ContextCancelledError: If the context is cancelled or expired.
        """


# =============================================================================
# Kubernetes Store
# =============================================================================


def _decode_base64_values(
    encoded: Mapping[str, str] | None,
    document_reference: str,
) -> dict[str, bytes]:
    """Decode a mapping of base64 strings as served by the Kubernetes API."""
    decoded: dict[str, bytes] = {}
    for field_name, encoded_value in (encoded or {}).items():
        try:
            decoded[field_name] = base64.b64decode(encoded_value, validate=True)
        except (binascii.Error, ValueError) as error:
            # Skip only this field; a lookup of it reports it as missing
            logger.warning(
                'Ignoring field %r of %s: value is not valid base64 (%s)',
                field_name,
                document_reference,
                error,
            )
    return decoded


class KubernetesObjectStore(ObjectStore):
    """
    Object store backed by the Kubernetes core/v1 API.

    Example:
        >>> store = KubernetesObjectStore.from_environment()
        >>> document = store.get(
        ...     ObjectKind.CONFIG_MAP, 'vault', 'vault-ca', RequestContext.background()
        ... )
        >>> document.data['ca.crt'][:27]
        b'-----BEGIN CERTIFICATE-----'
    """

    def __init__(self, core_v1: k8s_client.CoreV1Api, max_workers: int = 4) -> None:
        """
        Initialize the store around an API client.

        Args:
            core_v1: Configured CoreV1Api instance.
            max_workers: Threads available for concurrent API reads.
        """
        self._core_v1: k8s_client.CoreV1Api = core_v1
        self._executor: ThreadPoolExecutor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix='vault-provider-k8s',
        )

    @classmethod
    def from_environment(cls) -> Self:
        """
        Build a store from the ambient cluster configuration.

        Tries in-cluster service account configuration first, then falls back
        to the local kubeconfig.

        Raises:
            ConfigException: If neither configuration source is usable.
        """
        try:
            k8s_config.load_incluster_config()
            logger.debug('Loaded in-cluster Kubernetes configuration')
        except ConfigException:
            k8s_config.load_kube_config()
            logger.debug('Loaded Kubernetes configuration from kubeconfig')

        return cls(k8s_client.CoreV1Api())

    def get(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        context: RequestContext,
    ) -> ObjectDocument:
        context.check()

        request_timeout: float | None = context.remaining_seconds()
        if request_timeout is not None and request_timeout <= 0:
            # The API client treats a zero timeout as no timeout at all
            raise DeadlineExceededError('context deadline exceeded')

        reader: Callable[..., Any] = (
            self._core_v1.read_namespaced_config_map
            if kind is ObjectKind.CONFIG_MAP
            else self._core_v1.read_namespaced_secret
        )

        logger.debug('Reading %s %s/%s', kind.value, namespace, name)

        pending_read: Future[Any] = self._executor.submit(
            reader,
            name=name,
            namespace=namespace,
            _request_timeout=request_timeout,
        )

        try:
            raw_object: Any = self._wait_for_read(pending_read, context)
        except ApiException as error:
            if error.status == HTTP_STATUS_NOT_FOUND:
                raise ObjectNotFoundError(kind, namespace, name) from error
            raise ObjectStoreError(
                kind,
                namespace,
                name,
                f'Failed to read {kind.value} {namespace}/{name}: '
                f'HTTP {error.status} {error.reason}',
            ) from error
        except urllib3.exceptions.HTTPError as error:
            # A transport timeout caused by our own deadline is a cancellation
            context.check()
            raise ObjectStoreError(
                kind,
                namespace,
                name,
                f'Failed to read {kind.value} {namespace}/{name}: {error}',
            ) from error

        return self._to_document(kind, namespace, name, raw_object)

    def close(self) -> None:
        """Stop accepting reads; reads already in flight are abandoned."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _wait_for_read(pending_read: Future[Any], context: RequestContext) -> Any:
        """
        Wait for an API read, polling the context between short waits.

        A cancel or deadline observed while waiting aborts the wait; the
        abandoned read finishes in the background and its result is dropped.

        Raises:
            ContextCancelledError: If the context is cancelled while waiting.
            DeadlineExceededError: If the deadline passes while waiting.
        """
        try:
            while True:
                context.check()

                wait_seconds: float = CONTEXT_POLL_INTERVAL_SECONDS
                remaining_seconds: float | None = context.remaining_seconds()
                if remaining_seconds is not None:
                    wait_seconds = min(wait_seconds, remaining_seconds)

                done, _ = wait([pending_read], timeout=wait_seconds)
                if done:
                    break

            # A result that lands after a cancel still fails the lookup
            context.check()
        except ContextCancelledError:
            pending_read.cancel()
            raise

        return pending_read.result()

    @staticmethod
    def _to_document(
        kind: ObjectKind,
        namespace: str,
        name: str,
        raw_object: Any,
    ) -> ObjectDocument:
        """Convert a V1ConfigMap or V1Secret into an ObjectDocument."""
        reference: str = f'{kind.value} {namespace}/{name}'
        data: dict[str, bytes]

        if kind is ObjectKind.CONFIG_MAP:
            data = {
                field_name: value.encode('utf-8')
                for field_name, value in (raw_object.data or {}).items()
            }
            data.update(_decode_base64_values(raw_object.binary_data, reference))
        else:
            data = _decode_base64_values(raw_object.data, reference)

        return ObjectDocument(kind=kind, namespace=namespace, name=name, data=data)


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryObjectStore(ObjectStore):
    """
    Dictionary-backed object store.

    Writes are serialized with a lock; reads are safe from any thread.

    Example:
        >>> store = InMemoryObjectStore()
        >>> store.add_config_map('vault', 'vault-ca', {'ca.crt': pem_text})
    """

    def __init__(self, documents: Iterable[ObjectDocument] = ()) -> None:
        self._documents: dict[tuple[ObjectKind, str, str], ObjectDocument] = {}
        self._lock: threading.Lock = threading.Lock()
        for document in documents:
            self.put(document)

    def put(self, document: ObjectDocument) -> None:
        """Insert or replace a document."""
        with self._lock:
            self._documents[(document.kind, document.namespace, document.name)] = (
                document
            )

    def add_config_map(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str | bytes],
    ) -> ObjectDocument:
        """Store a ConfigMap; str values are UTF-8 encoded."""
        return self._add(ObjectKind.CONFIG_MAP, namespace, name, data)

    def add_secret(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str | bytes],
    ) -> ObjectDocument:
        """Store a Secret; values are the decoded payload, not base64."""
        return self._add(ObjectKind.SECRET, namespace, name, data)

    def _add(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        data: Mapping[str, str | bytes],
    ) -> ObjectDocument:
        document = ObjectDocument(
            kind=kind,
            namespace=namespace,
            name=name,
            data={
                field_name: value.encode('utf-8') if isinstance(value, str) else value
                for field_name, value in data.items()
            },
        )
        self.put(document)
        return document

    def get(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        context: RequestContext,
    ) -> ObjectDocument:
        context.check()

        document: ObjectDocument | None = self._documents.get((kind, namespace, name))
        if document is None:
            raise ObjectNotFoundError(kind, namespace, name)
        return document
