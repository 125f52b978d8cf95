# vault_provider/context.py
"""
Request context carrying cancellation and deadline information.

A RequestContext is passed explicitly through every call that may block on
the object store. It combines a cancellation flag, which another thread can
set at any time, with an optional deadline. Blocking collaborators call
`check()` before starting work and use `remaining_seconds()` as their I/O
timeout, so a caller-imposed deadline bounds the whole lookup.

Contexts are cheap, carry no global state, and may be shared between threads.

Usage:
------
    context = RequestContext.with_timeout(5.0)
    config = builder.build(provider, 'secrets', context)

    # From another thread:
    context.cancel()
"""

import threading
import time
from typing import Self

__all__: list[str] = [
    'ContextCancelledError',
    'DeadlineExceededError',
    'RequestContext',
]


class ContextCancelledError(Exception):
    """Raised when work is attempted on a cancelled context."""


class DeadlineExceededError(ContextCancelledError):
    """Raised when the context deadline has passed."""


class RequestContext:
    """
    Cancellation flag plus optional deadline for a single operation.

    Attributes:
        deadline: Monotonic timestamp after which the context is expired,
            or None for no deadline.
    """

    def __init__(
        self,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """
        Initialize a context.

        Args:
            deadline: Absolute `time.monotonic()` value, or None.
            cancel_event: Event shared with a parent context. A new event is
                created when not provided.
        """
        self.deadline: float | None = deadline
        self._cancel_event: threading.Event = cancel_event or threading.Event()

    @classmethod
    def background(cls) -> Self:
        """Context with no deadline that is only cancelled explicitly."""
        return cls()

    @classmethod
    def with_timeout(cls, timeout_seconds: float) -> Self:
        """
        Context expiring `timeout_seconds` from now.

        Raises:
            ValueError: If timeout_seconds is negative.
        """
        if timeout_seconds < 0:
            raise ValueError(f'timeout_seconds must be >= 0, got: {timeout_seconds}')
        return cls(deadline=time.monotonic() + timeout_seconds)

    def child(self, timeout_seconds: float | None = None) -> 'RequestContext':
        """
        Derive a context that is cancelled together with this one.

        The child's deadline is the earlier of this context's deadline and
        `timeout_seconds` from now.
        """
        deadline: float | None = self.deadline
        if timeout_seconds is not None:
            child_deadline: float = time.monotonic() + timeout_seconds
            deadline = child_deadline if deadline is None else min(deadline, child_deadline)
        return RequestContext(deadline=deadline, cancel_event=self._cancel_event)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._cancel_event.is_set()

    @property
    def expired(self) -> bool:
        """True once the deadline has passed."""
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining_seconds(self) -> float | None:
        """Seconds left before the deadline (never negative), None if unbounded."""
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def check(self) -> None:
        """
        Raise if the context can no longer be used.

        Raises:
            ContextCancelledError: If the context was cancelled.
            DeadlineExceededError: If the deadline has passed.
        """
        if self.cancelled:
            raise ContextCancelledError('context cancelled')
        if self.expired:
            raise DeadlineExceededError('context deadline exceeded')

    def __repr__(self) -> str:
        return (
            f'RequestContext(cancelled={self.cancelled}, '
            f'remaining_seconds={self.remaining_seconds()!r})'
        )
