"""
Tests for vault_provider.context module.
"""

import threading

import pytest

from vault_provider.context import (
    ContextCancelledError,
    DeadlineExceededError,
    RequestContext,
)


class TestRequestContextConstruction:
    """Test RequestContext constructors."""

    def test_background_is_unbounded(self) -> None:
        """Should have no deadline and not be cancelled."""

        context = RequestContext.background()

        assert context.deadline is None

        assert context.remaining_seconds() is None

        assert not context.cancelled

        assert not context.expired

        context.check()

    def test_with_timeout_sets_deadline(self) -> None:
        """Should report remaining time within the timeout."""

        context = RequestContext.with_timeout(60)

        remaining: float | None = context.remaining_seconds()

        assert remaining is not None

        assert 0 < remaining <= 60  # noqa: PLR2004

    def test_zero_timeout_is_expired(self) -> None:
        """Should be expired immediately with a zero timeout."""

        context = RequestContext.with_timeout(0)

        assert context.expired

        assert context.remaining_seconds() == 0.0

    def test_negative_timeout_rejected(self) -> None:
        """Should reject negative timeouts."""

        with pytest.raises(ValueError, match='timeout_seconds'):
            RequestContext.with_timeout(-1)


class TestRequestContextCheck:
    """Test RequestContext.check()."""

    def test_cancelled_raises(self) -> None:
        """Should raise ContextCancelledError after cancel()."""

        context = RequestContext.background()
        context.cancel()

        with pytest.raises(ContextCancelledError) as exc_info:
            context.check()

        assert not isinstance(exc_info.value, DeadlineExceededError)

    def test_expired_raises(self) -> None:
        """Should raise DeadlineExceededError past the deadline."""

        with pytest.raises(DeadlineExceededError):
            RequestContext.with_timeout(0).check()

    def test_deadline_error_is_cancellation(self) -> None:
        """Should let callers catch both failures as ContextCancelledError."""

        assert issubclass(DeadlineExceededError, ContextCancelledError)

    def test_cancel_from_other_thread(self) -> None:
        """Should observe a cancel() made by another thread."""

        context = RequestContext.background()

        worker = threading.Thread(target=context.cancel)
        worker.start()
        worker.join()

        assert context.cancelled


class TestRequestContextChild:
    """Test RequestContext.child()."""

    def test_child_shares_cancellation(self) -> None:
        """Should cancel the child together with the parent."""

        parent = RequestContext.background()
        child = parent.child()

        parent.cancel()

        assert child.cancelled

    def test_child_cancel_reaches_parent(self) -> None:
        """Should share a single cancellation flag both ways."""

        parent = RequestContext.background()
        child = parent.child()

        child.cancel()

        assert parent.cancelled

    def test_child_takes_earlier_deadline(self) -> None:
        """Should never extend the parent deadline."""

        parent = RequestContext.with_timeout(5)

        child = parent.child(timeout_seconds=3600)

        assert child.deadline == parent.deadline

    def test_child_shortens_deadline(self) -> None:
        """Should apply a shorter child timeout."""

        parent = RequestContext.with_timeout(3600)

        child = parent.child(timeout_seconds=0)

        assert child.expired

        assert not parent.expired

    def test_child_of_background(self) -> None:
        """Should add a deadline to an unbounded parent."""

        child = RequestContext.background().child(timeout_seconds=10)

        assert child.deadline is not None


class TestRequestContextRepr:
    """Test RequestContext.__repr__()."""

    def test_repr(self) -> None:
        """Should show the cancellation state."""

        assert 'cancelled=False' in repr(RequestContext.background())
