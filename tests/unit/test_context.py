"""Tests for RequestContext."""

import time

import pytest

from liszt.core.context import RequestContext
from liszt.core.errors import CancelledError, DeadlineExceededError, UnavailableError


class TestRequestContext:
    
    def test_background_is_never_done(self):
        ctx = RequestContext.background()
        
        assert not ctx.done
        assert ctx.remaining() is None
        ctx.check()
    
    def test_timeout(self):
        ctx = RequestContext.with_timeout(60)
        
        assert not ctx.done
        assert 0 < ctx.remaining() <= 60
    
    def test_past_deadline(self):
        ctx = RequestContext.with_deadline(time.monotonic() - 1)
        
        assert ctx.expired
        assert ctx.remaining() == 0.0
        with pytest.raises(DeadlineExceededError):
            ctx.check()
    
    def test_cancel(self):
        ctx = RequestContext.with_timeout(60)
        ctx.cancel()
        
        assert ctx.cancelled
        with pytest.raises(CancelledError):
            ctx.check()
    
    def test_cancellation_is_an_unavailable_error(self):
        """Cancellation and timeouts are storage-unavailable kinds, distinct from each other."""
        assert issubclass(CancelledError, UnavailableError)
        assert issubclass(DeadlineExceededError, UnavailableError)
        assert not issubclass(CancelledError, DeadlineExceededError)


class TestChildContext:
    
    def test_child_sees_parent_cancellation(self):
        parent = RequestContext.background()
        child = parent.child()
        
        parent.cancel()
        
        assert child.cancelled
    
    def test_child_cancellation_does_not_reach_parent(self):
        parent = RequestContext.background()
        child = parent.child()
        
        child.cancel()
        
        assert child.cancelled
        assert not parent.cancelled
    
    def test_child_takes_earlier_deadline(self):
        parent = RequestContext.with_timeout(60)
        
        assert parent.child(timeout=1).deadline < parent.deadline
        assert parent.child(timeout=120).deadline == parent.deadline
        assert parent.child().deadline == parent.deadline
    
    def test_child_keeps_request_id(self):
        parent = RequestContext.background()
        
        assert parent.child().request_id == parent.request_id
