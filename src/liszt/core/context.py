"""
RequestContext - Cancellation and deadline carrier for registrar calls.

Every Registrar operation takes a context as its first argument. Backends
check it before each storage step and abort running work once it is done,
so no call outlives its caller's deadline.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from liszt.core.errors import CancelledError, DeadlineExceededError, RegistryError
from liszt.core.ids import new_id


@dataclass
class RequestContext:
    """
    Cancellation and deadline state for one logical request.
    
    Deadlines are absolute ``time.monotonic()`` values. A child context
    is cancelled when its parent is, and never outlives the parent's
    deadline.
    """
    
    deadline: float | None = None
    """Monotonic time after which the request is abandoned."""
    
    parent: RequestContext | None = field(default=None, repr=False)
    
    request_id: str = field(default_factory=new_id)
    """Correlation id for log lines."""
    
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)
    
    # ==========================================
    # Constructors
    # ==========================================
    
    @classmethod
    def background(cls) -> RequestContext:
        """A context that is never cancelled and has no deadline."""
        return cls()
    
    @classmethod
    def with_deadline(cls, deadline: float) -> RequestContext:
        return cls(deadline=deadline)
    
    @classmethod
    def with_timeout(cls, seconds: float) -> RequestContext:
        return cls(deadline=time.monotonic() + seconds)
    
    def child(self, timeout: float | None = None) -> RequestContext:
        """Derive a context bound by this one and, optionally, a shorter timeout."""
        deadline = self.deadline
        if timeout is not None:
            own = time.monotonic() + timeout
            deadline = own if deadline is None else min(deadline, own)
        return RequestContext(deadline=deadline, parent=self, request_id=self.request_id)
    
    # ==========================================
    # State
    # ==========================================
    
    def cancel(self) -> None:
        self._cancelled.set()
    
    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.parent is not None and self.parent.cancelled
    
    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline
    
    @property
    def done(self) -> bool:
        return self.cancelled or self.expired
    
    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())
    
    def error(self) -> RegistryError | None:
        """The error describing why this context is done, if it is."""
        if self.cancelled:
            return CancelledError("request cancelled")
        if self.expired:
            return DeadlineExceededError("request deadline exceeded")
        return None
    
    def check(self) -> None:
        """Raise if the context is cancelled or past its deadline."""
        err = self.error()
        if err is not None:
            raise err
