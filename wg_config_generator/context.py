import threading
import time
from typing import Callable, List, Optional

from .errors import CancellationError


class Context:
    """Cancellation and deadline signal passed to every network call.

    A child context is cancelled when its parent is; cancelling the child
    leaves the parent untouched. Callbacks registered with
    `add_cancel_callback` run once, on the thread that calls `cancel`.
    """

    def __init__(self, parent: Optional["Context"] = None, deadline: Optional[float] = None) -> None:
        self._parent = parent
        self._deadline = deadline
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        if parent is not None:
            parent.add_cancel_callback(self.cancel)

    @classmethod
    def background(cls) -> "Context":
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float, parent: Optional["Context"] = None) -> "Context":
        return cls(parent=parent, deadline=time.monotonic() + seconds)

    def child(self) -> "Context":
        return Context(parent=self)

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_cancel_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run `callback` when this context is cancelled; returns an unregister function.

        An already cancelled context runs the callback immediately. Deadline
        expiry does not trigger callbacks; waiters bound their waits with
        `remaining()` instead.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._discard(callback)
        callback()
        return lambda: None

    def _discard(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @property
    def deadline(self) -> Optional[float]:
        parent_deadline = self._parent.deadline if self._parent is not None else None
        if self._deadline is None:
            return parent_deadline
        if parent_deadline is None:
            return self._deadline
        return min(self._deadline, parent_deadline)

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._parent is not None and self._parent.cancelled:
            return True
        deadline = self.deadline
        return deadline is not None and time.monotonic() >= deadline

    def remaining(self) -> Optional[float]:
        deadline = self.deadline
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    def timeout(self, default: float) -> float:
        """Per-request timeout: the default, capped by the time left."""
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def raise_if_cancelled(self, what: str) -> None:
        if self.cancelled:
            raise CancellationError(f"{what}: context cancelled")
