import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """
    Coalesces rapid submissions into a single delayed callback.

    ``submit(value)`` replaces the pending value and restarts the timer.
    When the timer fires, the latest value is handed to ``callback``
    exactly once; values replaced before the timer fired are never written.

    ``timer_factory`` defaults to ``threading.Timer`` and takes
    ``(delay, function)``; tests pass a manual timer instead.
    """

    def __init__(self, callback: Callable[[T], None], delay: float, timer_factory=threading.Timer):
        self.callback = callback
        self.delay = delay
        self.timer_factory = timer_factory
        self._lock = threading.Lock()
        # Held from taking a value until its callback returns, so writes land in submit order
        self._save_lock = threading.Lock()
        self._timer = None
        self._value: Optional[T] = None
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def submit(self, value: T):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._value = value
            self._pending = True
            timer = self.timer_factory(self.delay, lambda: self._fire(timer))
            # Timer threads must not keep the process alive
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self, timer):
        with self._save_lock:
            with self._lock:
                # A newer submit or a flush got here first
                if timer is not self._timer or not self._pending:
                    return
                value = self._take()
            self.callback(value)

    def _take(self) -> T:
        value = self._value
        self._value = None
        self._pending = False
        self._timer = None
        return value

    def flush(self) -> bool:
        """Runs the callback now if a value is pending. Returns whether it ran."""
        with self._save_lock:
            with self._lock:
                if not self._pending:
                    return False
                if self._timer is not None:
                    self._timer.cancel()
                value = self._take()
            self.callback(value)
        return True

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            if self._pending:
                logger.debug("Dropped pending debounced value")
            self._take()
