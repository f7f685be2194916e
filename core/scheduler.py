"""
Debounced scheduling.

Filter edits arrive in bursts; metrics are recomputed once the burst has
been quiet for `delay` seconds. The timer is injectable so tests can drive
it by hand.
"""

import logging
import threading
from typing import Any, Callable, Optional, Protocol


logger = logging.getLogger(__name__)


DEFAULT_DELAY_SECONDS = 0.3


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


class Debouncer:
    """
    Run `callback` once, `delay` seconds after the last schedule() call.

    Each schedule() cancels the pending run and starts a new timer with the
    latest arguments. Safe to call from several threads; callback runs are
    serialized and a timer superseded while waiting for a running call is
    dropped.
    """

    def __init__(
        self,
        delay: float = DEFAULT_DELAY_SECONDS,
        callback: Optional[Callable[..., Any]] = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self.callback = callback
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        # Held while the callback runs; calls never overlap
        self._run_lock = threading.Lock()
        self._timer: Optional[Timer] = None
        self._args: tuple = ()
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self, *args: Any) -> None:
        """Replace any pending run with one for `args`."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._args = args
            timer = self._timer_factory(self.delay, lambda: self._fire(generation))
            if isinstance(timer, threading.Timer):
                timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._generation += 1

    def flush(self) -> bool:
        """
        Run the pending call now instead of waiting for the timer.

        Returns:
            True if a pending call was run.
        """
        with self._run_lock:
            with self._lock:
                if self._timer is None:
                    return False
                self._timer.cancel()
                self._timer = None
                self._generation += 1
                args = self._args
            self._invoke(args)
        return True

    def _fire(self, generation: int) -> None:
        with self._run_lock:
            with self._lock:
                # A later schedule()/cancel()/flush() superseded this timer
                if generation != self._generation:
                    return
                self._timer = None
                args = self._args
            self._invoke(args)

    def _invoke(self, args: tuple) -> None:
        if self.callback is None:
            return
        self.callback(*args)
