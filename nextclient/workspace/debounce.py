"""Per-key debouncing on threading.Timer.

A burst of schedule() calls for one key runs the callback once, after the
key has been quiet for the delay. Each schedule takes a fresh generation
number, unique across all keys; a timer that fires after being superseded
sees a stale generation and does nothing, so cancel() losing a race with
an already-firing timer is harmless. Keys with nothing pending hold no
state.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Hashable

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesces rapid calls per key into one delayed call."""

    def __init__(self, delay: float) -> None:
        """Initialize the debouncer.

        Args:
            delay: Quiet period in seconds before a scheduled call runs.
        """
        self._delay = delay
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._timers: dict[Hashable, threading.Timer] = {}
        self._pending: dict[Hashable, Callable[[], None]] = {}
        self._generations: dict[Hashable, int] = {}

    def schedule(self, key: Hashable, callback: Callable[[], None]) -> None:
        """Run callback after the delay, replacing any pending call for key."""
        with self._lock:
            generation = next(self._sequence)
            self._generations[key] = generation

            existing = self._timers.pop(key, None)
            if existing is not None:
                existing.cancel()

            timer = threading.Timer(self._delay, self._fire, args=(key, generation))
            timer.daemon = True
            self._timers[key] = timer
            self._pending[key] = callback
            timer.start()

    def cancel(self, key: Hashable) -> None:
        """Drop the pending call for key, if any."""
        with self._lock:
            self._generations.pop(key, None)
            timer = self._timers.pop(key, None)
            self._pending.pop(key, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        """Drop every pending call."""
        with self._lock:
            keys = list(self._timers)
        for key in keys:
            self.cancel(key)

    def flush(self, key: Hashable) -> bool:
        """Run the pending call for key now instead of waiting.

        Returns:
            True if a pending call ran.
        """
        with self._lock:
            callback = self._take(key)
        if callback is None:
            return False
        self._run(key, callback)
        return True

    def is_pending(self, key: Hashable) -> bool:
        """Whether a call for key is waiting to run."""
        with self._lock:
            return key in self._pending

    @property
    def tracked_keys(self) -> int:
        """Number of keys holding debounce state."""
        with self._lock:
            return len(self._generations)

    def _fire(self, key: Hashable, generation: int) -> None:
        with self._lock:
            if self._generations.get(key) != generation:
                return
            callback = self._take(key)
        if callback is not None:
            self._run(key, callback)

    def _take(self, key: Hashable) -> Callable[[], None] | None:
        """Claim the pending callback for key. Caller holds the lock."""
        self._generations.pop(key, None)
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        return self._pending.pop(key, None)

    def _run(self, key: Hashable, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            logger.exception("debounced_call_failed key=%s", key)
