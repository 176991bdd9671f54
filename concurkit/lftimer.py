"""Tick-driven timer service with a fixed pool of timers.

Timers are allocated from a free list and hold a callback and an argument.
A timer is armed with an absolute expiration tick; calling ``expire`` after
the current tick has reached that value disarms the timer and runs the
callback with the timer id, the expiration tick and the argument.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

MAX_TIMERS = 8192
TICK_INVALID = (1 << 64) - 1

TimerCallback = Callable[[int, int, Any], None]


class TimerError(Exception):
    """Raised for an invalid timer, tick or expiration, or a misuse of a timer."""


def _check_tick(value: int, what: str) -> None:
    if not 0 <= value <= TICK_INVALID:
        raise TimerError(f"{what} out of range: {value}")
    if value == TICK_INVALID:
        raise TimerError(f"invalid {what}: {value}")


class TimerService:
    """Pool of timers sharing one monotonically advancing tick counter."""

    def __init__(self, max_timers: int = MAX_TIMERS) -> None:
        if max_timers <= 0:
            raise ValueError("max_timers must be positive")
        self.max_timers = max_timers
        self._lock = threading.RLock()
        self._earliest = TICK_INVALID
        self._current = 0
        self._hi_watermark = 0
        # Timers beyond the high watermark have never been allocated.
        self._expirations = [0] * max_timers
        self._callbacks: list[Optional[TimerCallback]] = [None] * max_timers
        self._args: list[Any] = [None] * max_timers
        # Top of the stack is the end of the list; timer 0 is handed out first.
        self._free = list(range(max_timers - 1, -1, -1))

    def alloc(self, callback: TimerCallback, arg: Any = None) -> Optional[int]:
        """Allocate a timer bound to callback and arg; None if none is available."""
        if not callable(callback):
            raise TimerError("callback must be callable")
        with self._lock:
            if not self._free:
                return None
            idx = self._free.pop()
            self._expirations[idx] = TICK_INVALID
            self._callbacks[idx] = callback
            self._args[idx] = arg
            self._hi_watermark = max(self._hi_watermark, idx + 1)
        return idx

    def _check_timer(self, timer: int) -> None:
        if not 0 <= timer < self._hi_watermark:
            raise TimerError(f"invalid timer: {timer}")

    def free(self, timer: int) -> None:
        """Return an inactive timer to the pool."""
        with self._lock:
            self._check_timer(timer)
            if self._callbacks[timer] is None:
                raise TimerError(f"timer already free: {timer}")
            if self._expirations[timer] != TICK_INVALID:
                raise TimerError(f"cannot free active timer: {timer}")
            self._callbacks[timer] = None
            self._args[timer] = None
            self._free.append(timer)

    def _update_earliest(self, expiration: int) -> None:
        with self._lock:
            if expiration < self._earliest:
                self._earliest = expiration

    def _update_expiration(self, timer: int, expiration: int, active: bool) -> bool:
        with self._lock:
            self._check_timer(timer)
            old = self._expirations[timer]
            is_active = old != TICK_INVALID
            if is_active != active:
                return False
            self._expirations[timer] = expiration
            if expiration != TICK_INVALID:
                self._update_earliest(expiration)
        return True

    def set(self, timer: int, expiration: int) -> bool:
        """Arm an inactive timer; False if it is already active."""
        _check_tick(expiration, "expiration time")
        return self._update_expiration(timer, expiration, active=False)

    def reset(self, timer: int, expiration: int) -> bool:
        """Re-arm an active timer; False if it has expired or was cancelled."""
        _check_tick(expiration, "expiration time")
        return self._update_expiration(timer, expiration, active=True)

    def cancel(self, timer: int) -> bool:
        """Disarm an active timer; False if it has expired or was cancelled."""
        return self._update_expiration(timer, TICK_INVALID, active=True)

    def tick_get(self) -> int:
        """Return the current tick."""
        with self._lock:
            return self._current

    def tick_set(self, tick: int) -> None:
        """Advance the current tick; earlier or equal values are ignored."""
        _check_tick(tick, "tick")
        with self._lock:
            if tick > self._current:
                self._current = tick

    def expire(self) -> None:
        """Run the callbacks of every armed timer due at the current tick."""
        with self._lock:
            now = self._current
            if self._earliest > now:
                return
            self._earliest = TICK_INVALID
            top = self._hi_watermark

        earliest = TICK_INVALID
        for idx in range(top):
            with self._lock:
                expiration = self._expirations[idx]
                if expiration > now:
                    earliest = min(earliest, expiration)
                    continue
                self._expirations[idx] = TICK_INVALID
                callback = self._callbacks[idx]
                arg = self._args[idx]
            if callback is not None:
                callback(idx, expiration, arg)
        self._update_earliest(earliest)