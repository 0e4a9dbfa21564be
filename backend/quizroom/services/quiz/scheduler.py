import itertools
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """A single-shot scheduled callback that can be cancelled before it fires."""

    def __init__(self, delay: float, callback: Callable[['TimerHandle'], None], label: str = ''):
        self.delay = delay
        self.callback = callback
        self.label = label
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.cancelled or self.fired:
            return
        self.fired = True
        self.callback(self)

    def __repr__(self):
        state = 'cancelled' if self.cancelled else 'fired' if self.fired else 'pending'
        return f"<TimerHandle {self.label} delay={self.delay}s {state}>"


class BackgroundScheduler:
    """Runs timers on Socket.IO background tasks.

    Each handle gets its own worker that sleeps with ``socketio.sleep`` so
    the same code works under threading, eventlet and gevent.
    """

    def __init__(self, socketio, heartbeat_sec: float = 0):
        self.socketio = socketio
        self.heartbeat_sec = heartbeat_sec

    def schedule(self, delay: float, callback, label: str = '') -> TimerHandle:
        handle = TimerHandle(delay, callback, label)
        logger.debug(f"[timer-set] label={label} delay={delay}s")
        self.socketio.start_background_task(self._worker, handle)
        return handle

    def _worker(self, handle: TimerHandle) -> None:
        if self.heartbeat_sec and self.heartbeat_sec > 0:
            slept = 0.0
            while slept < handle.delay and not handle.cancelled:
                step = min(self.heartbeat_sec, handle.delay - slept)
                self.socketio.sleep(step)
                slept += step
                logger.debug(f"[timer-heartbeat] label={handle.label} remaining={max(0.0, handle.delay - slept)}s")
        else:
            self.socketio.sleep(handle.delay)
        if handle.cancelled:
            logger.debug(f"[timer-abort] label={handle.label} cancelled before firing")
            return
        try:
            handle.fire()
        except Exception:
            logger.exception(f"[timer-error] label={handle.label}")


class ManualScheduler:
    """Scheduler driven by hand, on a virtual clock.

    Nothing fires until the caller asks; used by tests and by anything that
    needs deterministic control over phase transitions.
    """

    def __init__(self):
        self.now = 0.0
        self._seq = itertools.count()
        self._pending: List[tuple] = []

    def schedule(self, delay: float, callback, label: str = '') -> TimerHandle:
        handle = TimerHandle(delay, callback, label)
        self._pending.append((self.now + delay, next(self._seq), handle))
        return handle

    @property
    def pending(self) -> List[TimerHandle]:
        return [h for _, _, h in sorted(self._pending, key=lambda e: (e[0], e[1])) if not h.cancelled and not h.fired]

    def next_label(self) -> Optional[str]:
        pending = self.pending
        return pending[0].label if pending else None

    def fire_next(self) -> Optional[TimerHandle]:
        """Advance the clock to the earliest live timer and fire it."""
        live = [e for e in self._pending if not e[2].cancelled and not e[2].fired]
        self._pending = live
        if not live:
            return None
        entry = min(live, key=lambda e: (e[0], e[1]))
        self._pending.remove(entry)
        due, _, handle = entry
        self.now = max(self.now, due)
        handle.fire()
        return handle

    def run_until_idle(self, limit: int = 1000) -> int:
        fired = 0
        while fired < limit and self.fire_next() is not None:
            fired += 1
        return fired
