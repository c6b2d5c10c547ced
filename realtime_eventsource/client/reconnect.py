"""
MODULE OVERVIEW:
The reconnection policy for the EventSource client.

WHAT IS HAPPENING HERE:
Unlike the exponential backoff used by the polling clients, an EventSource waits
exactly the current retry interval before every reconnect, forever, until the
caller closes it. The server may change that interval with a `retry:` line, and
the parser writes it here. The policy also holds the last seen event id, which
is sent back as `Last-Event-ID` so the server can resume the stream.

Both values are written from the connection task and read when the next
attempt is scheduled, possibly while another thread calls `close()`, so they
live behind a lock. The timer body re-checks the stopped flag under the same
lock: once `stop()` has returned, a scheduled callback can never run.
"""
import asyncio
import threading
from typing import Callable
from loguru import logger

from realtime_eventsource.shared.config import settings
from realtime_eventsource.shared.client_utils import on_loop_thread

# Longest wait honored between attempts (one day). Larger server hints are clamped.
MAX_RETRY_INTERVAL_MS = 24 * 60 * 60 * 1000


def clamp_retry_interval(value: int) -> int:
    if value < 0:
        raise ValueError("retry_interval_ms must be non-negative")
    return min(value, MAX_RETRY_INTERVAL_MS)


class ReconnectPolicy:
    def __init__(self, retry_interval_ms: int | None = None, last_event_id: str | None = None):
        if retry_interval_ms is None:
            retry_interval_ms = settings.EVENTSOURCE_RETRY_INTERVAL_MS

        self._lock = threading.Lock()
        self._retry_interval_ms = clamp_retry_interval(retry_interval_ms)
        self._last_event_id = last_event_id or None
        self._handle: asyncio.TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stopped = False
        self.attempts = 0

    @property
    def retry_interval_ms(self) -> int:
        with self._lock:
            return self._retry_interval_ms

    @retry_interval_ms.setter
    def retry_interval_ms(self, value: int) -> None:
        value = clamp_retry_interval(value)
        with self._lock:
            self._retry_interval_ms = value
        logger.debug(f"protocol=sse event=retry_update retry_ms={value}")

    @property
    def last_event_id(self) -> str | None:
        with self._lock:
            return self._last_event_id

    @last_event_id.setter
    def last_event_id(self, value: str | None) -> None:
        with self._lock:
            self._last_event_id = value or None

    @property
    def delay_s(self) -> float:
        return self.retry_interval_ms / 1000.0

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._handle is not None

    def schedule(self, callback: Callable[[], None]) -> bool:
        """
        Arm a timer that calls `callback` after the current retry interval.
        Must be called from the event loop thread. Returns False once stopped.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._stopped:
                return False
            if self._handle is not None:
                self._handle.cancel()
            delay = self._retry_interval_ms / 1000.0
            self.attempts += 1
            self._loop = loop
            self._handle = loop.call_later(delay, self._fire, callback)

        logger.debug(f"protocol=sse event=reconnect_scheduled attempt={self.attempts} delay_s={delay:.3f}")
        return True

    def _fire(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._stopped or self._handle is None:
                return
            self._handle = None
        callback()

    def stop(self) -> None:
        """Terminal: cancel the pending timer and refuse further schedules."""
        with self._lock:
            self._stopped = True
            handle, loop = self._handle, self._loop
            self._handle = None

        if handle is None:
            return
        if on_loop_thread(loop):
            handle.cancel()
        elif not loop.is_closed():
            loop.call_soon_threadsafe(handle.cancel)

    def resume(self) -> None:
        """Re-arm after the caller explicitly opens the connection again."""
        with self._lock:
            self._stopped = False

